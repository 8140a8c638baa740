"""Shared analyzer shape: vectorize, predict, decorate.

An analyzer binds one predictor to the vectorizers that feed it. The
predictor is treated as an opaque train/predict capability.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Sequence

from personalization.domain.entities import (
    ContentItem,
    FeatureVector,
    Recommendation,
    ScoreResult,
    ScoreUpdate,
    TrainingExample,
    TrainingReport,
    UserBehaviorProfile,
    utc_now,
)
from personalization.domain.errors import UnknownAnalyzer
from personalization.domain.protocols import IPredictor


_TRAINING_IDENTITY = "training"
_TRAINING_CONTENT = "training"


class RealtimeAnalyzer(ABC):
    """Scores one profile against one content item."""

    name: str
    # Label whose probability orders content in ``rank``; None if the analyzer does not rank
    ranking_label: str | None = None

    def __init__(self, predictor: IPredictor) -> None:
        self.predictor = predictor

    @property
    def labels(self) -> tuple[str, ...]:
        return self.predictor.label_set.labels

    @property
    @abstractmethod
    def dimension(self) -> int:
        ...

    @abstractmethod
    def vectorize(
        self,
        profile: UserBehaviorProfile,
        content: ContentItem,
        now: datetime | None = None,
    ) -> FeatureVector:
        ...

    def details(
        self,
        profile: UserBehaviorProfile,
        content: ContentItem,
        result: ScoreResult,
    ) -> dict[str, Any]:
        """Analyzer-specific fields added to the outbound message."""
        return {}

    def score(
        self,
        profile: UserBehaviorProfile,
        content: ContentItem,
        now: datetime | None = None,
    ) -> ScoreUpdate:
        vector = self.vectorize(profile, content, now or utc_now())
        result = self.predictor.predict(vector)
        return ScoreUpdate(
            analyzer=self.name,
            identity=profile.identity,
            content_id=content.content_id,
            result=result,
            details=self.details(profile, content, result),
        )

    def rank(
        self,
        profile: UserBehaviorProfile,
        items: Sequence[ContentItem],
        now: datetime | None = None,
        limit: int = 10,
        threshold: float = 0.1,
    ) -> list[Recommendation]:
        """Items whose ranking-label probability exceeds threshold, best first.

        Raises:
            UnknownAnalyzer: If this analyzer does not rank content
            NotInitialized: If the predictor has no trained weights
        """
        if self.ranking_label is None:
            raise UnknownAnalyzer(f"Analyzer '{self.name}' does not rank content")

        now = now or utc_now()
        ranked = []
        for item in items:
            result = self.predictor.predict(self.vectorize(profile, item, now))
            relevance = result.scores[self.ranking_label]
            if relevance > threshold:
                ranked.append(Recommendation(content_id=item.content_id, score=relevance * 100))

        ranked.sort(key=lambda r: r.score, reverse=True)
        return ranked[:limit]

    def training_vector(self, example: TrainingExample, now: datetime | None = None) -> FeatureVector:
        profile = example.profile or UserBehaviorProfile(identity=_TRAINING_IDENTITY)
        content = example.content or ContentItem(content_id=_TRAINING_CONTENT, body=example.text or "")
        return self.vectorize(profile, content, now)

    def train(
        self,
        examples: Sequence[TrainingExample],
        dataset_name: str | None = None,
        now: datetime | None = None,
    ) -> TrainingReport:
        now = now or utc_now()
        batch = [(self.training_vector(e, now), e.label) for e in examples]
        return self.predictor.train(batch, dataset_name=dataset_name)
