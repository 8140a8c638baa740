"""Offline text classifiers sharing the predictor pattern.

These are not attached to the session pipeline; they classify a single text
on request and are trained through the same operator flow.
"""

from datetime import datetime
from typing import Sequence

from personalization.domain.entities import (
    FeatureVector,
    LabelSet,
    ScoreResult,
    TrainingExample,
    TrainingReport,
)
from personalization.domain.protocols import IPredictor
from personalization.features.feature_engineering import TextVectorizer


SPAM_LABELS = LabelSet(("ham", "spam"))
SENTIMENT_LABELS = LabelSet(("negative", "neutral", "positive"))
MODERATION_LABELS = LabelSet(("safe", "review", "block"))

TEXT_CLASSIFIERS: dict[str, LabelSet] = {
    "spam": SPAM_LABELS,
    "sentiment": SENTIMENT_LABELS,
    "moderation": MODERATION_LABELS,
}


class TextClassifier:
    """Hashed text -> predictor."""

    def __init__(self, name: str, predictor: IPredictor, vectorizer: TextVectorizer | None = None) -> None:
        self.name = name
        self.predictor = predictor
        self.vectorizer = vectorizer or TextVectorizer()

    @property
    def labels(self) -> tuple[str, ...]:
        return self.predictor.label_set.labels

    @property
    def dimension(self) -> int:
        return self.vectorizer.dimension

    def classify(self, text: str) -> ScoreResult:
        return self.predictor.predict(self.vectorizer.vectorize(text))

    def training_vector(self, example: TrainingExample, now: datetime | None = None) -> FeatureVector:
        text = example.text
        if text is None and example.content is not None:
            text = example.content.body
        return self.vectorizer.vectorize(text)

    def train(
        self,
        examples: Sequence[TrainingExample],
        dataset_name: str | None = None,
        now: datetime | None = None,
    ) -> TrainingReport:
        batch = [(self.training_vector(e), e.label) for e in examples]
        return self.predictor.train(batch, dataset_name=dataset_name)
