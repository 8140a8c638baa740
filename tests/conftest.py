from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from personalization.analyzers.realtime import BehaviorAnalyzer, PersonalizationAnalyzer
from personalization.domain.entities import (
    ContentItem,
    Interaction,
    InteractionAction,
    ModelConfig,
    TrainingExample,
    UserBehaviorProfile,
)
from personalization.domain.errors import DeliveryFailure
from personalization.features.feature_engineering import BehaviorVectorizer, ContentVectorizer
from personalization.models.xgboost_predictor import XGBoostPredictor
from personalization.pipelines.config import (
    ModelHyperparamsConfig,
    PathsConfig,
    PipelineConfig,
    RealtimeConfig,
)


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeChannel:
    """In-memory delivery channel recording every message."""

    def __init__(self, channel_id: str = "conn-1"):
        self.channel_id = channel_id
        self.messages: List[Dict[str, Any]] = []
        self.closed = False

    async def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            raise DeliveryFailure(f"{self.channel_id} closed")
        self.messages.append(message)

    def score_updates(self) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["event"] == "score-update"]


def make_profile(identity: str, likes: int, categories: List[str]) -> UserBehaviorProfile:
    return UserBehaviorProfile(
        identity=identity,
        viewed_content_ids={f"v{i}" for i in range(likes * 2)},
        liked_content_ids={f"l{i}" for i in range(likes)},
        selected_categories=categories,
        interactions=[
            Interaction(f"l{i}", NOW - timedelta(hours=i + 1), InteractionAction.LIKE)
            for i in range(min(likes, 3))
        ],
        last_active_at=NOW,
    )


def engagement_examples(n: int = 30) -> List[TrainingExample]:
    """Synthetic examples where engagement tracks the number of likes."""
    labels = ["low", "medium", "high"]
    examples = []
    for i in range(n):
        level = i % 3
        examples.append(TrainingExample(
            label=labels[level],
            profile=make_profile(f"u{i}", likes=level * 20, categories=["Spor"] if level else ["Bilim"]),
            content=ContentItem(content_id=f"c{i}", kind="video", category="Spor", likes=level * 50),
        ))
    return examples


def relevance_examples(n: int = 30) -> List[TrainingExample]:
    """Synthetic examples where content is relevant when it matches the user's interest."""
    examples = []
    for i in range(n):
        relevant = i % 2 == 0
        examples.append(TrainingExample(
            label="relevant" if relevant else "irrelevant",
            profile=make_profile(f"u{i}", likes=5, categories=["Bilim"]),
            content=ContentItem(content_id=f"c{i}", category="Bilim" if relevant else "Siyaset", likes=10),
        ))
    return examples


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fast_model_config() -> ModelConfig:
    return ModelConfig(n_estimators=5, max_depth=2)


@pytest.fixture
def pipeline_config(tmp_path) -> PipelineConfig:
    return PipelineConfig(
        paths=PathsConfig(model_dir=tmp_path / "models"),
        model=ModelHyperparamsConfig(n_estimators=5, max_depth=2),
        realtime=RealtimeConfig(refresh_interval_seconds=60.0),
    )


@pytest.fixture
def behavior_analyzer(fast_model_config) -> BehaviorAnalyzer:
    behavior, content = BehaviorVectorizer(), ContentVectorizer()
    predictor = XGBoostPredictor(
        name=BehaviorAnalyzer.name,
        label_set=BehaviorAnalyzer.label_set,
        n_features=behavior.dimension + content.dimension,
        config=fast_model_config,
    )
    return BehaviorAnalyzer(predictor, behavior, content)


@pytest.fixture
def trained_behavior_analyzer(behavior_analyzer, now) -> BehaviorAnalyzer:
    behavior_analyzer.train(engagement_examples(), dataset_name="synthetic", now=now)
    return behavior_analyzer


@pytest.fixture
def personalization_analyzer(fast_model_config) -> PersonalizationAnalyzer:
    behavior, content = BehaviorVectorizer(), ContentVectorizer()
    predictor = XGBoostPredictor(
        name=PersonalizationAnalyzer.name,
        label_set=PersonalizationAnalyzer.label_set,
        n_features=behavior.dimension + content.dimension,
        config=fast_model_config,
    )
    return PersonalizationAnalyzer(predictor, behavior, content)


@pytest.fixture
def trained_personalization_analyzer(personalization_analyzer, now) -> PersonalizationAnalyzer:
    personalization_analyzer.train(relevance_examples(), dataset_name="synthetic", now=now)
    return personalization_analyzer
