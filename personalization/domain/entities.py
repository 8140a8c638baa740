"""Domain entities for the real-time personalization analyzers."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import numpy as np


# Closed interest vocabulary shared by profiles and content
CATEGORIES: tuple[str, ...] = ("Bilim", "Spor", "Siyaset", "Eğlence", "Futbol")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InteractionAction(str, Enum):
    VIEW = "view"
    LIKE = "like"
    SHARE = "share"


@dataclass(frozen=True)
class Interaction:
    """A single user interaction with a content item."""
    content_id: str
    timestamp: datetime
    action: InteractionAction


@dataclass
class UserBehaviorProfile:
    """Evolving behavior profile of one connected identity."""
    identity: str
    viewed_content_ids: set[str] = field(default_factory=set)
    liked_content_ids: set[str] = field(default_factory=set)
    selected_categories: list[str] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)
    last_active_at: datetime = field(default_factory=utc_now)
    cumulative_session_seconds: int = 0


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial profile sent with an activity event.

    Fields left as None are untouched by a merge.
    """
    address: str | None = None
    viewed_content_ids: frozenset[str] | None = None
    liked_content_ids: frozenset[str] | None = None
    selected_categories: tuple[str, ...] | None = None
    interactions: tuple[Interaction, ...] | None = None


@dataclass(frozen=True)
class ContentItem:
    """A piece of content scored against user profiles."""
    content_id: str
    kind: str = "post"
    category: str | None = None
    body: str = ""
    likes: int = 0
    created_at: datetime | None = None
    author: str | None = None


@dataclass(frozen=True)
class MarketOrder:
    """A single bid or ask placed on a prediction market."""
    user: str
    outcome: int
    is_bid: bool
    price: float
    amount: float
    created_at: datetime | None = None


@dataclass(frozen=True)
class Market:
    """A prediction market and its order book."""
    market_id: str
    question: str = ""
    resolved: bool = False
    outcome: int = 0
    orders: tuple[MarketOrder, ...] = ()
    created_at: datetime | None = None


@dataclass
class FeatureVector:
    """Container for feature data used in model training/prediction."""
    features: np.ndarray
    feature_names: list[str]

    def __post_init__(self) -> None:
        if len(self.features) != len(self.feature_names):
            raise ValueError(
                f"Feature array length ({len(self.features)}) must match "
                f"feature names length ({len(self.feature_names)})"
            )

    @property
    def dimension(self) -> int:
        return len(self.features)

    def concat(self, other: "FeatureVector") -> "FeatureVector":
        """Positional concatenation, self first."""
        return FeatureVector(
            features=np.concatenate([self.features, other.features]),
            feature_names=self.feature_names + other.feature_names,
        )


@dataclass(frozen=True)
class LabelSet:
    """Fixed-order closed label enumeration of one analyzer."""
    labels: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.labels) < 2:
            raise ValueError("A label set needs at least two labels")
        if len(set(self.labels)) != len(self.labels):
            raise ValueError(f"Duplicate labels in {self.labels}")

    def __len__(self) -> int:
        return len(self.labels)

    def index(self, label: str) -> int:
        return self.labels.index(label)

    def one_hot(self, label: str) -> np.ndarray:
        """Encode a label as a vector with 1 at its enumeration index.

        Raises:
            ValueError: If the label is not part of the enumeration
        """
        vector = np.zeros(len(self.labels), dtype=np.float32)
        vector[self.index(label)] = 1.0
        return vector

    def decode(self, scores: np.ndarray) -> tuple[str, float]:
        idx = int(np.argmax(scores))
        return self.labels[idx], float(scores[idx])


@dataclass(frozen=True)
class ScoreResult:
    """Score distribution over a label set with its arg-max."""
    scores: dict[str, float]
    label: str
    confidence: float

    @classmethod
    def from_scores(cls, label_set: LabelSet, scores: np.ndarray) -> "ScoreResult":
        label, confidence = label_set.decode(scores)
        return cls(
            scores={name: float(s) for name, s in zip(label_set.labels, scores)},
            label=label,
            confidence=confidence,
        )


@dataclass(frozen=True)
class ScoreUpdate:
    """Outbound score for one identity and one content item."""
    analyzer: str
    identity: str
    content_id: str
    result: ScoreResult
    details: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {
            "event": "score-update",
            "analyzer": self.analyzer,
            "identity": self.identity,
            "content_id": self.content_id,
            "label": self.result.label,
            "confidence": self.result.confidence,
            "scores": self.result.scores,
            **self.details,
        }


@dataclass(frozen=True)
class Recommendation:
    """One ranked content item; score is the relevance probability in percent."""
    content_id: str
    score: float

@dataclass(frozen=True)
class TrainingExample:
    """One labeled sample; entities an analyzer does not use may be omitted."""
    label: str
    profile: UserBehaviorProfile | None = None
    content: ContentItem | None = None
    text: str | None = None
    market: Market | None = None


@dataclass(frozen=True)
class ModelConfig:
    """Configuration for model hyperparameters."""
    max_depth: int = 4
    learning_rate: float = 0.3
    n_estimators: int = 50
    subsample: float = 1.0
    colsample_bytree: float = 1.0
    min_child_weight: int = 1
    reg_alpha: float = 0.0
    reg_lambda: float = 1.0
    random_state: int = 42


@dataclass(frozen=True)
class TrainingConfig:
    """Configuration for a training invocation."""
    validation_fraction: float = 0.2
    min_validation_samples: int = 1


@dataclass
class TrainingReport:
    """Outcome of one train call."""
    model_name: str
    train_samples: int
    validation_samples: int
    boosting_rounds: int
    metrics: dict[str, float] = field(default_factory=dict)
    dataset_name: str | None = None
    trained_at: datetime = field(default_factory=utc_now)

    def summary(self) -> str:
        lines = [
            f"Training Report for: {self.model_name}",
            f"Dataset: {self.dataset_name or '-'}",
            f"Timestamp: {self.trained_at}",
            f"Samples: train={self.train_samples} validation={self.validation_samples}",
            f"Total boosting rounds: {self.boosting_rounds}",
            "-" * 50,
        ]
        for metric_name, value in self.metrics.items():
            lines.append(f"{metric_name}: {value:.6f}")
        return "\n".join(lines)
