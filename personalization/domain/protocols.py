"""Protocol interfaces for personalization pipeline components."""

from datetime import datetime
from typing import Any, Protocol, Sequence, runtime_checkable

import numpy as np

from .entities import FeatureVector, LabelSet, ScoreResult, TrainingReport


@runtime_checkable
class IPredictor(Protocol):
    """Trainable scoring capability.

    Callers only ever train and predict; the numeric backend stays opaque.
    """

    @property
    def model_name(self) -> str:
        """Return the name the weights are persisted under."""
        ...

    @property
    def label_set(self) -> LabelSet:
        ...

    @property
    def is_fitted(self) -> bool:
        """Check if weights exist."""
        ...

    def train(
        self,
        batch: Sequence[tuple[FeatureVector | np.ndarray, str]],
        dataset_name: str | None = None,
    ) -> TrainingReport:
        """Fit weights to a labeled batch and persist them."""
        ...

    def predict(self, vector: FeatureVector | np.ndarray) -> ScoreResult:
        """Score a single vector with the current weights."""
        ...


@runtime_checkable
class IVectorizer(Protocol):
    """Deterministic mapping from an entity to a fixed-length vector."""

    @property
    def dimension(self) -> int:
        ...

    def feature_names(self) -> list[str]:
        ...

    def vectorize(self, entity: Any, now: datetime | None = None) -> FeatureVector:
        ...


@runtime_checkable
class IDeliveryChannel(Protocol):
    """One client connection able to receive outbound messages."""

    @property
    def channel_id(self) -> str:
        ...

    async def send(self, message: dict[str, Any]) -> None:
        """Send a message, raising DeliveryFailure when unreachable."""
        ...


@runtime_checkable
class IMetric(Protocol):
    """Interface for evaluation metrics over class probabilities."""

    @property
    def name(self) -> str:
        """Return the metric's identifier."""
        ...

    def compute(self, y_true: np.ndarray, y_proba: np.ndarray) -> float:
        """Compute the metric value."""
        ...
