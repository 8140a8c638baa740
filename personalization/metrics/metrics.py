"""Metric implementations for predictor validation.

All metrics take integer class indices and a (n_samples, n_classes) matrix of
class probabilities as produced by the predictors.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from sklearn.metrics import accuracy_score, f1_score, log_loss

from personalization.domain.protocols import IMetric


@dataclass(frozen=True)
class AccuracyMetric:
    """Share of samples whose arg-max class matches the label."""

    @property
    def name(self) -> str:
        return "accuracy"

    def compute(self, y_true: np.ndarray, y_proba: np.ndarray) -> float:
        return float(accuracy_score(y_true, np.argmax(y_proba, axis=1)))


@dataclass(frozen=True)
class LogLossMetric:
    """Multi-class cross entropy."""

    @property
    def name(self) -> str:
        return "log_loss"

    def compute(self, y_true: np.ndarray, y_proba: np.ndarray) -> float:
        labels = list(range(y_proba.shape[1]))
        return float(log_loss(y_true, y_proba, labels=labels))


@dataclass(frozen=True)
class MacroF1Metric:
    """Unweighted mean of per-class F1.

    Classes absent from the validation split count as zero.
    """

    @property
    def name(self) -> str:
        return "macro_f1"

    def compute(self, y_true: np.ndarray, y_proba: np.ndarray) -> float:
        labels = list(range(y_proba.shape[1]))
        return float(
            f1_score(
                y_true,
                np.argmax(y_proba, axis=1),
                labels=labels,
                average="macro",
                zero_division=0,
            )
        )


@dataclass
class CustomMetric:
    """Custom metric wrapper for user-defined metric functions."""

    metric_name: str
    compute_fn: Callable[[np.ndarray, np.ndarray], float]

    @property
    def name(self) -> str:
        return self.metric_name

    def compute(self, y_true: np.ndarray, y_proba: np.ndarray) -> float:
        return float(self.compute_fn(y_true, y_proba))


def create_standard_metrics() -> list[IMetric]:
    """Create a list of standard validation metrics."""
    return [
        AccuracyMetric(),
        LogLossMetric(),
        MacroF1Metric(),
    ]


def compute_all_metrics(
    y_true: np.ndarray,
    y_proba: np.ndarray,
    metrics: list[IMetric] | None = None,
) -> dict[str, float]:
    """Compute all specified metrics.

    Args:
        y_true: Class indices
        y_proba: Class probabilities
        metrics: List of metric instances. If None, uses standard metrics.

    Returns:
        Dictionary mapping metric names to computed values
    """
    if metrics is None:
        metrics = create_standard_metrics()

    return {metric.name: metric.compute(y_true, y_proba) for metric in metrics}


def compute_baseline_metrics(
    y_val: np.ndarray,
    y_train: np.ndarray,
    n_classes: int,
) -> dict[str, float]:
    """Accuracy of always predicting the majority training class."""
    majority = int(np.bincount(y_train, minlength=n_classes).argmax())
    return {
        "baseline_accuracy": float(np.mean(y_val == majority)),
        "majority_class": float(majority),
    }
