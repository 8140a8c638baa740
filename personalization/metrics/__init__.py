"""Metrics module for predictor validation."""

from .metrics import (
    AccuracyMetric,
    CustomMetric,
    LogLossMetric,
    MacroF1Metric,
    compute_all_metrics,
    compute_baseline_metrics,
    create_standard_metrics,
)

__all__ = [
    "AccuracyMetric",
    "CustomMetric",
    "LogLossMetric",
    "MacroF1Metric",
    "compute_all_metrics",
    "compute_baseline_metrics",
    "create_standard_metrics",
]
