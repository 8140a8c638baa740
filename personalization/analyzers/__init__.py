"""Analyzer implementations."""

from .base import RealtimeAnalyzer
from .clustering import ClusterAssignment, UserClusterer
from .market import MarketTrendAnalyzer
from .realtime import (
    BehaviorAnalyzer,
    ContentOptimizationAnalyzer,
    InteractionAnalyzer,
    PersonalizationAnalyzer,
    TrendAnalyzer,
)
from .registry import AnalyzerRegistry
from .text import TEXT_CLASSIFIERS, TextClassifier

__all__ = [
    "RealtimeAnalyzer",
    "BehaviorAnalyzer",
    "ContentOptimizationAnalyzer",
    "InteractionAnalyzer",
    "PersonalizationAnalyzer",
    "TrendAnalyzer",
    "MarketTrendAnalyzer",
    "ClusterAssignment",
    "UserClusterer",
    "AnalyzerRegistry",
    "TEXT_CLASSIFIERS",
    "TextClassifier",
]
