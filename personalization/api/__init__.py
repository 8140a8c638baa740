"""API module for the personalization service."""

from .app import app, create_app
from .dtos import (
    ClassifyRequest,
    ClusterRequest,
    ClusterResponse,
    InboundMessage,
    MarketPredictRequest,
    RecommendRequest,
    RecommendResponse,
    ScoreResponse,
    TrainRequest,
    TrainResponse,
)

__all__ = [
    "app",
    "create_app",
    "ClassifyRequest",
    "ClusterRequest",
    "ClusterResponse",
    "InboundMessage",
    "MarketPredictRequest",
    "RecommendRequest",
    "RecommendResponse",
    "ScoreResponse",
    "TrainRequest",
    "TrainResponse",
]
