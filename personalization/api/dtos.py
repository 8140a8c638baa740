"""Data Transfer Objects for the personalization API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
import pydantic


class InboundMessage(BaseModel):
    """One JSON message received on a session socket."""

    event: str
    data: dict[str, Any] | None = None


class TrainingExampleInput(BaseModel):
    """Single labeled example. Entities the analyzer does not use may be omitted."""

    label: str
    profile: dict[str, Any] | None = None
    content: dict[str, Any] | None = None
    text: str | None = None
    market: dict[str, Any] | None = None


class TrainRequest(BaseModel):
    """Request payload for the /train endpoint."""

    dataset_name: str | None = Field(default=None, description="Informational dataset name")
    examples: list[TrainingExampleInput]


class TrainResponse(BaseModel):
    """Training report returned by the /train endpoint."""

    model_name: str
    dataset_name: str | None
    train_samples: int
    validation_samples: int
    boosting_rounds: int
    metrics: dict[str, float]
    trained_at: datetime
    execution_time_ms: float
    response_id: UUID

    @pydantic.field_validator("execution_time_ms", mode="before")
    def round_execution_time_ms(cls, v: float) -> float:
        return round(v, 2)


class ClassifyRequest(BaseModel):
    """Request payload for the /classify endpoint."""

    text: str


class ScoreResponse(BaseModel):
    """Classification result."""

    classifier: str
    label: str
    confidence: float
    scores: dict[str, float]
    execution_time_ms: float
    response_id: UUID

    @pydantic.field_validator("execution_time_ms", mode="before")
    def round_execution_time_ms(cls, v: float) -> float:
        return round(v, 2)


class AnalyzerInfo(BaseModel):
    name: str
    labels: list[str]
    dimension: int
    trained: bool


class RecommendRequest(BaseModel):
    """Request payload for the /recommend endpoint."""

    profile: dict[str, Any] | None = Field(default=None, description="Activity-shaped profile; a tracked address uses the live profile")
    limit: int = Field(default=10, ge=1, le=100)


class RecommendationItem(BaseModel):
    content_id: str
    score: float


class RecommendResponse(BaseModel):
    """Ranked content for one profile."""

    analyzer: str
    recommendations: list[RecommendationItem]
    execution_time_ms: float
    response_id: UUID

    @pydantic.field_validator("execution_time_ms", mode="before")
    def round_execution_time_ms(cls, v: float) -> float:
        return round(v, 2)


class MarketPredictRequest(BaseModel):
    """Request payload for the /predict endpoint."""

    profile: dict[str, Any] | None = None
    market: dict[str, Any]


class ClusterRequest(BaseModel):
    """Request payload for the /cluster endpoint."""

    profiles: list[dict[str, Any]]
    n_clusters: int = Field(default=5, ge=1)


class ClusterItem(BaseModel):
    identity: str
    cluster: int


class ClusterResponse(BaseModel):
    assignments: list[ClusterItem]
    execution_time_ms: float
    response_id: UUID

    @pydantic.field_validator("execution_time_ms", mode="before")
    def round_execution_time_ms(cls, v: float) -> float:
        return round(v, 2)
