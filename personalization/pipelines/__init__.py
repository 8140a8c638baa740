"""Pipeline configuration and the operator training flow."""

from .config import (
    PipelineConfig,
    PathsConfig,
    ModelHyperparamsConfig,
    TrainingParamsConfig,
    RealtimeConfig,
    TextConfig,
    load_config,
    get_default_config,
)

__all__ = [
    "PipelineConfig",
    "PathsConfig",
    "ModelHyperparamsConfig",
    "TrainingParamsConfig",
    "RealtimeConfig",
    "TextConfig",
    "load_config",
    "get_default_config",
]
