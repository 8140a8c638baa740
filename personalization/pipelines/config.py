"""Configuration loader for the personalization analyzers.

Provides typed configuration loading from YAML files with
sensible defaults and validation using Pydantic.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from personalization.domain.entities import ModelConfig, TrainingConfig


class PathsConfig(BaseModel):
    """Configuration for file system paths."""

    model_config = {"frozen": True}

    model_dir: Path = Field(default=Path("artifacts/models"))


class ModelHyperparamsConfig(BaseModel):
    """Configuration for model hyperparameters."""

    model_config = {"frozen": True}

    max_depth: int = Field(default=4, ge=1)
    learning_rate: float = Field(default=0.3, gt=0)
    n_estimators: int = Field(default=50, ge=1)
    subsample: float = Field(default=1.0, gt=0, le=1)
    colsample_bytree: float = Field(default=1.0, gt=0, le=1)
    min_child_weight: int = Field(default=1, ge=0)
    reg_alpha: float = Field(default=0.0, ge=0)
    reg_lambda: float = Field(default=1.0, ge=0)
    random_state: int = Field(default=42)


class TrainingParamsConfig(BaseModel):
    """Configuration for train calls."""

    model_config = {"frozen": True}

    validation_fraction: float = Field(default=0.2, ge=0, lt=1)
    min_validation_samples: int = Field(default=1, ge=1)


class RealtimeConfig(BaseModel):
    """Configuration for the session pipeline."""

    model_config = {"frozen": True}

    refresh_interval_seconds: float = Field(default=5.0, gt=0)
    recent_window: int = Field(default=5, ge=1)


class TextConfig(BaseModel):
    """Configuration for text vectorization."""

    model_config = {"frozen": True}

    hashing_features: int = Field(default=64, ge=8)


class PipelineConfig(BaseModel):
    """Complete configuration."""

    model_config = {"frozen": True}

    paths: PathsConfig = Field(default_factory=PathsConfig)
    model: ModelHyperparamsConfig = Field(default_factory=ModelHyperparamsConfig)
    training: TrainingParamsConfig = Field(default_factory=TrainingParamsConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    text: TextConfig = Field(default_factory=TextConfig)

    def with_base_path(self, base_path: Path) -> "PipelineConfig":
        """Return a new config with paths resolved against base_path."""
        def resolve(p: Path) -> Path:
            return p if p.is_absolute() else base_path / p

        resolved_paths = PathsConfig(model_dir=resolve(self.paths.model_dir))

        return self.model_copy(update={"paths": resolved_paths})

    def with_model_dir(self, model_dir: Path) -> "PipelineConfig":
        """Return a new config storing models under model_dir."""
        paths = self.paths.model_copy(update={"model_dir": Path(model_dir)})
        return self.model_copy(update={"paths": paths})

    def to_domain_model_config(self) -> ModelConfig:
        """Convert to domain ModelConfig entity."""
        return ModelConfig(**self.model.model_dump())

    def to_domain_training_config(self) -> TrainingConfig:
        """Convert to domain TrainingConfig entity."""
        return TrainingConfig(**self.training.model_dump())


def load_config(config_path: Path | str, base_path: Path | None = None) -> PipelineConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file
        base_path: Optional base path for resolving relative paths.
                   Defaults to the parent directory of the config file.

    Returns:
        PipelineConfig with all settings loaded

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    if base_path is None:
        base_path = config_path.parent

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = PipelineConfig.model_validate(data)
    return config.with_base_path(base_path)


def get_default_config(base_path: Path | None = None) -> PipelineConfig:
    """Get default configuration without loading from file."""
    config = PipelineConfig()
    if base_path:
        return config.with_base_path(base_path)
    return config
