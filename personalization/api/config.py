from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    config_path: Path | None = Field(default=None, description="Path to the pipeline YAML config")
    model_dir: Path | None = Field(default=None, description="Overrides paths.model_dir of the pipeline config")
    log_level: str = Field(default="INFO", description="Console log level")
    log_dir: Path | None = Field(default=None, description="Directory for log files")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PERSONALIZATION_",
        extra="ignore",
    )
