"""Training pipeline for the personalization analyzers.

Orchestrates the operator training workflow:
1. Dataset loading (JSON lines, JSON, Parquet or CSV)
2. Record parsing into labeled examples
3. Vectorization by the target analyzer
4. Model training with validation
5. Weight persistence through the model store
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import polars as pl
from loguru import logger

from personalization.analyzers.registry import AnalyzerRegistry
from personalization.domain.entities import (
    TrainingExample,
    TrainingReport,
    UserBehaviorProfile,
)
from personalization.domain.errors import MalformedInput
from personalization.pipelines.config import PipelineConfig, load_config, get_default_config
from personalization.realtime.events import (
    build_profile,
    parse_content,
    parse_market,
    parse_profile_update,
)


_READERS = {
    ".jsonl": pl.read_ndjson,
    ".ndjson": pl.read_ndjson,
    ".json": pl.read_json,
    ".parquet": pl.read_parquet,
    ".csv": pl.read_csv,
}

_TRAINING_IDENTITY = "training"


def profile_from_payload(payload: dict[str, Any], now: datetime | None = None) -> UserBehaviorProfile:
    """Build a full profile from an activity-shaped payload."""
    return build_profile(parse_profile_update(payload), _TRAINING_IDENTITY, now)


def example_from_record(record: dict[str, Any], now: datetime | None = None) -> TrainingExample:
    """Parse one dataset row or request item into a training example.

    Raises:
        MalformedInput: If the record has no label or a nested entity is not an object
    """
    label = record.get("label")
    if label is None or label == "":
        raise MalformedInput("Training record is missing 'label'")

    profile = record.get("profile")
    if profile is not None and not isinstance(profile, dict):
        raise MalformedInput("Training record 'profile' must be an object")

    content = record.get("content")
    if content is not None and not isinstance(content, dict):
        raise MalformedInput("Training record 'content' must be an object")

    market = record.get("market")
    if market is not None and not isinstance(market, dict):
        raise MalformedInput("Training record 'market' must be an object")

    text = record.get("text")
    return TrainingExample(
        label=str(label),
        profile=profile_from_payload(profile, now) if profile is not None else None,
        content=parse_content(content) if content is not None else None,
        text=str(text) if text is not None else None,
        market=parse_market(market) if market is not None else None,
    )


def load_dataset(path: Path | str, now: datetime | None = None) -> list[TrainingExample]:
    """Load labeled examples from a dataset file.

    Nested ``profile``, ``content`` and ``market`` objects are supported by the JSON and
    Parquet formats; CSV files carry ``label`` and ``text`` columns only.

    Raises:
        FileNotFoundError: If the dataset does not exist
        MalformedInput: If the format is unsupported or a row cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise MalformedInput(f"Unsupported dataset format '{path.suffix}'")

    df = reader(path)
    if "label" not in df.columns:
        raise MalformedInput(f"Dataset {path.name} has no 'label' column")

    examples = []
    for row_number, record in enumerate(df.to_dicts(), start=1):
        try:
            examples.append(example_from_record(record, now))
        except MalformedInput as e:
            raise MalformedInput(f"{path.name} row {row_number}: {e}") from e

    logger.info(f"Loaded {len(examples)} examples from {path}")
    return examples


@dataclass
class TrainingPipeline:
    """Pipeline for training one analyzer on a labeled batch.

    A failed run raises and leaves both the in-memory model and the
    persisted weights untouched.
    """

    registry: AnalyzerRegistry = field(default_factory=AnalyzerRegistry)

    def run(
        self,
        analyzer_name: str,
        examples: Sequence[TrainingExample],
        dataset_name: str | None = None,
    ) -> TrainingReport:
        """Execute a training call.

        Args:
            analyzer_name: Real-time, predictive or text classifier name
            examples: Labeled examples
            dataset_name: Informational name recorded in the report

        Returns:
            Training report with validation metrics

        Raises:
            UnknownAnalyzer: If no analyzer has that name
            TrainingFailure: If the batch is rejected or fitting fails
        """
        analyzer = self.registry.get_trainable(analyzer_name)
        logger.info(
            f"Training '{analyzer_name}' on {len(examples)} examples"
            f" (dataset: {dataset_name or '-'})"
        )
        report = analyzer.train(examples, dataset_name=dataset_name)
        logger.info(f"Training '{analyzer_name}' finished: {report.metrics}")
        return report

    def run_file(self, analyzer_name: str, dataset_path: Path | str) -> TrainingReport:
        """Load a dataset file and train on it."""
        dataset_path = Path(dataset_path)
        examples = load_dataset(dataset_path)
        return self.run(analyzer_name, examples, dataset_name=dataset_path.stem)


def run_training(
    analyzer_name: str,
    dataset_path: Path | str,
    model_dir: Path | None = None,
    config_path: Path | str | None = None,
) -> TrainingReport:
    """Convenience function to train one analyzer from a dataset file.

    Args:
        analyzer_name: Real-time analyzer or text classifier name
        dataset_path: Path to the dataset file
        model_dir: Where weights are stored (overrides config if provided)
        config_path: Path to YAML configuration file

    Returns:
        Training report
    """
    config = _resolve_config(config_path, model_dir)
    registry = AnalyzerRegistry(config)
    registry.load_all()
    return TrainingPipeline(registry).run_file(analyzer_name, dataset_path)


def _resolve_config(config_path: Path | str | None, model_dir: Path | None) -> PipelineConfig:
    """Load configuration and apply path overrides."""
    if config_path is not None:
        config = load_config(config_path)
    else:
        config = get_default_config()

    if model_dir is not None:
        config = config.with_model_dir(model_dir)

    return config
