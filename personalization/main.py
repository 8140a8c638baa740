"""Main entry point for the personalization analyzers.

Provides CLI interface for training, classification and serving.

Usage:
    # Train an analyzer from a dataset file
    python -m personalization.main train --analyzer behavior --dataset data/behavior.jsonl

    # Train with a config file and a model directory override
    python -m personalization.main train --config pipeline_config.yml --model-dir ./models \\
        --analyzer spam --dataset data/spam.csv

    # Classify a text
    python -m personalization.main classify --classifier sentiment --text "Harika bir maç"

    # Serve the WebSocket and HTTP API
    python -m personalization.main serve --host 0.0.0.0 --port 8000
"""

import argparse
from pathlib import Path
import sys

from personalization.analyzers.registry import AnalyzerRegistry
from personalization.domain.errors import PersonalizationError
from personalization.pipelines.config import load_config, get_default_config, PipelineConfig
from personalization.pipelines.training import TrainingPipeline, load_dataset
from personalization.utils.logging import setup_logging


def _load_pipeline_config(config_path: str | None, model_dir: str | None = None) -> PipelineConfig:
    """Load pipeline config from file or return defaults."""
    config = load_config(config_path) if config_path else get_default_config()
    if model_dir:
        config = config.with_model_dir(Path(model_dir))
    return config


def train(args: argparse.Namespace) -> None:
    """Run the training pipeline for one analyzer."""
    config = _load_pipeline_config(args.config, args.model_dir)
    dataset_path = Path(args.dataset)

    print(f"Loading data from {dataset_path}")
    examples = load_dataset(dataset_path)
    print(f"Examples: {len(examples)}")

    registry = AnalyzerRegistry(config)
    registry.load_all()

    print("\nStarting training pipeline...")
    print(f"Model config: max_depth={config.model.max_depth}, lr={config.model.learning_rate}, n_estimators={config.model.n_estimators}")
    print(f"Training config: validation_fraction={config.training.validation_fraction}")

    report = TrainingPipeline(registry).run(
        args.analyzer, examples, dataset_name=args.dataset_name or dataset_path.stem
    )

    print("\n" + "=" * 60)
    print("TRAINING COMPLETE")
    print("=" * 60)
    print(report.summary())
    print(f"\nWeights saved to: {config.paths.model_dir}")


def classify(args: argparse.Namespace) -> None:
    """Classify a single text with a trained classifier."""
    config = _load_pipeline_config(args.config, args.model_dir)

    registry = AnalyzerRegistry(config)
    registry.load_all()
    result = registry.get_classifier(args.classifier).classify(args.text)

    print("\n" + "=" * 60)
    print("CLASSIFICATION RESULT")
    print("=" * 60)
    print(f"Classifier: {args.classifier}")
    print(f"Label: {result.label}")
    print(f"Confidence: {result.confidence:.6f}")
    for label, score in result.scores.items():
        print(f"  {label}: {score:.6f}")


def serve(args: argparse.Namespace) -> None:
    """Run the API server."""
    import uvicorn

    from personalization.api.app import create_app
    from personalization.api.config import AppConfig

    overrides = {"log_level": args.log_level}
    if args.config:
        overrides["config_path"] = Path(args.config)
    if args.model_dir:
        overrides["model_dir"] = Path(args.model_dir)
    if args.log_dir:
        overrides["log_dir"] = Path(args.log_dir)
    app_config = AppConfig(**overrides)

    uvicorn.run(create_app(app_config), host=args.host, port=args.port, log_level=args.log_level.lower())


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Personalization Analyzers")
    parser.add_argument("--log-level", type=str, default="INFO", help="Console log level")
    parser.add_argument("--log-dir", type=str, help="Directory for log files")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Training subcommand
    train_parser = subparsers.add_parser("train", help="Train or continue training an analyzer")
    train_parser.add_argument("--config", type=str, help="Path to YAML config file")
    train_parser.add_argument("--model-dir", type=str, help="Path to model weights (overrides config)")
    train_parser.add_argument("--analyzer", type=str, required=True, help="Analyzer or classifier name")
    train_parser.add_argument("--dataset", type=str, required=True, help="Dataset file (.jsonl, .json, .parquet, .csv)")
    train_parser.add_argument("--dataset-name", type=str, help="Dataset name recorded in the report")

    # Classification subcommand
    classify_parser = subparsers.add_parser("classify", help="Classify a text")
    classify_parser.add_argument("--config", type=str, help="Path to YAML config file")
    classify_parser.add_argument("--model-dir", type=str, help="Path to model weights (overrides config)")
    classify_parser.add_argument("--classifier", type=str, required=True, help="Classifier name")
    classify_parser.add_argument("--text", type=str, required=True, help="Text to classify")

    # Serve subcommand
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--config", type=str, help="Path to YAML config file")
    serve_parser.add_argument("--model-dir", type=str, help="Path to model weights (overrides config)")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    setup_logging(args.log_level, args.log_dir)

    commands = {"train": train, "classify": classify, "serve": serve}
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return

    try:
        command(args)
    except (PersonalizationError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
