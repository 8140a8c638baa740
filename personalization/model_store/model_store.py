"""File-based model store.

Persists predictor weights keyed by model name:
    storage_path/
        model_name/
            CURRENT
            v-<version>/
                model.json
                metadata.json

A save stages the booster and its metadata together in a fresh version
directory, then publishes it by atomically replacing ``CURRENT``. Readers
only ever see a complete version, and a failed save leaves the previous
one in place.
"""

from dataclasses import dataclass
import json
import os
from pathlib import Path
import shutil
import tempfile
from typing import Any
import uuid

import xgboost as xgb
from loguru import logger


MODEL_FILE = "model.json"
METADATA_FILE = "metadata.json"
POINTER_FILE = "CURRENT"
VERSION_PREFIX = "v-"


@dataclass
class ModelStore:
    """Durable weight storage for XGBoost boosters."""

    storage_path: Path

    def __post_init__(self) -> None:
        self.storage_path = Path(self.storage_path)

    def exists(self, model_name: str) -> bool:
        return self._current_version(model_name) is not None

    def save(self, model_name: str, booster: xgb.Booster, metadata: dict[str, Any]) -> Path:
        """Persist a booster and its metadata, overwriting prior weights.

        Args:
            model_name: Key the weights are stored under
            booster: Trained booster
            metadata: JSON-serialisable description (labels, feature names, ...)

        Returns:
            Path to the saved model file
        """
        model_dir = self.storage_path / model_name
        model_dir.mkdir(parents=True, exist_ok=True)

        staging = Path(tempfile.mkdtemp(dir=model_dir, prefix=".staging-"))
        version_dir = model_dir / f"{VERSION_PREFIX}{uuid.uuid4().hex}"
        try:
            (staging / MODEL_FILE).write_bytes(booster.save_raw(raw_format="json"))
            (staging / METADATA_FILE).write_text(json.dumps(metadata, indent=2, default=str))
            os.replace(staging, version_dir)
            self._atomic_write(model_dir / POINTER_FILE, version_dir.name.encode("utf-8"))
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            shutil.rmtree(version_dir, ignore_errors=True)
            raise

        self._prune(model_dir, keep=version_dir.name)
        model_path = version_dir / MODEL_FILE
        logger.info(f"Saved model '{model_name}' to {model_path}")
        return model_path

    def load(self, model_name: str) -> tuple[xgb.Booster, dict[str, Any]]:
        """Load a booster and its metadata.

        Raises:
            FileNotFoundError: If nothing is stored under model_name
        """
        version_dir = self._current_version(model_name)
        if version_dir is None:
            raise FileNotFoundError(f"Model '{model_name}' not found under {self.storage_path}")

        booster = xgb.Booster()
        booster.load_model(str(version_dir / MODEL_FILE))

        with open(version_dir / METADATA_FILE) as f:
            metadata = json.load(f)

        return booster, metadata

    def list_models(self) -> list[str]:
        """List all stored model names."""
        if not self.storage_path.exists():
            return []
        return sorted(
            d.name for d in self.storage_path.iterdir()
            if d.is_dir() and self._current_version(d.name) is not None
        )

    def _current_version(self, model_name: str) -> Path | None:
        model_dir = self.storage_path / model_name
        pointer = model_dir / POINTER_FILE
        if not pointer.is_file():
            return None
        version_dir = model_dir / pointer.read_text().strip()
        if not (version_dir / MODEL_FILE).is_file():
            return None
        return version_dir

    @staticmethod
    def _prune(model_dir: Path, keep: str) -> None:
        for entry in model_dir.iterdir():
            if entry.is_dir() and entry.name.startswith(VERSION_PREFIX) and entry.name != keep:
                shutil.rmtree(entry, ignore_errors=True)

    @staticmethod
    def _atomic_write(path: Path, payload: bytes | bytearray) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
