"""Model store module for persisting trained predictor weights."""

from .model_store import ModelStore

__all__ = ["ModelStore"]
