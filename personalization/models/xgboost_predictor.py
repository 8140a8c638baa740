"""XGBoost multi-class predictor.

Wraps a ``multi:softprob`` booster behind the train/predict capability every
analyzer uses. Labels come from a fixed-order enumeration; inference returns
the full probability distribution plus its arg-max.

Training continues from the current weights when they exist, runs a fixed
number of boosting rounds and holds out a deterministic validation split for
reporting only (no early stopping).
"""

from dataclasses import dataclass, field
import threading
from typing import Sequence

import numpy as np
import xgboost as xgb
from loguru import logger

from personalization.domain.entities import (
    FeatureVector,
    LabelSet,
    ModelConfig,
    ScoreResult,
    TrainingConfig,
    TrainingReport,
)
from personalization.domain.errors import MalformedInput, NotInitialized, TrainingFailure
from personalization.metrics.metrics import compute_all_metrics, compute_baseline_metrics
from personalization.model_store.model_store import ModelStore


@dataclass
class XGBoostPredictor:
    """Trainable scorer over fixed-length feature vectors.

    One instance per analyzer; each owns its label enumeration, its input
    dimension and its slot in the model store.
    """

    name: str
    label_set: LabelSet
    n_features: int
    store: ModelStore | None = None
    config: ModelConfig = field(default_factory=ModelConfig)
    training_config: TrainingConfig = field(default_factory=TrainingConfig)
    feature_names: list[str] | None = None

    _booster: xgb.Booster | None = field(default=None, init=False, repr=False)
    _train_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def model_name(self) -> str:
        return self.name

    @property
    def is_fitted(self) -> bool:
        return self._booster is not None

    def train(
        self,
        batch: Sequence[tuple[FeatureVector | np.ndarray, str]],
        dataset_name: str | None = None,
    ) -> TrainingReport:
        """Fit weights to a labeled batch and persist them.

        Args:
            batch: (vector, label) pairs; labels must belong to the label set
            dataset_name: Optional name recorded in the report and metadata

        Returns:
            TrainingReport with validation metrics

        Raises:
            TrainingFailure: On an empty batch, a shape mismatch, an unknown
                label or a backend/persistence error. Existing weights are
                left untouched.
        """
        X, y = self._encode_batch(batch)

        with self._train_lock:
            train_idx, val_idx = self._split(len(y))
            X_train, y_train = X[train_idx], y[train_idx]

            dtrain = xgb.DMatrix(X_train, label=y_train)
            evals = [(dtrain, "train")]
            dval = None
            if len(val_idx) > 0:
                dval = xgb.DMatrix(X[val_idx], label=y[val_idx])
                evals.append((dval, "validation"))

            try:
                booster = xgb.train(
                    self._params(),
                    dtrain,
                    num_boost_round=self.config.n_estimators,
                    evals=evals,
                    xgb_model=self._booster,
                    verbose_eval=False,
                )
            except (xgb.core.XGBoostError, ValueError) as e:
                raise TrainingFailure(f"Training '{self.name}' failed: {e}") from e

            metrics: dict[str, float] = {}
            if dval is not None:
                y_val = y[val_idx]
                y_proba = booster.predict(dval).reshape(len(y_val), len(self.label_set))
                metrics = compute_all_metrics(y_val, y_proba)
                metrics.update(compute_baseline_metrics(y_val, y_train, len(self.label_set)))

            report = TrainingReport(
                model_name=self.name,
                train_samples=len(train_idx),
                validation_samples=len(val_idx),
                boosting_rounds=booster.num_boosted_rounds(),
                metrics=metrics,
                dataset_name=dataset_name,
            )

            if self.store is not None:
                try:
                    self.store.save(self.name, booster, self._metadata(report))
                except (OSError, TypeError, ValueError) as e:
                    raise TrainingFailure(f"Persisting '{self.name}' failed: {e}") from e

            self._booster = booster

        logger.info(
            f"Trained '{self.name}' on {report.train_samples} samples "
            f"({report.validation_samples} held out), {report.boosting_rounds} rounds total"
        )
        return report

    def predict(self, vector: FeatureVector | np.ndarray) -> ScoreResult:
        """Score a single vector.

        Raises:
            NotInitialized: If no weights exist yet
            MalformedInput: If the vector has the wrong dimension
        """
        booster = self._booster
        if booster is None:
            raise NotInitialized(f"Predictor '{self.name}' has no trained weights")

        x = self._as_array(vector)
        if x.shape != (self.n_features,):
            raise MalformedInput(
                f"Predictor '{self.name}' expects {self.n_features} features, got shape {x.shape}"
            )

        scores = booster.inplace_predict(x.reshape(1, -1))
        scores = np.asarray(scores).reshape(-1)[: len(self.label_set)]
        return ScoreResult.from_scores(self.label_set, scores)

    def load(self) -> bool:
        """Restore persisted weights. Returns whether weights were found."""
        if self.store is None or not self.store.exists(self.name):
            return False

        booster, metadata = self.store.load(self.name)
        stored_labels = tuple(metadata.get("labels", self.label_set.labels))
        stored_features = metadata.get("n_features", self.n_features)
        if stored_labels != self.label_set.labels or stored_features != self.n_features:
            logger.warning(
                f"Ignoring stored weights for '{self.name}': "
                f"labels={stored_labels} n_features={stored_features} do not match"
            )
            return False

        self._booster = booster
        logger.info(f"Loaded weights for '{self.name}' ({booster.num_boosted_rounds()} rounds)")
        return True

    def _encode_batch(self, batch) -> tuple[np.ndarray, np.ndarray]:
        if not batch:
            raise TrainingFailure(f"Empty training batch for '{self.name}'")

        rows = []
        labels = []
        for i, (vector, label) in enumerate(batch):
            x = self._as_array(vector)
            if x.shape != (self.n_features,):
                raise TrainingFailure(
                    f"Sample {i}: expected {self.n_features} features, got shape {x.shape}"
                )
            try:
                one_hot = self.label_set.one_hot(label)
            except ValueError as e:
                raise TrainingFailure(
                    f"Sample {i}: unknown label {label!r}, expected one of {self.label_set.labels}"
                ) from e
            rows.append(x)
            labels.append(one_hot)

        X = np.vstack(rows)
        y = np.argmax(np.vstack(labels), axis=1)
        if not np.all(np.isfinite(X)):
            raise TrainingFailure(f"Non-finite feature values in batch for '{self.name}'")
        return X, y

    def _split(self, n_samples: int) -> tuple[np.ndarray, np.ndarray]:
        """Deterministic shuffle, then hold out a fixed fraction."""
        rng = np.random.default_rng(self.config.random_state)
        order = rng.permutation(n_samples)
        n_val = int(n_samples * self.training_config.validation_fraction)
        if n_val < self.training_config.min_validation_samples or n_val >= n_samples:
            return order, order[:0]
        return order[n_val:], order[:n_val]

    def _params(self) -> dict:
        return {
            "objective": "multi:softprob",
            "num_class": len(self.label_set),
            "eval_metric": ["mlogloss", "merror"],
            "max_depth": self.config.max_depth,
            "learning_rate": self.config.learning_rate,
            "subsample": self.config.subsample,
            "colsample_bytree": self.config.colsample_bytree,
            "min_child_weight": self.config.min_child_weight,
            "reg_alpha": self.config.reg_alpha,
            "reg_lambda": self.config.reg_lambda,
            "seed": self.config.random_state,
            "nthread": 1,
        }

    def _metadata(self, report: TrainingReport) -> dict:
        return {
            "model_name": self.name,
            "labels": list(self.label_set.labels),
            "n_features": self.n_features,
            "feature_names": self.feature_names,
            "dataset_name": report.dataset_name,
            "trained_at": report.trained_at.isoformat(),
            "boosting_rounds": report.boosting_rounds,
            "metrics": report.metrics,
        }

    @staticmethod
    def _as_array(vector: FeatureVector | np.ndarray) -> np.ndarray:
        if isinstance(vector, FeatureVector):
            return np.asarray(vector.features, dtype=np.float64)
        return np.asarray(vector, dtype=np.float64)
