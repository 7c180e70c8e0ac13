from pathlib import Path
from typing import Dict, Optional, Protocol

import numpy as np
from lightgbm import LGBMRegressor
from sklearn.exceptions import NotFittedError
from sklearn.metrics import mean_absolute_error, mean_squared_error

from demand_sequences.config import MODEL_CONFIG, PATH_CONFIG
from demand_sequences.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


class Regressor(Protocol):
    """What the pipeline needs from a model: [N, L, C] windows in, [N] values out."""

    def fit(self, features: np.ndarray, targets: np.ndarray) -> "Regressor":
        ...

    def predict(self, features: np.ndarray) -> np.ndarray:
        ...

    def evaluate(self, features: np.ndarray, targets: np.ndarray) -> Dict[str, float]:
        ...


class LightGBMSequenceRegressor:
    """
    LightGBM over flattened windows.

    Each [L, C] window becomes one row of L * C columns, ordered window
    position first, so column j * C + c is channel c at position j.
    """

    def __init__(self, params: Optional[Dict] = None):
        self.params = dict(MODEL_CONFIG["models"]["LIGHTGBM"])
        if params:
            self.params.update(params)
        self.model = LGBMRegressor(**self.params)
        self.is_trained = False
        self.input_shape = None

    def fit(self, features: np.ndarray, targets: np.ndarray) -> "LightGBMSequenceRegressor":
        X = self._flatten(features)
        y = np.asarray(targets, dtype=float).ravel()
        logger.info(f"Training LIGHTGBM on {X.shape[0]} windows ({X.shape[1]} columns)")

        self.input_shape = tuple(np.shape(features)[1:])
        self.model.fit(X, y)
        self.is_trained = True

        logger.info("✅ Training completed")
        return self

    def predict(self, features: np.ndarray) -> np.ndarray:
        if not self.is_trained:
            raise NotFittedError("Model not trained")
        if tuple(np.shape(features)[1:]) != self.input_shape:
            raise ValueError(
                f"Expected windows of shape {self.input_shape}, got {tuple(np.shape(features)[1:])}"
            )
        return np.asarray(self.model.predict(self._flatten(features)), dtype=float)

    def evaluate(self, features: np.ndarray, targets: np.ndarray) -> Dict[str, float]:
        """MSE loss and MAE on the given (normalized) targets"""
        y_true = np.asarray(targets, dtype=float).ravel()
        y_pred = self.predict(features)
        return {
            "loss": float(mean_squared_error(y_true, y_pred)),
            "mae": float(mean_absolute_error(y_true, y_pred)),
        }

    @staticmethod
    def _flatten(features: np.ndarray) -> np.ndarray:
        array = np.asarray(features, dtype=float)
        if array.ndim != 3:
            raise ValueError(f"Expected a 3-D [samples, window, channel] array, got {array.ndim}-D")
        return array.reshape(array.shape[0], -1)
