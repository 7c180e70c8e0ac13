from pathlib import Path
from typing import Dict

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from demand_sequences.config import PATH_CONFIG
from demand_sequences.errors import DegenerateScaleError
from demand_sequences.logger import setup_logger

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


class GlobalMinMaxScaler(BaseEstimator, TransformerMixin):
    """
    Min-max scaler using one scalar min/max over the whole array.

    Unlike sklearn's MinMaxScaler the bounds are not per column: a
    [samples, window, channel] feature array shares a single (min, max).
    Bounds are frozen by fit() and reused for every later transform.
    """

    def __init__(self, epsilon: float = 1e-12):
        self.epsilon = epsilon

    def fit(self, X, y=None):
        """Record the global min and max of X"""
        values = np.asarray(X, dtype=float)
        if values.size == 0:
            raise ValueError("Cannot fit a scaler on an empty array")

        data_min = float(np.min(values))
        data_max = float(np.max(values))

        if data_max - data_min < self.epsilon:
            logger.error(f"Degenerate scale: min == max == {data_min}")
            raise DegenerateScaleError(
                f"Cannot scale data with min == max ({data_min}); range is below {self.epsilon}"
            )

        self.min_ = data_min
        self.max_ = data_max
        self.range_ = data_max - data_min
        logger.info(f"Fitted scaler on {values.size} values: min={data_min:.4f}, max={data_max:.4f}")
        return self

    def transform(self, X):
        """(x - min) / (max - min)"""
        check_is_fitted(self, ["min_", "max_"])
        return (np.asarray(X, dtype=float) - self.min_) / self.range_

    def inverse_transform(self, X):
        """x * (max - min) + min"""
        check_is_fitted(self, ["min_", "max_"])
        return np.asarray(X, dtype=float) * self.range_ + self.min_

    # Names used throughout the pipeline
    def normalize(self, X):
        return self.transform(X)

    def denormalize(self, X):
        return self.inverse_transform(X)

    @property
    def bounds(self) -> Dict[str, float]:
        check_is_fitted(self, ["min_", "max_"])
        return {"min": self.min_, "max": self.max_}
