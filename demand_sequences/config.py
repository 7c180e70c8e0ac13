from dataclasses import dataclass, asdict
from typing import Dict

from demand_sequences.errors import ConfigError

# Raw trip columns produced by the CSV decoder
DATA_CONFIG = {
    "timestamp_col": "pickup_datetime",
    "longitude_col": "pickup_longitude",
    "latitude_col": "pickup_latitude",
    "passenger_col": "passenger_count",

    # Aggregated bucket columns, in output order
    "bucket_cols": ["date", "hour", "region", "demand", "total_passengers",
                    "day_of_week", "month", "is_weekend"],
}

# Pipeline defaults
PIPELINE_CONFIG = {
    "aggregation_level": "daily",
    "region_size": 0.05,
    "sequence_length": 14,
    "train_ratio": 0.8,
    "days_to_predict": 7,
    "preview_limit": 10,
}

AGGREGATION_LEVELS = ("daily", "hourly")

# Bundled regressor settings
MODEL_CONFIG = {
    "models": {
        "LIGHTGBM": {
            "n_estimators": 300,
            "learning_rate": 0.05,
            "num_leaves": 31,
            "min_child_samples": 5,
            "random_state": 42,
            "n_jobs": -1,
            "objective": "regression",
            "verbose": -1,
        }
    }
}

PATH_CONFIG = {
    "logs_dir": "./logs/",
    "results_dir": "./results/",

    "pipeline_log": "pipeline.log",
    "forecast_log": "forecast_pipeline.log",
    "evaluation_results": "evaluation_results.csv",
    "forecast_results": "forecast_results.csv",
}


@dataclass(frozen=True)
class PipelineConfig:
    """Tunable parameters of one pipeline run."""
    aggregation_level: str = PIPELINE_CONFIG["aggregation_level"]
    region_size: float = PIPELINE_CONFIG["region_size"]
    sequence_length: int = PIPELINE_CONFIG["sequence_length"]
    train_ratio: float = PIPELINE_CONFIG["train_ratio"]
    days_to_predict: int = PIPELINE_CONFIG["days_to_predict"]

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, config: Dict) -> 'PipelineConfig':
        """Create from dictionary, falling back to PIPELINE_CONFIG defaults."""
        return cls(
            aggregation_level=config.get('aggregation_level', PIPELINE_CONFIG['aggregation_level']),
            region_size=config.get('region_size', PIPELINE_CONFIG['region_size']),
            sequence_length=config.get('sequence_length', PIPELINE_CONFIG['sequence_length']),
            train_ratio=config.get('train_ratio', PIPELINE_CONFIG['train_ratio']),
            days_to_predict=config.get('days_to_predict', PIPELINE_CONFIG['days_to_predict'])
        )

    def to_dict(self) -> Dict:
        return asdict(self)

    def validate(self):
        """Raise ConfigError naming the first out-of-range parameter."""
        if self.aggregation_level not in AGGREGATION_LEVELS:
            raise ConfigError(
                f"aggregation_level must be one of {AGGREGATION_LEVELS}, got {self.aggregation_level!r}"
            )
        if not isinstance(self.region_size, (int, float)) or isinstance(self.region_size, bool) \
                or not self.region_size > 0:
            raise ConfigError(f"region_size must be a number > 0, got {self.region_size!r}")
        if not _is_int(self.sequence_length) or self.sequence_length < 1:
            raise ConfigError(f"sequence_length must be an integer >= 1, got {self.sequence_length!r}")
        if not isinstance(self.train_ratio, (int, float)) or not 0 < self.train_ratio < 1:
            raise ConfigError(f"train_ratio must be strictly between 0 and 1, got {self.train_ratio!r}")
        if not _is_int(self.days_to_predict) or self.days_to_predict < 1:
            raise ConfigError(f"days_to_predict must be an integer >= 1, got {self.days_to_predict!r}")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
