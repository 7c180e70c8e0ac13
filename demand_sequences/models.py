# ============================================================================
# FILE: demand_sequences/models.py
# ============================================================================
"""
Data models and type definitions.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np
import pandas as pd


@dataclass(frozen=True)
class TripRecord:
    """One validated pickup, with the calendar fields derived from its timestamp."""
    timestamp: pd.Timestamp
    date: str
    hour: int
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    month: int
    region: str
    longitude: float
    latitude: float
    passenger_count: int = 1

    @property
    def is_weekend(self) -> int:
        return 1 if self.day_of_week in (0, 6) else 0


@dataclass(frozen=True)
class AggregateBucket:
    """Demand for one (date[, hour], region) key."""
    date: str
    hour: Optional[int]
    region: str
    demand: int
    total_passengers: int
    day_of_week: int
    month: int
    is_weekend: int

    @classmethod
    def from_row(cls, row: Dict) -> 'AggregateBucket':
        """Create from one row of the aggregated DataFrame."""
        hour = row.get('hour')
        return cls(
            date=row['date'],
            hour=None if hour is None or pd.isna(hour) else int(hour),
            region=row['region'],
            demand=int(row['demand']),
            total_passengers=int(row['total_passengers']),
            day_of_week=int(row['day_of_week']),
            month=int(row['month']),
            is_weekend=int(row['is_weekend'])
        )


@dataclass(frozen=True)
class SampleLabel:
    """Where and when a target (or a forecast) belongs."""
    date: str
    region: str
    hour: Optional[int] = None

    def to_dict(self) -> Dict:
        data = {"date": self.date, "region": self.region}
        if self.hour is not None:
            data["hour"] = self.hour
        return data


@dataclass(frozen=True)
class ValidationResult:
    """Trips that survived validation, with the size of the raw input."""
    trips: Tuple[TripRecord, ...]
    raw_count: int

    @property
    def dropped_count(self) -> int:
        return self.raw_count - len(self.trips)


@dataclass(frozen=True)
class Sequence:
    """All (window, target) pairs across regions.

    features: [sample, window_position, channel]
    targets:  [sample]
    """
    features: np.ndarray
    targets: np.ndarray
    labels: Tuple[SampleLabel, ...]
    regions: Tuple[str, ...]
    sequence_length: int

    def __len__(self) -> int:
        return int(self.features.shape[0])

    @property
    def feature_count(self) -> int:
        return int(self.features.shape[2])


@dataclass(frozen=True)
class TrainData:
    features: np.ndarray
    targets: np.ndarray

    def __len__(self) -> int:
        return int(self.features.shape[0])


@dataclass(frozen=True)
class TestData:
    __test__ = False  # not a pytest class

    features: np.ndarray
    targets: np.ndarray
    labels: Tuple[SampleLabel, ...]
    original_targets: np.ndarray

    def __len__(self) -> int:
        return int(self.features.shape[0])


@dataclass(frozen=True)
class Split:
    """Normalized train/test partition plus the scalers fitted on the train part."""
    train: TrainData
    test: TestData
    feature_scaler: object
    target_scaler: object

    @property
    def feature_count(self) -> int:
        return int(self.train.features.shape[2])

    @property
    def sequence_length(self) -> int:
        return int(self.train.features.shape[1])


@dataclass(frozen=True)
class FutureSequence:
    """One normalized input window per region and the future labels it stands for."""
    features: np.ndarray
    regions: Tuple[str, ...]
    labels: Tuple[SampleLabel, ...]
    last_date: str
    days_to_predict: int

    def __len__(self) -> int:
        return int(self.features.shape[0])

    def labels_for(self, region: str) -> List[SampleLabel]:
        return [label for label in self.labels if label.region == region]


@dataclass(frozen=True)
class PipelineContext:
    """Results of every stage run so far; each stage returns a new context."""
    raw_count: int = 0
    validation: Optional[ValidationResult] = None
    aggregated: Optional[pd.DataFrame] = None
    sequence: Optional[Sequence] = None
    split: Optional[Split] = None
    stages: Tuple[str, ...] = field(default_factory=tuple)
