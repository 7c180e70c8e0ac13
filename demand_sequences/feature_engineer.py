import math
from pathlib import Path
from typing import Iterable, List

import numpy as np
import pandas as pd

from demand_sequences.config import AGGREGATION_LEVELS, DATA_CONFIG, PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.errors import ConfigError, EmptyInputError
from demand_sequences.logger import setup_logger
from demand_sequences.models import AggregateBucket, TripRecord

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


def region_id(longitude: float, latitude: float, region_size: float = PIPELINE_CONFIG["region_size"]) -> str:
    """
    Map a coordinate onto its fixed-size grid cell.

    Args:
        longitude: Degrees east.
        latitude: Degrees north.
        region_size: Cell edge length in degrees.

    Returns:
        "region_{lon_cell}_{lat_cell}" with cell = floor(coordinate / region_size).
    """
    if not region_size > 0:
        raise ValueError(f"region_size must be > 0, got {region_size}")
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        raise ValueError(f"Coordinates must be finite, got ({longitude}, {latitude})")

    lon_cell = math.floor(longitude / region_size)
    lat_cell = math.floor(latitude / region_size)
    return f"region_{lon_cell}_{lat_cell}"


class TemporalAggregator:
    """Groups validated trips into per-(date[, hour], region) demand buckets."""

    def __init__(self, aggregation_level: str = PIPELINE_CONFIG["aggregation_level"]):
        if aggregation_level not in AGGREGATION_LEVELS:
            raise ConfigError(
                f"aggregation_level must be one of {AGGREGATION_LEVELS}, got {aggregation_level!r}"
            )
        self.aggregation_level = aggregation_level
        self.config = DATA_CONFIG

    @property
    def key_cols(self) -> List[str]:
        if self.aggregation_level == "hourly":
            return ["date", "hour", "region"]
        return ["date", "region"]

    def transform(self, trips: Iterable[TripRecord]) -> pd.DataFrame:
        """
        Aggregate trips into demand buckets.

        Returns:
            DataFrame with DATA_CONFIG["bucket_cols"], one row per key, sorted
            ascending by date (then hour). "hour" is None for daily buckets.
        """
        trips_df = self._trips_to_frame(trips)
        if trips_df.empty:
            raise EmptyInputError("No processed trips available to aggregate")

        logger.info(f"Aggregating {len(trips_df)} trips ({self.aggregation_level})")

        aggregated = (
            trips_df.groupby(self.key_cols, sort=False)
            .agg(
                demand=("passenger_count", "size"),
                total_passengers=("passenger_count", "sum"),
                day_of_week=("day_of_week", "first"),
                month=("month", "first"),
            )
            .reset_index()
        )

        aggregated["is_weekend"] = aggregated["day_of_week"].isin([0, 6]).astype(int)
        if self.aggregation_level == "daily":
            aggregated["hour"] = None

        aggregated = sort_buckets(aggregated)
        aggregated = aggregated[self.config["bucket_cols"]]

        logger.info(f"Aggregated {len(aggregated)} records across {aggregated['region'].nunique()} regions")
        return aggregated

    @staticmethod
    def _trips_to_frame(trips: Iterable[TripRecord]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "date": trip.date,
                    "hour": trip.hour,
                    "region": trip.region,
                    "passenger_count": trip.passenger_count,
                    "day_of_week": trip.day_of_week,
                    "month": trip.month,
                }
                for trip in trips
            ],
            columns=["date", "hour", "region", "passenger_count", "day_of_week", "month"],
        )


def sort_buckets(aggregated: pd.DataFrame) -> pd.DataFrame:
    """Stable sort by date, then hour; equal keys keep first-seen order."""
    order = ["date"] if aggregated["hour"].isna().all() else ["date", "hour"]
    return aggregated.sort_values(order, kind="stable").reset_index(drop=True)


def iter_buckets(aggregated: pd.DataFrame):
    """Yield AggregateBucket records in frame order."""
    for row in aggregated.to_dict(orient="records"):
        yield AggregateBucket.from_row(row)


def bucket_features(buckets: pd.DataFrame) -> np.ndarray:
    """
    Encode buckets as window feature vectors.

    Channels: [demand, day_of_week / 6, is_weekend, total_passengers / max(1, demand)].
    """
    demand = buckets["demand"].to_numpy(dtype=float)
    day_of_week = buckets["day_of_week"].to_numpy(dtype=float)
    is_weekend = buckets["is_weekend"].to_numpy(dtype=float)
    total_passengers = buckets["total_passengers"].to_numpy(dtype=float)

    return np.column_stack([
        demand,
        day_of_week / 6,
        is_weekend,
        total_passengers / np.maximum(1.0, demand),
    ])
