from pathlib import Path
from typing import List

import numpy as np
import pandas as pd

from demand_sequences.config import PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.errors import InsufficientDataError
from demand_sequences.feature_engineer import bucket_features, sort_buckets
from demand_sequences.logger import setup_logger
from demand_sequences.models import SampleLabel, Sequence

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


class SequenceBuilder:
    """
    Slides a fixed-width window over each region's bucket history.

    Sample i of a region uses buckets [i - L, i) as input and bucket i's demand
    as target, so every window ends strictly before its target. Regions are
    processed independently and their samples appended in region order.
    """

    def __init__(self, sequence_length: int = PIPELINE_CONFIG["sequence_length"]):
        if sequence_length < 1:
            raise ValueError(f"sequence_length must be >= 1, got {sequence_length}")
        self.sequence_length = sequence_length

    def transform(self, aggregated: pd.DataFrame) -> Sequence:
        if aggregated is None or aggregated.empty:
            raise InsufficientDataError("No aggregated data available to build sequences")

        length = self.sequence_length
        logger.info(f"Creating sequences (sequence_length={length})")

        features: List[np.ndarray] = []
        targets: List[np.ndarray] = []
        labels: List[SampleLabel] = []
        regions: List[str] = []
        longest_history = 0

        for region in pd.unique(aggregated["region"]):
            region_df = region_history(aggregated, region)
            longest_history = max(longest_history, len(region_df))

            if len(region_df) <= length:
                logger.warning(f"Skipping region {region}: insufficient data ({len(region_df)} records)")
                continue

            windows, region_targets = self._windows(region_df)
            features.append(windows)
            targets.append(region_targets)
            labels.extend(_labels(region_df.iloc[length:]))
            regions.append(region)

        if not features:
            logger.error("No sequences could be created")
            raise InsufficientDataError(
                f"No sequences could be created: every region has at most {longest_history} records, "
                f"sequence_length={length} needs at least {length + 1}"
            )

        sequence = Sequence(
            features=_read_only(np.concatenate(features, axis=0)),
            targets=_read_only(np.concatenate(targets, axis=0)),
            labels=tuple(labels),
            regions=tuple(regions),
            sequence_length=length,
        )

        logger.info(
            f"Created {len(sequence)} sequences with shape: {list(sequence.features.shape)} "
            f"from {len(regions)} regions"
        )
        return sequence

    def _windows(self, region_df: pd.DataFrame):
        """All (window, target) pairs of one region, shapes [n, L, C] and [n]."""
        length = self.sequence_length
        encoded = bucket_features(region_df)
        demand = region_df["demand"].to_numpy(dtype=float)

        # sliding_window_view yields len - L + 1 windows; the last has no target
        windows = np.lib.stride_tricks.sliding_window_view(encoded, length, axis=0)[:-1]
        # [n, C, L] -> [n, L, C]
        windows = np.ascontiguousarray(windows.transpose(0, 2, 1))
        return windows, demand[length:].copy()


def region_history(aggregated: pd.DataFrame, region: str) -> pd.DataFrame:
    """One region's buckets in chronological order"""
    return sort_buckets(aggregated[aggregated["region"] == region])


def _labels(target_rows: pd.DataFrame) -> List[SampleLabel]:
    labels = []
    for row in target_rows.to_dict(orient="records"):
        hour = row.get("hour")
        labels.append(SampleLabel(
            date=row["date"],
            region=row["region"],
            hour=None if hour is None or pd.isna(hour) else int(hour),
        ))
    return labels


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array
