from datetime import timedelta
from pathlib import Path
from typing import Iterable, List

import numpy as np
import pandas as pd

from demand_sequences.config import PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.encoder import GlobalMinMaxScaler
from demand_sequences.errors import NoFutureDataError
from demand_sequences.feature_engineer import bucket_features
from demand_sequences.logger import setup_logger
from demand_sequences.models import FutureSequence, SampleLabel, Split
from demand_sequences.regressor import Regressor
from demand_sequences.sequence_builder import region_history

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['forecast_log']}")


class FutureExtrapolator:
    """
    Builds prediction inputs for the period after the observed data.

    build() returns one window per region (its latest buckets); every future
    label of a region maps to that one prediction. roll_forward() instead
    predicts step by step, feeding each prediction back into the window.
    """

    def __init__(self, days_to_predict: int = PIPELINE_CONFIG["days_to_predict"]):
        if days_to_predict < 1:
            raise ValueError(f"days_to_predict must be >= 1, got {days_to_predict}")
        self.days_to_predict = days_to_predict

    def build(self, aggregated: pd.DataFrame, regions: Iterable[str], sequence_length: int,
              feature_scaler: GlobalMinMaxScaler) -> FutureSequence:
        """
        Latest window per region, normalized with the train-fitted feature scaler.

        Raises:
            NoFutureDataError: no region has at least sequence_length buckets.
        """
        if aggregated is None or aggregated.empty:
            raise NoFutureDataError("No aggregated data available for future prediction")

        last_date = pd.Timestamp(aggregated["date"].max())
        future_dates = [
            (last_date + timedelta(days=step)).strftime("%Y-%m-%d")
            for step in range(1, self.days_to_predict + 1)
        ]

        windows = []
        used_regions = []
        labels = []

        for region in regions:
            history = region_history(aggregated, region)
            if len(history) < sequence_length:
                logger.warning(f"Skipping region {region}: {len(history)} records < {sequence_length}")
                continue

            windows.append(bucket_features(history.tail(sequence_length)))
            used_regions.append(region)
            labels.extend(SampleLabel(date=date, region=region) for date in future_dates)

        if not windows:
            logger.error("Could not generate future sequences")
            raise NoFutureDataError(
                f"Could not generate future sequences: no region has {sequence_length} records"
            )

        features = feature_scaler.normalize(np.stack(windows, axis=0))
        logger.info(
            f"Built {len(used_regions)} future windows; labels {future_dates[0]} → {future_dates[-1]}"
        )

        return FutureSequence(
            features=features,
            regions=tuple(used_regions),
            labels=tuple(labels),
            last_date=last_date.strftime("%Y-%m-%d"),
            days_to_predict=self.days_to_predict,
        )

    def roll_forward(self, regressor: Regressor, aggregated: pd.DataFrame, regions: Iterable[str],
                     split: Split) -> pd.DataFrame:
        """
        Forecast days_to_predict steps per region, one step at a time.

        Each step predicts from the current window, then appends a synthetic
        bucket (rounded, non-negative demand; calendar channels for the new
        step; average passengers carried from the latest bucket) and drops
        the oldest one. Steps are days for daily data and hours for hourly.
        """
        sequence_length = split.sequence_length
        hourly = aggregated["hour"].notna().any()
        step_size = timedelta(hours=1) if hourly else timedelta(days=1)

        windows = []
        used_regions = []
        last_seen = []

        for region in regions:
            history = region_history(aggregated, region)
            if len(history) < sequence_length:
                continue
            windows.append(bucket_features(history.tail(sequence_length)))
            used_regions.append(region)
            last_seen.append(_bucket_timestamp(history.iloc[-1]))

        if not windows:
            raise NoFutureDataError(
                f"Could not generate future sequences: no region has {sequence_length} records"
            )

        start = max(last_seen)
        current = np.stack(windows, axis=0)
        results = []

        logger.info(f"📊 Starting iterative forecast for {len(used_regions)} regions, "
                    f"{self.days_to_predict} steps")

        for step in range(1, self.days_to_predict + 1):
            ts = start + step * step_size
            preds = _predict_demand(regressor, split.feature_scaler.normalize(current), split)

            day_of_week = (ts.dayofweek + 1) % 7
            is_weekend = 1 if day_of_week in (0, 6) else 0
            next_rows = np.column_stack([
                preds.astype(float),
                np.full(len(preds), day_of_week / 6),
                np.full(len(preds), float(is_weekend)),
                current[:, -1, 3],
            ])
            current = np.concatenate([current[:, 1:, :], next_rows[:, np.newaxis, :]], axis=1)

            for region, prediction in zip(used_regions, preds):
                results.append({
                    "date": ts.strftime("%Y-%m-%d"),
                    "hour": ts.hour if hourly else None,
                    "region": region,
                    "predicted_demand": int(prediction),
                    "forecast_step": step,
                })
            logger.debug(f"  Step {step}: predicted {int(preds.sum())} trips at {ts}")

        logger.info(f"✅ Iterative forecast completed: {len(results)} total predictions")
        return pd.DataFrame(results)


def predict_future(regressor: Regressor, future: FutureSequence, split: Split) -> pd.DataFrame:
    """
    Predict once per region window and spread each value over that region's labels.

    Returns:
        DataFrame [date, region, predicted_demand] in original units.
    """
    preds = _predict_demand(regressor, future.features, split)
    by_region = dict(zip(future.regions, preds))

    rows: List[dict] = [
        {"date": label.date, "region": label.region, "predicted_demand": int(by_region[label.region])}
        for label in future.labels
    ]
    logger.info(f"Generated {len(rows)} future predictions for {len(future.regions)} regions")
    return pd.DataFrame(rows, columns=["date", "region", "predicted_demand"])


def _predict_demand(regressor: Regressor, windows: np.ndarray, split: Split) -> np.ndarray:
    """Normalized windows -> rounded, non-negative demand in trips"""
    preds = split.target_scaler.denormalize(regressor.predict(windows))
    preds = np.rint(np.asarray(preds, dtype=float).ravel()).astype(int)
    return np.maximum(preds, 0)


def _bucket_timestamp(row: pd.Series) -> pd.Timestamp:
    ts = pd.Timestamp(row["date"])
    hour = row.get("hour")
    if hour is not None and not pd.isna(hour):
        ts += timedelta(hours=int(hour))
    return ts
