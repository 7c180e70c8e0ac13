import math
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from demand_sequences.config import DATA_CONFIG, PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.errors import DecodeError, EmptyInputError
from demand_sequences.feature_engineer import region_id
from demand_sequences.logger import setup_logger
from demand_sequences.models import TripRecord, ValidationResult

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")

# Keywords pd.Timestamp resolves against the wall clock
RELATIVE_TIMESTAMPS = ("now", "today")


class TripDataLoader:
    def __init__(self, region_size: float = PIPELINE_CONFIG["region_size"]):
        self.data_config = DATA_CONFIG
        self.region_size = region_size

    @property
    def required_columns(self) -> List[str]:
        return [
            self.data_config["timestamp_col"],
            self.data_config["longitude_col"],
            self.data_config["latitude_col"],
        ]

    def load_csv(self, source) -> List[dict]:
        """
        Decode a CSV file into one dict per data line.

        Args:
            source: Path, path string, or an open text/binary file handle.

        Returns:
            List of row mappings with pandas-inferred value types.
        """
        name = getattr(source, "name", source)
        logger.info(f"Starting CSV parsing for {name}")

        try:
            df = pd.read_csv(source, skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
            logger.error(f"CSV parsing failed for {name}: {e}")
            raise DecodeError(f"CSV parsing failed: {e}") from e

        if df.empty:
            logger.error(f"CSV file {name} has a header but no rows")
            raise DecodeError("CSV file is empty or could not be parsed")

        # NaN -> None so missing cells look the same as absent keys
        rows = [
            {key: None if _is_missing(value) else value for key, value in record.items()}
            for record in df.to_dict(orient="records")
        ]

        logger.info(f"CSV parsing completed. Total rows: {len(rows)}")
        return rows

    def validate_rows(self, rows: Iterable[Mapping[str, Any]]) -> ValidationResult:
        """
        Coerce raw rows into TripRecords, silently dropping malformed ones.

        A row survives when its timestamp parses and both coordinates are
        finite numbers. Missing or invalid passenger counts default to 1.

        Raises:
            EmptyInputError: no row survived.
        """
        trips = []
        raw_count = 0

        for row in rows:
            raw_count += 1
            trip = self._to_trip(row)
            if trip is not None:
                trips.append(trip)

        logger.info(f"Valid records: {len(trips)}/{raw_count}")
        if raw_count > len(trips):
            logger.info(f"Dropped {raw_count - len(trips)} malformed records")

        if not trips:
            logger.error("No valid records found after validation")
            raise EmptyInputError(
                "No valid records found. Required columns: " + ", ".join(self.required_columns)
            )

        return ValidationResult(trips=tuple(trips), raw_count=raw_count)

    def _to_trip(self, row: Mapping[str, Any]) -> Optional[TripRecord]:
        timestamp = _parse_timestamp(row.get(self.data_config["timestamp_col"]))
        longitude = _parse_coordinate(row.get(self.data_config["longitude_col"]))
        latitude = _parse_coordinate(row.get(self.data_config["latitude_col"]))

        if timestamp is None or longitude is None or latitude is None:
            return None

        return TripRecord(
            timestamp=timestamp,
            date=timestamp.strftime("%Y-%m-%d"),
            hour=timestamp.hour,
            # pandas counts Monday as 0; trips count Sunday as 0
            day_of_week=(timestamp.dayofweek + 1) % 7,
            month=timestamp.month,
            region=region_id(longitude, latitude, self.region_size),
            longitude=longitude,
            latitude=latitude,
            passenger_count=_parse_passengers(row.get(self.data_config["passenger_col"])),
        )


def _parse_timestamp(value) -> Optional[pd.Timestamp]:
    # Bare numbers are rejected rather than read as epoch offsets
    if isinstance(value, str):
        if not value.strip() or value.strip().lower() in RELATIVE_TIMESTAMPS:
            return None
    elif not isinstance(value, (datetime, np.datetime64)):
        return None

    try:
        timestamp = pd.Timestamp(value.strip() if isinstance(value, str) else value)
    except (ValueError, TypeError, OverflowError):
        return None

    if pd.isna(timestamp):
        return None
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert("UTC").tz_localize(None)
    return timestamp


def _parse_coordinate(value) -> Optional[float]:
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_passengers(value) -> int:
    number = _parse_coordinate(value)
    if number is None or number < 1:
        return 1
    return int(number)


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))
