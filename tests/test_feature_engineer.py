from datetime import date

import pytest

from demand_sequences.errors import ConfigError, EmptyInputError
from demand_sequences.feature_engineer import TemporalAggregator, bucket_features, iter_buckets, region_id

from helpers import DOWNTOWN, MIDTOWN, make_rows


# ---------------------------------------------------------------- region_id

def test_region_id_same_cell():
    assert region_id(12.34, 56.78, 0.1) == "region_123_567"
    assert region_id(12.39, 56.79, 0.1) == "region_123_567"


def test_region_id_different_cell():
    assert region_id(12.34, 56.78, 0.1) != region_id(12.45, 56.78, 0.1)


def test_region_id_is_deterministic():
    first = region_id(-73.9851, 40.7589)
    assert all(region_id(-73.9851, 40.7589) == first for _ in range(5))


def test_region_id_floors_negative_coordinates():
    # floor, not truncation: -0.01 / 0.05 = -0.2 -> -1
    assert region_id(-0.01, 0.01, 0.05) == "region_-1_0"


def test_region_id_default_size():
    assert region_id(0.07, 0.12) == "region_1_2"


@pytest.mark.parametrize("lon, lat", [(float("nan"), 1.0), (1.0, float("inf")), (float("-inf"), 0.0)])
def test_region_id_rejects_non_finite(lon, lat):
    with pytest.raises(ValueError):
        region_id(lon, lat, 0.05)


@pytest.mark.parametrize("size", [0, -0.05])
def test_region_id_rejects_bad_size(size):
    with pytest.raises(ValueError):
        region_id(1.0, 1.0, size)


# ---------------------------------------------------------- aggregation

def test_daily_demand_sums_to_trip_count(loader, two_region_rows):
    trips = loader.validate_rows(two_region_rows).trips
    aggregated = TemporalAggregator("daily").transform(trips)

    assert aggregated["demand"].sum() == len(trips)
    assert len(aggregated) == 20 + 5
    assert aggregated["hour"].isna().all()


def test_daily_buckets_sorted_by_date(two_region_aggregated):
    dates = two_region_aggregated["date"].tolist()
    assert dates == sorted(dates)


def test_bucket_counts_and_passengers(loader):
    rows = make_rows(MIDTOWN, 1, trips_per_day=lambda day: 3, passengers=2)
    rows.append({"pickup_datetime": "2024-01-01 09:00:00",
                 "pickup_longitude": MIDTOWN[0], "pickup_latitude": MIDTOWN[1]})
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)

    assert len(aggregated) == 1
    bucket = next(iter_buckets(aggregated))
    assert bucket.demand == 4
    assert bucket.total_passengers == 3 * 2 + 1
    assert bucket.hour is None
    # 2024-01-01 was a Monday
    assert bucket.day_of_week == 1
    assert bucket.is_weekend == 0
    assert bucket.month == 1


def test_weekend_flag(loader):
    # 2024-01-06 Saturday, 2024-01-07 Sunday
    rows = [
        {"pickup_datetime": "2024-01-06 10:00", "pickup_longitude": 1.01, "pickup_latitude": 1.01},
        {"pickup_datetime": "2024-01-07 10:00", "pickup_longitude": 1.01, "pickup_latitude": 1.01},
        {"pickup_datetime": "2024-01-08 10:00", "pickup_longitude": 1.01, "pickup_latitude": 1.01},
    ]
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)

    assert aggregated["day_of_week"].tolist() == [6, 0, 1]
    assert aggregated["is_weekend"].tolist() == [1, 1, 0]


def test_no_zero_buckets(loader):
    rows = make_rows(MIDTOWN, 1) + make_rows(DOWNTOWN, 1, start=date(2024, 1, 3))
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)

    assert len(aggregated) == 2
    assert (aggregated["demand"] > 0).all()


def test_hourly_buckets(loader):
    rows = (make_rows(MIDTOWN, 2, hour=8, trips_per_day=lambda day: 2)
            + make_rows(MIDTOWN, 2, hour=7))
    aggregated = TemporalAggregator("hourly").transform(loader.validate_rows(rows).trips)

    assert len(aggregated) == 4
    assert aggregated["demand"].sum() == 6
    keys = list(zip(aggregated["date"], aggregated["hour"]))
    assert keys == sorted(keys)
    assert aggregated.loc[aggregated["hour"] == 8, "demand"].tolist() == [2, 2]


def test_unknown_aggregation_level():
    with pytest.raises(ConfigError):
        TemporalAggregator("weekly")


def test_aggregate_empty_trips():
    with pytest.raises(EmptyInputError):
        TemporalAggregator("daily").transform([])


def test_bucket_features_channels(loader):
    rows = make_rows(MIDTOWN, 1, trips_per_day=lambda day: 4, passengers=3)
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)
    features = bucket_features(aggregated)

    assert features.shape == (1, 4)
    assert features[0].tolist() == pytest.approx([4.0, 1 / 6, 0.0, 3.0])
