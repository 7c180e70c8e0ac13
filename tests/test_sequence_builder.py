import numpy as np
import pandas as pd
import pytest

from demand_sequences.errors import InsufficientDataError
from demand_sequences.feature_engineer import TemporalAggregator, bucket_features
from demand_sequences.sequence_builder import SequenceBuilder, region_history

from helpers import DOWNTOWN, MIDTOWN, make_rows, varying_demand


def test_two_regions_twenty_days(two_region_aggregated):
    sequence = SequenceBuilder(sequence_length=5).transform(two_region_aggregated)
    midtown = "region_-1480_815"

    # 20 days - 5 = 15 windows; downtown has only 5 days and yields none
    assert len(sequence) == 15
    assert sequence.regions == (midtown,)
    assert {label.region for label in sequence.labels} == {midtown}
    assert sequence.features.shape == (15, 5, 4)
    assert sequence.targets.shape == (15,)
    assert sequence.sequence_length == 5
    assert sequence.feature_count == 4


def test_both_regions_with_enough_history(loader):
    rows = make_rows(MIDTOWN, 20) + make_rows(DOWNTOWN, 20)
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)
    sequence = SequenceBuilder(sequence_length=5).transform(aggregated)

    assert len(sequence) == 30
    assert len(sequence.regions) == 2
    # samples are grouped by region, not interleaved by date
    first_region = [label.region for label in sequence.labels[:15]]
    assert len(set(first_region)) == 1


def test_exactly_length_plus_one_buckets(loader):
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(make_rows(MIDTOWN, 6)).trips)

    assert len(SequenceBuilder(sequence_length=5).transform(aggregated)) == 1


def test_no_look_ahead(two_region_aggregated):
    builder = SequenceBuilder(sequence_length=5)
    sequence = builder.transform(two_region_aggregated)

    for region in sequence.regions:
        history = region_history(two_region_aggregated, region)
        dates = history["date"].tolist()
        region_labels = [label for label in sequence.labels if label.region == region]
        for offset, label in enumerate(region_labels):
            window_dates = dates[offset:offset + 5]
            assert max(window_dates) < label.date
            assert dates[offset + 5] == label.date


def test_windows_and_targets_match_buckets(two_region_aggregated):
    sequence = SequenceBuilder(sequence_length=5).transform(two_region_aggregated)
    history = region_history(two_region_aggregated, sequence.regions[0])
    encoded = bucket_features(history)

    for i in range(len(sequence)):
        np.testing.assert_allclose(sequence.features[i], encoded[i:i + 5])
        assert sequence.targets[i] == history["demand"].iloc[i + 5]

    expected_targets = [varying_demand(day) for day in range(5, 20)]
    assert sequence.targets.tolist() == expected_targets


def test_windows_never_mix_regions(loader):
    # downtown demand is always 10, midtown always below 5
    rows = (make_rows(MIDTOWN, 12, trips_per_day=varying_demand)
            + make_rows(DOWNTOWN, 12, trips_per_day=lambda day: 10))
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(rows).trips)
    sequence = SequenceBuilder(sequence_length=3).transform(aggregated)

    for window, label in zip(sequence.features, sequence.labels):
        demand = window[:, 0]
        if label.region == "region_-1481_814":
            assert (demand == 10).all()
        else:
            assert (demand < 5).all()


def test_hourly_windows_follow_hours(loader):
    rows = []
    for hour in range(8):
        rows += make_rows(MIDTOWN, 1, hour=hour, trips_per_day=lambda day, h=hour: h + 1)
    aggregated = TemporalAggregator("hourly").transform(loader.validate_rows(rows).trips)
    sequence = SequenceBuilder(sequence_length=3).transform(aggregated)

    assert len(sequence) == 5
    assert [label.hour for label in sequence.labels] == [3, 4, 5, 6, 7]
    assert sequence.targets.tolist() == [4, 5, 6, 7, 8]
    np.testing.assert_allclose(sequence.features[0][:, 0], [1, 2, 3])


def test_arrays_are_read_only(two_region_aggregated):
    sequence = SequenceBuilder(sequence_length=5).transform(two_region_aggregated)

    with pytest.raises(ValueError):
        sequence.features[0, 0, 0] = 99.0
    with pytest.raises(ValueError):
        sequence.targets[0] = 99.0


def test_insufficient_data(loader):
    aggregated = TemporalAggregator("daily").transform(loader.validate_rows(make_rows(MIDTOWN, 5)).trips)

    with pytest.raises(InsufficientDataError, match="sequence_length=5"):
        SequenceBuilder(sequence_length=5).transform(aggregated)


def test_empty_aggregate():
    with pytest.raises(InsufficientDataError):
        SequenceBuilder(sequence_length=5).transform(pd.DataFrame(columns=["date", "region"]))


def test_invalid_length():
    with pytest.raises(ValueError):
        SequenceBuilder(sequence_length=0)
