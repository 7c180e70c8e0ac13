"""
Shared pytest fixtures: synthetic trip rows and the frames built from them.
"""
import pytest

from demand_sequences.config import PipelineConfig
from demand_sequences.data_loader import TripDataLoader
from demand_sequences.feature_engineer import TemporalAggregator

from helpers import DOWNTOWN, MIDTOWN, make_rows, varying_demand


@pytest.fixture
def loader():
    return TripDataLoader()


@pytest.fixture
def two_region_rows():
    """Midtown: 20 days of varying demand; downtown: only 5 days."""
    return make_rows(MIDTOWN, 20, trips_per_day=varying_demand) + make_rows(DOWNTOWN, 5)


@pytest.fixture
def two_region_aggregated(loader, two_region_rows):
    trips = loader.validate_rows(two_region_rows).trips
    return TemporalAggregator("daily").transform(trips)


@pytest.fixture
def long_history_rows():
    """105 days in one region: 100 windows of length 5."""
    return make_rows(MIDTOWN, 105, trips_per_day=varying_demand, passengers=2)


@pytest.fixture
def small_config():
    return PipelineConfig(sequence_length=5, train_ratio=0.8, days_to_predict=7)
