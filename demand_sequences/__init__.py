from demand_sequences.config import PipelineConfig
from demand_sequences.encoder import GlobalMinMaxScaler
from demand_sequences.feature_engineer import TemporalAggregator, region_id
from demand_sequences.forecast import FutureExtrapolator
from demand_sequences.pipeline import SequencePipeline
from demand_sequences.sequence_builder import SequenceBuilder
from demand_sequences.splitter import split_sequences

__all__ = [
    "PipelineConfig",
    "GlobalMinMaxScaler",
    "TemporalAggregator",
    "region_id",
    "FutureExtrapolator",
    "SequencePipeline",
    "SequenceBuilder",
    "split_sequences",
]
