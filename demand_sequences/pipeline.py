import gc
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error

from demand_sequences.config import PATH_CONFIG, PipelineConfig
from demand_sequences.data_loader import TripDataLoader
from demand_sequences.errors import (
    EmptyInputError,
    InsufficientDataError,
    NoFutureDataError,
    NoSequencesError,
    PipelineError,
)
from demand_sequences.feature_engineer import TemporalAggregator
from demand_sequences.forecast import FutureExtrapolator, predict_future
from demand_sequences.logger import setup_logger
from demand_sequences.models import FutureSequence, PipelineContext, Split
from demand_sequences.regressor import Regressor
from demand_sequences.sequence_builder import SequenceBuilder
from demand_sequences.splitter import split_sequences

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


class SequencePipeline:
    """
    Runs the stages in order, threading an immutable PipelineContext.

    Every stage method takes a context and returns a new one; a stage whose
    prerequisite is missing from the context raises the matching typed error.
    The most recent context is kept on the instance until close().
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

        self.data_loader = TripDataLoader(region_size=self.config.region_size)
        self.aggregator = TemporalAggregator(aggregation_level=self.config.aggregation_level)
        self.sequence_builder = SequenceBuilder(sequence_length=self.config.sequence_length)
        self.extrapolator = FutureExtrapolator(days_to_predict=self.config.days_to_predict)

        self.context = PipelineContext()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        """Drop the held context so its arrays can be reclaimed"""
        self.context = PipelineContext()
        gc.collect()
        logger.debug("🧹 Released pipeline buffers")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def ingest(self, source) -> PipelineContext:
        """Decode a CSV source and validate its rows"""
        rows = self.data_loader.load_csv(source)
        return self.ingest_rows(rows)

    def ingest_rows(self, rows: Iterable[Mapping[str, Any]]) -> PipelineContext:
        """Validate already-decoded rows; starts a fresh context"""
        validation = self.data_loader.validate_rows(rows)
        return self._advance(
            PipelineContext(),
            "ingest",
            raw_count=validation.raw_count,
            validation=validation,
        )

    def aggregate(self, context: PipelineContext) -> PipelineContext:
        if context.validation is None:
            raise EmptyInputError("No processed data available; ingest rows before aggregating")
        aggregated = self.aggregator.transform(context.validation.trips)
        return self._advance(context, "aggregate", aggregated=aggregated)

    def build_sequences(self, context: PipelineContext) -> PipelineContext:
        if context.aggregated is None:
            raise InsufficientDataError("No aggregated data available; aggregate before building sequences")
        sequence = self.sequence_builder.transform(context.aggregated)
        return self._advance(context, "sequences", sequence=sequence, split=None)

    def split(self, context: PipelineContext) -> PipelineContext:
        if context.sequence is None:
            raise NoSequencesError("No sequences created; build sequences before splitting")
        split = split_sequences(context.sequence, self.config.train_ratio)
        return self._advance(context, "split", split=split)

    def future_sequence(self, context: PipelineContext) -> FutureSequence:
        if context.aggregated is None or context.sequence is None or context.split is None:
            raise NoFutureDataError(
                "No data available for future prediction; aggregate, build sequences and split first"
            )
        return self.extrapolator.build(
            context.aggregated,
            context.sequence.regions,
            context.sequence.sequence_length,
            context.split.feature_scaler,
        )

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    def prepare(self, source=None, rows: Optional[Iterable[Mapping[str, Any]]] = None) -> PipelineContext:
        """
        Ingest, aggregate, build sequences and split.

        Args:
            source: CSV path or file handle (ignored when rows is given)
            rows: Already-decoded row mappings

        Returns:
            Context holding every stage result
        """
        logger.info("🚀 Starting sequence preparation pipeline...")
        logger.info(f"Config: {self.config.to_dict()}")

        try:
            context = self.ingest_rows(rows) if rows is not None else self.ingest(source)
            context = self.aggregate(context)
            context = self.build_sequences(context)
            context = self.split(context)
        except PipelineError as e:
            logger.error(f"❌ Pipeline failed: {e}")
            raise

        split = context.split
        logger.info(
            f"✅ Training data ready: {len(split.train)} train / {len(split.test)} test samples, "
            f"input shape [{split.sequence_length}, {split.feature_count}]"
        )
        self.context = context
        return context

    def train_and_evaluate(self, regressor: Regressor, context: Optional[PipelineContext] = None) -> Dict:
        """Fit the regressor on the train part and score it on the test part"""
        context = context or self.context
        if context.split is None:
            raise NoSequencesError("No training data prepared; run prepare() first")

        split = context.split
        regressor.fit(split.train.features, split.train.targets)
        results, _ = evaluate_model(regressor, split)
        return results

    def forecast(self, regressor: Regressor, context: Optional[PipelineContext] = None,
                 rolling: bool = False) -> pd.DataFrame:
        """
        Future demand per region in original units.

        With rolling=False every future date of a region shares one prediction
        made from its latest window; rolling=True re-predicts each step.
        """
        context = context or self.context
        if rolling:
            if context.aggregated is None or context.sequence is None or context.split is None:
                raise NoFutureDataError(
                    "No data available for future prediction; aggregate, build sequences and split first"
                )
            return self.extrapolator.roll_forward(
                regressor, context.aggregated, context.sequence.regions, context.split
            )

        future = self.future_sequence(context)
        predictions = predict_future(regressor, future, context.split)
        del future
        gc.collect()
        return predictions

    @staticmethod
    def _advance(context: PipelineContext, stage: str, **changes) -> PipelineContext:
        logger.debug(f"Stage '{stage}' completed")
        return replace(context, stages=context.stages + (stage,), **changes)


def evaluate_model(regressor: Regressor, split: Split) -> Tuple[Dict, pd.DataFrame]:
    """
    Score a fitted regressor on the test part.

    Returns:
        (metrics, predictions) where metrics holds the regressor's normalized
        loss/mae, accuracy as max(0, 1 - mae) in percent, MAE in trips, and
        predictions is one row per test sample with actual and predicted demand.
    """
    if len(split.test) == 0:
        raise NoSequencesError("Test split is empty; lower train_ratio or add data")

    logger.info("📊 Evaluating model...")
    evaluation = regressor.evaluate(split.test.features, split.test.targets)

    predicted = split.target_scaler.denormalize(regressor.predict(split.test.features))
    actual = np.asarray(split.test.original_targets, dtype=float)
    mae_trips = float(mean_absolute_error(actual, predicted))

    metrics = {
        'loss': float(evaluation['loss']),
        'mae': float(evaluation['mae']),
        'accuracy_pct': max(0.0, (1 - float(evaluation['mae'])) * 100),
        'mae_trips': mae_trips,
        'test_size': len(split.test),
        'test_period': f"{split.test.labels[0].date} → {split.test.labels[-1].date}",
    }
    logger.info(
        f"test_loss: {metrics['loss']:.4f} - test_mae: {metrics['mae']:.4f} - mae_trips: {mae_trips:.2f}"
    )

    # hourly labels add an "hour" column
    predictions = pd.DataFrame([label.to_dict() for label in split.test.labels])
    predictions['actual_demand'] = actual
    predictions['predicted_demand'] = predicted
    return metrics, predictions
