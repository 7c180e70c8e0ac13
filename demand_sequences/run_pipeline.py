import argparse
import sys
from pathlib import Path

from demand_sequences.config import PATH_CONFIG, PIPELINE_CONFIG, PipelineConfig
from demand_sequences.data_processor import DataProcessor
from demand_sequences.errors import PipelineError
from demand_sequences.logger import setup_logger
from demand_sequences.pipeline import SequencePipeline, evaluate_model
from demand_sequences.regressor import LightGBMSequenceRegressor

log_dir = Path(PATH_CONFIG["logs_dir"])
logger = setup_logger(__name__, f"{log_dir}/{PATH_CONFIG['pipeline_log']}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Turn raw taxi trips into demand sequences and forecast')

    parser.add_argument('--csv', required=True, help='CSV file with pickup_datetime, pickup_longitude, pickup_latitude')
    parser.add_argument('--aggregation-level', choices=['daily', 'hourly'],
                        default=PIPELINE_CONFIG['aggregation_level'], help='Bucket granularity')
    parser.add_argument('--region-size', type=float, default=PIPELINE_CONFIG['region_size'],
                        help='Grid cell size in degrees')
    parser.add_argument('--sequence-length', type=int, default=PIPELINE_CONFIG['sequence_length'],
                        help='Window width in buckets')
    parser.add_argument('--train-ratio', type=float, default=PIPELINE_CONFIG['train_ratio'],
                        help='Share of sequences used for training')
    parser.add_argument('--days-to-predict', type=int, default=PIPELINE_CONFIG['days_to_predict'],
                        help='Forecast horizon')
    parser.add_argument('--train', action='store_true', help='Train LightGBM, evaluate and forecast')
    parser.add_argument('--rolling', action='store_true', help='Re-predict every forecast step')
    parser.add_argument('--output-dir', default=PATH_CONFIG['results_dir'], help='Where result CSVs go')

    return parser.parse_args(argv)


def main(argv=None):
    """Run the pipeline from the command line; returns a process exit code"""
    params = parse_args(argv)

    logger.info("🚀 Starting demand sequence pipeline...")
    logger.info("=" * 60)

    try:
        config = PipelineConfig(
            aggregation_level=params.aggregation_level,
            region_size=params.region_size,
            sequence_length=params.sequence_length,
            train_ratio=params.train_ratio,
            days_to_predict=params.days_to_predict,
        )

        with SequencePipeline(config) as pipeline:
            context = pipeline.prepare(params.csv)

            summary = DataProcessor.get_data_summary(context)
            logger.info("=== DATA SUMMARY ===")
            for key, value in summary.items():
                logger.info(f"{key:<18}: {value}")

            if not params.train:
                logger.info("Skipping training (pass --train to fit and forecast)")
                return 0

            regressor = LightGBMSequenceRegressor()
            regressor.fit(context.split.train.features, context.split.train.targets)

            metrics, predictions = evaluate_model(regressor, context.split)
            logger.info("=== MODEL RESULTS SUMMARY ===")
            logger.info(
                f"LIGHTGBM       : Test MAE={metrics['mae_trips']:.2f} trips | "
                f"Accuracy={metrics['accuracy_pct']:.1f}% | Test Size={metrics['test_size']}"
            )
            DataProcessor.save_results(predictions, params.output_dir, PATH_CONFIG['evaluation_results'])

            forecast = pipeline.forecast(regressor, context, rolling=params.rolling)
            DataProcessor.save_results(forecast, params.output_dir, PATH_CONFIG['forecast_results'])

    except PipelineError as e:
        logger.error(f"❌ Pipeline failed: {e}")
        return 1

    logger.info("=" * 60)
    logger.info("🎉 Pipeline finished successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
