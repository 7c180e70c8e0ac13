# ============================================================================
# FILE: demand_sequences/data_processor.py
# ============================================================================
"""
Read-only projections of pipeline results for reporting layers.
"""

import os
import logging
from typing import Dict, List, Optional
import pandas as pd

from demand_sequences.config import PATH_CONFIG, PIPELINE_CONFIG
from demand_sequences.models import PipelineContext

logger = logging.getLogger(__name__)


class DataProcessor:
    """Builds summaries and previews without touching pipeline state."""

    @staticmethod
    def get_data_summary(context: PipelineContext) -> Dict:
        """
        Plain aggregate counts for one pipeline run.

        Args:
            context: Context returned by any pipeline stage

        Returns:
            Dictionary with record/sequence/region counts, and date range plus
            average demand once aggregation has run
        """
        aggregated = context.aggregated
        sequence = context.sequence

        summary = {
            'rawRecords': context.raw_count,
            'processedTrips': len(context.validation.trips) if context.validation else 0,
            'aggregatedRecords': len(aggregated) if aggregated is not None else 0,
            'sequences': len(sequence) if sequence is not None else 0,
            'regions': len(sequence.regions) if sequence is not None else 0
        }

        if aggregated is not None and not aggregated.empty:
            summary['dateRange'] = {
                'start': aggregated['date'].min(),
                'end': aggregated['date'].max()
            }
            summary['avgDemand'] = float(aggregated['demand'].mean())

        return summary

    @staticmethod
    def get_data_preview(aggregated: Optional[pd.DataFrame],
                         limit: int = PIPELINE_CONFIG["preview_limit"]) -> List[Dict]:
        """
        First `limit` aggregated rows in display form.

        Args:
            aggregated: Aggregated bucket DataFrame (may be None)
            limit: Maximum number of rows

        Returns:
            List of dicts with date, region, demand, dayOfWeek and isWeekend ("Yes"/"No")
        """
        if aggregated is None:
            return []

        return [
            {
                'date': row['date'],
                'region': row['region'],
                'demand': int(row['demand']),
                'dayOfWeek': int(row['day_of_week']),
                'isWeekend': 'Yes' if row['is_weekend'] else 'No'
            }
            for row in aggregated.head(max(0, limit)).to_dict(orient='records')
        ]

    @staticmethod
    def save_results(df: pd.DataFrame, output_dir: str = PATH_CONFIG["results_dir"],
                     filename: str = PATH_CONFIG["forecast_results"]) -> str:
        """
        Save results to CSV file.

        Args:
            df: DataFrame to save
            output_dir: Output directory path
            filename: Output filename

        Returns:
            Path to saved file
        """
        os.makedirs(output_dir, exist_ok=True)
        filepath = os.path.join(output_dir, filename)

        try:
            df.to_csv(filepath, index=False)
            logger.info(f"Results saved to {filepath}")
            return filepath
        except Exception as e:
            logger.error(f"Failed to save results: {e}")
            raise
