"""
SO2 Subset Regression Demo

Runs the whole analysis on a synthetic station table:
- Missing-value cleaning with an explicit drop list
- OLS/VIF diagnostics with PM10 and DEWP removed for collinearity
- Exhaustive best-subset search up to 8 predictors
- 10-fold cross-validation and the one-standard-error rule
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from aq_regression import SubsetRegressionPipeline, create_pipeline_config
from aq_regression.reporting.plots import save_figures

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def generate_station_data(n_hours: int = 2000) -> pd.DataFrame:
    """
    Generate an hourly table with the Beijing station columns.

    Args:
        n_hours: Number of hourly records

    Returns:
        Numeric DataFrame with gaps in the pollutant columns
    """
    np.random.seed(42)  # For reproducibility

    hours = np.arange(n_hours)
    temp = 13 + 12 * np.sin(2 * np.pi * hours / (24 * 365)) + np.random.randn(n_hours) * 3
    pm25 = np.random.gamma(2.0, 40.0, n_hours)
    no2 = np.random.gamma(3.0, 15.0, n_hours)
    wspm = np.random.gamma(2.0, 0.9, n_hours)

    frame = pd.DataFrame({
        'No': hours + 1,
        'PM2.5': pm25,
        'PM10': pm25 * 1.3 + np.random.randn(n_hours) * 8,
        'NO2': no2,
        'CO': 9 * pm25 + np.random.randn(n_hours) * 150 + 300,
        'O3': np.clip(60 - 1.5 * no2 + 2 * temp + np.random.randn(n_hours) * 20, 0, None),
        'TEMP': temp,
        'PRES': 1012 - 0.7 * temp + np.random.randn(n_hours) * 4,
        'DEWP': temp - np.random.gamma(2.0, 4.0, n_hours),
        'RAIN': np.where(np.random.rand(n_hours) < 0.95, 0.0, np.random.gamma(1.0, 2.0, n_hours)),
        'WSPM': wspm,
    })
    frame['SO2'] = (
        3 + 0.06 * pm25 + 0.12 * no2 - 0.35 * temp - 1.2 * wspm
        + np.random.randn(n_hours) * 4
    )

    for col in ['PM2.5', 'SO2', 'NO2', 'CO', 'O3']:
        gaps = np.random.choice(n_hours, n_hours // 50, replace=False)
        frame.loc[gaps, col] = np.nan

    logger.info(f"Generated {n_hours} hourly records")
    return frame


def demonstrate_subset_regression(output_dir: str = 'demo_output') -> None:
    frame = generate_station_data()

    config = create_pipeline_config(
        columns_to_drop_for_missingness=['No'],
        columns_to_drop_for_collinearity=['PM10', 'DEWP'],
        nvmax=8,
        n_folds=10,
        seed=1
    )
    pipeline = SubsetRegressionPipeline(config)
    result = pipeline.run(frame)

    print("\n".join(pipeline.summary_lines()))

    paths = save_figures(result.selection, result.cross_validation, Path(output_dir))
    for name, path in paths.items():
        logger.info(f"{name}: {path}")

    print(f"\nChosen size: {result.chosen_size} ({', '.join(result.final_model.predictors)})")
    print(f"Rows used: {result.n_obs:,}")


if __name__ == "__main__":
    demonstrate_subset_regression()
