"""
Air-Quality Subset Regression

Best-subset linear regression with k-fold cross-validation for modelling
sulfur dioxide levels at a single air-quality monitoring station.

Key Components:
- Station data loading with numeric coercion
- Missing-value cleaning driven by explicit drop lists
- OLS/VIF collinearity diagnostics and reduction
- Exhaustive and stepwise best-subset search (RSS, R^2, adjusted R^2, Cp, BIC)
- K-fold cross-validation with the one-standard-error rule
"""

from .config import (
    PipelineConfig,
    SubsetSelectionConfig,
    CrossValidationConfig,
    create_pipeline_config,
    load_pipeline_config
)
from .data import AirQualityLoader, MissingValueCleaner, load_station_data, missingness_report
from .analysis import CollinearityReducer, CollinearityReport, compute_vif
from .selection import (
    BestSubsetSelector,
    SubsetModel,
    SubsetSelectionResult,
    BestSubsetCrossValidator,
    CrossValidationResult,
    assign_folds
)
from .pipeline import SubsetRegressionPipeline, PipelineResult

__all__ = [
    'PipelineConfig',
    'SubsetSelectionConfig',
    'CrossValidationConfig',
    'create_pipeline_config',
    'load_pipeline_config',
    'AirQualityLoader',
    'MissingValueCleaner',
    'load_station_data',
    'missingness_report',
    'CollinearityReducer',
    'CollinearityReport',
    'compute_vif',
    'BestSubsetSelector',
    'SubsetModel',
    'SubsetSelectionResult',
    'BestSubsetCrossValidator',
    'CrossValidationResult',
    'assign_folds',
    'SubsetRegressionPipeline',
    'PipelineResult'
]

__version__ = '1.0.0'
