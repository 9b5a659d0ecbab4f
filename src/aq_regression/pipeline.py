"""
SO2 Subset Regression Pipeline

Runs the analysis stages in order, each consuming the previous stage's table:

1. Loading - read the CSV, keep one station, coerce to numeric
2. Cleaning - drop listed columns, drop incomplete rows
3. Collinearity reduction - OLS + VIF diagnostics, drop listed predictors
4. Subset selection - best model of each size with RSS/R^2/adj. R^2/Cp/BIC
5. Cross-validation - k-fold held-out MSE per size, one-SE rule

Stage summaries and memory usage are recorded on the engine as the run
progresses.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any

import pandas as pd
import psutil

from .analysis.collinearity import CollinearityReducer, CollinearityReport
from .config import PipelineConfig
from .data.cleaner import MissingValueCleaner, missingness_report
from .data.loader import AirQualityLoader
from .reporting.summary import (
    format_collinearity_report, format_subset_selection, format_cross_validation
)
from .selection.best_subset import BestSubsetSelector, SubsetModel, SubsetSelectionResult
from .selection.cross_validation import BestSubsetCrossValidator, CrossValidationResult

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs of every stage of one run."""
    config: PipelineConfig
    cleaned: pd.DataFrame
    reduced: pd.DataFrame
    missingness: pd.DataFrame
    collinearity: CollinearityReport
    selection: SubsetSelectionResult
    cross_validation: CrossValidationResult
    chosen_size: int
    final_model: SubsetModel
    stage_results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    memory_usage: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def n_obs(self) -> int:
        """Rows of the cleaned table, as used for fold assignment."""
        return len(self.reduced)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config': self.config.to_dict(),
            'n_obs': self.n_obs,
            'missingness': self.missingness.to_dict(orient='index'),
            'collinearity': self.collinearity.to_dict(),
            'selection': self.selection.to_dict(),
            'cross_validation': self.cross_validation.to_dict(self.config.reference_size),
            'chosen_size': self.chosen_size,
            'final_model': self.final_model.to_dict(),
            'stage_results': self.stage_results,
            'memory_usage': {
                stage: {**stats, 'timestamp': stats['timestamp'].isoformat()}
                for stage, stats in self.memory_usage.items()
            }
        }


class SubsetRegressionPipeline:
    """
    Orchestrates loading, cleaning, collinearity reduction, best-subset
    selection and cross-validation for one station's SO2 model.
    """

    def __init__(self, config: PipelineConfig):
        self.config = config

        # Every column not listed for removal is a declared predictor, unless
        # the missing-fraction policy decides which columns survive
        self.loader_ = AirQualityLoader(
            station_column=config.station_column,
            required_columns=[config.target],
            optional_columns=(
                None if config.max_missing_fraction is not None
                else config.columns_to_drop_for_missingness
            )
        )
        self.cleaner_ = MissingValueCleaner(
            columns_to_drop_for_missingness=config.columns_to_drop_for_missingness,
            max_missing_fraction=config.max_missing_fraction
        )
        self.reducer_ = CollinearityReducer(
            columns_to_drop_for_collinearity=config.columns_to_drop_for_collinearity,
            vif_threshold=config.vif_threshold
        )
        self.selector_ = BestSubsetSelector(config.subset_config())
        self.cross_validator_ = BestSubsetCrossValidator(config.subset_config(), config.cv_config())

        self.stage_results_: Dict[str, Dict[str, Any]] = {}
        self.memory_usage_: Dict[str, Dict[str, Any]] = {}
        self.result_: Optional[PipelineResult] = None

    def _monitor_memory(self, stage: str) -> Dict[str, Any]:
        """Monitor memory usage during processing."""
        memory_gb = psutil.Process().memory_info().rss / 1024 / 1024 / 1024

        self.memory_usage_[stage] = {
            'memory_gb': memory_gb,
            'timestamp': datetime.now(),
            'warning': memory_gb > self.config.memory_limit_gb
        }

        if memory_gb > self.config.memory_limit_gb:
            logger.warning(f"Memory usage ({memory_gb:.2f}GB) exceeds limit at {stage}")

        return self.memory_usage_[stage]

    @staticmethod
    def _banner(title: str) -> None:
        logger.info("=" * 50)
        logger.info(title)
        logger.info("=" * 50)

    def load(self) -> pd.DataFrame:
        if self.config.data_path is None:
            raise ValueError("No data_path configured")

        self._banner("STAGE 1: LOADING")
        frame = self.loader_.load(self.config.data_path, self.config.station)
        self.stage_results_['loading'] = {
            'raw_rows': self.loader_.raw_rows_,
            'station_rows': self.loader_.station_rows_,
            'columns': frame.shape[1],
            'non_numeric_columns': self.loader_.non_numeric_columns()
        }
        self._monitor_memory('loading_complete')
        return frame

    def run(self, frame: Optional[pd.DataFrame] = None) -> PipelineResult:
        """
        Run every stage.

        Args:
            frame: Already-loaded numeric table; when omitted the configured
                file is loaded and filtered to the configured station

        Returns:
            PipelineResult with the output of every stage
        """
        start_time = datetime.now()
        self._monitor_memory('pipeline_start')

        if frame is None:
            frame = self.load()

        target = self.config.target
        if target not in frame.columns:
            raise ValueError(f"Target column {target!r} not found")

        # Stage 2
        self._banner("STAGE 2: MISSING-VALUE CLEANING")
        missingness = missingness_report(frame)
        cleaned = self.cleaner_.clean(frame)
        self.stage_results_['cleaning'] = dict(self.cleaner_.processing_stats_)
        self._monitor_memory('cleaning_complete')

        # Stage 3
        self._banner("STAGE 3: COLLINEARITY REDUCTION")
        collinearity = self.reducer_.fit(cleaned, target)
        reduced = self.reducer_.transform(cleaned)
        self.stage_results_['collinearity'] = {
            'dropped': list(collinearity.dropped_columns),
            'retained': collinearity.retained_predictors,
            'high_vif_after': list(collinearity.high_vif_after),
            'refit_rsquared': collinearity.refit.rsquared
        }
        self._monitor_memory('collinearity_complete')

        # Stage 4
        self._banner("STAGE 4: BEST-SUBSET SELECTION")
        selection = self.selector_.fit_select(reduced, target)
        self.stage_results_['selection'] = {
            'method': selection.method,
            'nvmax': selection.nvmax,
            'subsets_evaluated': selection.subsets_evaluated,
            'best_by_bic': selection.best_by_bic,
            'best_by_adj_r2': selection.best_by_adj_r2
        }
        self._monitor_memory('selection_complete')

        reference_size = self.config.reference_size
        if reference_size is not None and reference_size > selection.nvmax:
            raise ValueError(
                f"reference_size {reference_size} exceeds the {selection.nvmax} evaluated sizes"
            )

        # Stage 5: row count is taken from the reduced table itself
        self._banner("STAGE 5: CROSS-VALIDATION")
        cv_result = self.cross_validator_.fit(reduced, target).result_

        chosen_size = cv_result.simplest_within_one_standard_error(reference_size)
        self.stage_results_['cross_validation'] = {
            'n_obs': cv_result.n_obs,
            'best_size': cv_result.best_size,
            'one_standard_error_sizes': cv_result.one_standard_error_sizes(reference_size),
            'chosen_size': chosen_size
        }
        self._monitor_memory('cross_validation_complete')

        # Final model: best subset of the chosen size on all rows
        final_model = self.cross_validator_.refit(reduced, target, chosen_size)

        elapsed = (datetime.now() - start_time).total_seconds()
        self.stage_results_['pipeline'] = {'processing_time_seconds': elapsed}
        logger.info(
            f"Pipeline completed in {elapsed:.1f}s: chosen size {chosen_size} "
            f"({', '.join(final_model.predictors)})"
        )

        self.result_ = PipelineResult(
            config=self.config,
            cleaned=cleaned,
            reduced=reduced,
            missingness=missingness,
            collinearity=collinearity,
            selection=selection,
            cross_validation=cv_result,
            chosen_size=chosen_size,
            final_model=final_model,
            stage_results=dict(self.stage_results_),
            memory_usage=dict(self.memory_usage_)
        )
        return self.result_

    def summary_lines(self) -> List[str]:
        """Console report of the last run."""
        if self.result_ is None:
            raise ValueError("Pipeline has not been run")

        result = self.result_
        return [
            f"Cleaned table: {result.cleaned.shape[0]:,} rows x {result.cleaned.shape[1]} columns",
            format_collinearity_report(result.collinearity),
            format_subset_selection(result.selection),
            format_cross_validation(result.cross_validation, self.config.reference_size),
            "",
            f"Chosen model (size {result.chosen_size}):",
            result.final_model.coefficients.to_string(float_format=lambda v: f"{v:.5g}")
        ]
