"""
Pipeline Configuration

Configuration structures for the SO2 best-subset regression analysis. The
column drop lists are manual decisions taken from an inspection of the data
(missingness report, first OLS fit and its VIF table) and are always supplied
by the caller.
"""

import json
import logging
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Dict, List, Optional, Union, Any

logger = logging.getLogger(__name__)

ColumnRef = Union[str, int]

SEARCH_METHODS = ('exhaustive', 'forward', 'backward')


@dataclass
class SubsetSelectionConfig:
    """Configuration for best-subset search."""

    nvmax: int = 8
    method: str = 'exhaustive'  # 'exhaustive', 'forward', 'backward'
    max_exhaustive_subsets: int = 2 ** 20  # Candidate fits allowed in exhaustive mode

    def __post_init__(self):
        """Validate configuration."""
        if self.nvmax < 1:
            raise ValueError("nvmax must be >= 1")
        if self.method not in SEARCH_METHODS:
            raise ValueError(f"Unknown search method: {self.method}")
        if self.max_exhaustive_subsets < 1:
            raise ValueError("max_exhaustive_subsets must be positive")


@dataclass
class CrossValidationConfig:
    """Configuration for k-fold cross-validation of best-subset models."""

    n_folds: int = 10
    seed: int = 1
    max_workers: Optional[int] = None  # None or 1 runs folds sequentially

    def __post_init__(self):
        """Validate configuration."""
        if self.n_folds < 2:
            raise ValueError("Number of folds must be >= 2")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be positive when given")


@dataclass
class PipelineConfig:
    """Configuration for the complete SO2 subset regression run."""

    # Input
    data_path: Optional[str] = None
    station: Optional[str] = None
    station_column: str = 'station'
    target: str = 'SO2'

    # Manual column decisions
    columns_to_drop_for_missingness: List[ColumnRef] = field(default_factory=list)
    columns_to_drop_for_collinearity: List[str] = field(default_factory=list)
    max_missing_fraction: Optional[float] = None
    vif_threshold: float = 10.0

    # Subset search and cross-validation
    nvmax: int = 8
    method: str = 'exhaustive'
    max_exhaustive_subsets: int = 2 ** 20
    n_folds: int = 10
    seed: int = 1
    reference_size: Optional[int] = None
    max_workers: Optional[int] = None

    # Output
    plots_dir: Optional[str] = None
    output_path: Optional[str] = None
    chart_width: int = 10
    chart_height: int = 6
    chart_dpi: int = 150

    memory_limit_gb: float = 8.0

    def __post_init__(self):
        """Validate configuration."""
        if not self.target:
            raise ValueError("Target column must be given")
        if self.target in self.columns_to_drop_for_missingness:
            raise ValueError(f"Target column {self.target!r} cannot be dropped for missingness")
        if self.target in self.columns_to_drop_for_collinearity:
            raise ValueError(f"Target column {self.target!r} cannot be dropped for collinearity")
        if self.max_missing_fraction is not None and not 0 <= self.max_missing_fraction <= 1:
            raise ValueError("max_missing_fraction must be between 0 and 1")
        if self.vif_threshold <= 1:
            raise ValueError("VIF threshold must be greater than 1")
        if self.reference_size is not None and not 1 <= self.reference_size <= self.nvmax:
            raise ValueError(f"reference_size must be between 1 and nvmax ({self.nvmax})")
        # Delegate the remaining checks to the component configs
        self.subset_config()
        self.cv_config()

    def subset_config(self) -> SubsetSelectionConfig:
        return SubsetSelectionConfig(
            nvmax=self.nvmax,
            method=self.method,
            max_exhaustive_subsets=self.max_exhaustive_subsets
        )

    def cv_config(self) -> CrossValidationConfig:
        return CrossValidationConfig(
            n_folds=self.n_folds,
            seed=self.seed,
            max_workers=self.max_workers
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_pipeline_config(**overrides) -> PipelineConfig:
    """Create pipeline configuration with defaults, rejecting unknown keys."""
    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown configuration parameter: {', '.join(unknown)}")
    return PipelineConfig(**overrides)


def load_pipeline_config(path: Union[str, Path], **overrides) -> PipelineConfig:
    """
    Load pipeline configuration from a JSON file.

    Args:
        path: JSON file holding a mapping of PipelineConfig fields
        **overrides: Values taking precedence over the file (None values are ignored)

    Returns:
        Validated PipelineConfig
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Configuration file not found: {path}")
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        try:
            values = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {path}: {e}") from e

    if not isinstance(values, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")

    values.update({k: v for k, v in overrides.items() if v is not None})
    logger.info(f"Loaded configuration from {path}")
    return create_pipeline_config(**values)
