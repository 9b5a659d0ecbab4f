"""
K-Fold Cross-Validation of Best-Subset Models

Every observation gets one of k fold labels (labels 1..k repeated to cover the
table, then shuffled with a seeded generator). For each fold the best-subset
search is rerun on the other k-1 folds and the best model of every size is
scored on the held-out fold.

Key Features:
- Reproducible fold assignment from a seed, balanced up to integer division
- Held-out MSE matrix (size x fold), mean and standard error per size
- One-standard-error rule against a caller-chosen reference size
- Optional thread pool across folds with results identical to the sequential run
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error

from ..config import CrossValidationConfig, SubsetSelectionConfig
from .best_subset import BestSubsetSelector, SubsetModel

logger = logging.getLogger(__name__)


def assign_folds(n_obs: int, n_folds: int, seed: int) -> np.ndarray:
    """
    Fold label (1..n_folds) for each of ``n_obs`` observations.

    Labels 1..k are repeated until n labels exist (the last cycle is partial),
    then permuted with ``numpy.random.default_rng(seed)``.
    """
    if n_folds < 2:
        raise ValueError("Number of folds must be >= 2")
    if n_obs < n_folds:
        raise ValueError(f"Cannot split {n_obs} observations into {n_folds} folds")

    labels = np.resize(np.arange(1, n_folds + 1), n_obs)
    rng = np.random.default_rng(seed)
    return rng.permutation(labels)


@dataclass
class CrossValidationResult:
    """Held-out errors of the best model of every size on every fold."""
    errors: pd.DataFrame  # index: size, columns: fold
    fold_labels: np.ndarray
    n_folds: int
    seed: int
    n_obs: int
    method: str = 'exhaustive'

    @property
    def mean_errors(self) -> pd.Series:
        return self.errors.mean(axis=1).rename('mean_mse')

    @property
    def standard_errors(self) -> pd.Series:
        sd = self.errors.std(axis=1, ddof=1)
        return (sd / np.sqrt(self.n_folds)).rename('std_error')

    @property
    def best_size(self) -> int:
        """Size with the smallest mean cross-validation error."""
        return int(self.mean_errors.idxmin())

    def one_standard_error_sizes(self, reference_size: Optional[int] = None) -> List[int]:
        """
        Sizes whose mean error is within one standard error of the reference.

        Args:
            reference_size: Size whose mean + SE is the cut-off (default: best_size)

        Returns:
            Sorted list of qualifying sizes
        """
        if reference_size is None:
            reference_size = self.best_size
        if reference_size not in self.errors.index:
            raise ValueError(
                f"Reference size {reference_size} not in evaluated sizes {list(self.errors.index)}"
            )

        means = self.mean_errors
        threshold = means[reference_size] + self.standard_errors[reference_size]
        return [int(size) for size, value in means.items() if value <= threshold]

    def simplest_within_one_standard_error(self, reference_size: Optional[int] = None) -> int:
        """Smallest size passing the one-standard-error rule."""
        return min(self.one_standard_error_sizes(reference_size))

    def fold_sizes(self) -> pd.Series:
        labels, counts = np.unique(self.fold_labels, return_counts=True)
        return pd.Series(counts, index=pd.Index(labels, name='fold'), name='n_obs')

    def summary(self) -> pd.DataFrame:
        return pd.concat([self.mean_errors, self.standard_errors], axis=1)

    def to_dict(self, reference_size: Optional[int] = None) -> Dict[str, Any]:
        return {
            'n_folds': self.n_folds,
            'seed': self.seed,
            'n_obs': self.n_obs,
            'method': self.method,
            'errors': {
                int(size): {int(fold): float(v) for fold, v in row.items()}
                for size, row in self.errors.iterrows()
            },
            'mean_errors': {int(k): float(v) for k, v in self.mean_errors.items()},
            'standard_errors': {int(k): float(v) for k, v in self.standard_errors.items()},
            'best_size': self.best_size,
            'one_standard_error_sizes': self.one_standard_error_sizes(reference_size),
            'fold_sizes': {int(k): int(v) for k, v in self.fold_sizes().items()}
        }


class BestSubsetCrossValidator:
    """
    K-fold cross-validation of best-subset regression.
    """

    def __init__(
        self,
        subset_config: Optional[SubsetSelectionConfig] = None,
        cv_config: Optional[CrossValidationConfig] = None
    ):
        self.subset_config = subset_config or SubsetSelectionConfig()
        self.cv_config = cv_config or CrossValidationConfig()
        self.result_: Optional[CrossValidationResult] = None

    def _score_fold(
        self,
        frame: pd.DataFrame,
        target: str,
        labels: np.ndarray,
        fold: int
    ) -> pd.Series:
        train = frame.loc[labels != fold]
        test = frame.loc[labels == fold]

        selection = BestSubsetSelector(self.subset_config).fit_select(train, target)

        errors = {}
        for model in selection.models:
            predictions = model.predict_frame(test)
            errors[model.size] = mean_squared_error(test[target].to_numpy(dtype=float), predictions)

        logger.debug(
            f"Fold {fold}: train={len(train):,}, test={len(test):,}, "
            f"best held-out size={min(errors, key=errors.get)}"
        )
        return pd.Series(errors, name=fold)

    def fit(self, frame: pd.DataFrame, target: str) -> 'BestSubsetCrossValidator':
        """
        Cross-validate best-subset models of every size.

        Args:
            frame: Complete numeric table (target plus candidate predictors)
            target: Response column

        Returns:
            self
        """
        if target not in frame.columns:
            raise ValueError(f"Target column {target!r} not found")

        frame = frame.reset_index(drop=True)
        n_obs = len(frame)
        n_folds = self.cv_config.n_folds

        labels = assign_folds(n_obs, n_folds, self.cv_config.seed)

        n_candidates = frame.shape[1] - 1
        nvmax = min(self.subset_config.nvmax, n_candidates)
        smallest_train = n_obs - int(np.bincount(labels).max())
        if smallest_train <= nvmax + 1:
            raise ValueError(
                f"Training partitions of {smallest_train} rows are too small for subsets up to size {nvmax}"
            )

        logger.info(f"{n_folds}-fold cross-validation on {n_obs:,} rows (seed={self.cv_config.seed})")

        folds = list(range(1, n_folds + 1))
        workers = self.cv_config.max_workers
        if workers and workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                fold_errors = list(executor.map(
                    lambda fold: self._score_fold(frame, target, labels, fold), folds
                ))
        else:
            fold_errors = [self._score_fold(frame, target, labels, fold) for fold in folds]

        errors = pd.concat(fold_errors, axis=1)
        errors.index.name = 'size'
        errors.columns.name = 'fold'

        self.result_ = CrossValidationResult(
            errors=errors,
            fold_labels=labels,
            n_folds=n_folds,
            seed=self.cv_config.seed,
            n_obs=n_obs,
            method=self.subset_config.method
        )

        logger.info(
            f"Minimum mean CV error {self.result_.mean_errors.min():.4f} at size {self.result_.best_size}"
        )
        return self

    def refit(self, frame: pd.DataFrame, target: str, size: int) -> SubsetModel:
        """Best-subset model of ``size`` fitted on the full table."""
        selection = BestSubsetSelector(self.subset_config).fit_select(frame, target)
        model = selection.model(size)
        logger.info(f"Refit size {size} on {len(frame):,} rows: {', '.join(model.predictors)}")
        return model
