"""
Best-Subset Linear Regression

For every subset size s = 1..nvmax, finds the s predictors whose least-squares
fit (with intercept) has the smallest residual sum of squares, and records the
fit statistics used to compare sizes.

Key Features:
- Exhaustive search over all combinations, guarded against combinatorial blow-up
- Forward and backward stepwise approximations for wide tables
- R^2, RSS, adjusted R^2, BIC and Mallows' Cp per size
- Typed models (ordered predictor names + coefficients) with validated prediction
"""

import logging
from dataclasses import dataclass
from itertools import combinations
from math import comb
from typing import Dict, List, Optional, Sequence, Tuple, Any

import numpy as np
import pandas as pd
from scipy import linalg

from ..config import SubsetSelectionConfig

logger = logging.getLogger(__name__)

INTERCEPT = '(Intercept)'


@dataclass
class SubsetModel:
    """Best least-squares model of one subset size."""
    size: int
    predictors: Tuple[str, ...]
    coefficients: pd.Series  # Intercept first, then predictors in order
    rss: float
    rsquared: float
    adj_rsquared: float
    bic: float
    cp: float

    def design_frame(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Select this model's predictor columns from a wider table."""
        missing = [p for p in self.predictors if p not in frame.columns]
        if missing:
            raise ValueError(
                f"Table is missing predictors of the size-{self.size} model: {missing}"
            )
        return frame.loc[:, list(self.predictors)]

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict from a matrix holding exactly this model's predictors.

        Column order may differ from the model's; names may not.

        Raises:
            ValueError: if ``X`` has missing, unexpected or duplicated columns
        """
        columns = list(X.columns)
        if len(columns) != len(set(columns)):
            raise ValueError(f"Prediction matrix has duplicated columns: {columns}")

        missing = [p for p in self.predictors if p not in columns]
        unexpected = [c for c in columns if c not in self.predictors]
        if missing or unexpected:
            raise ValueError(
                f"Prediction columns do not match the size-{self.size} model: "
                f"missing={missing}, unexpected={unexpected}"
            )

        values = X.loc[:, list(self.predictors)].to_numpy(dtype=float)
        design = np.column_stack([np.ones(len(X)), values])
        return design @ self.coefficients.to_numpy(dtype=float)

    def predict_frame(self, frame: pd.DataFrame) -> np.ndarray:
        """Predict the rows of a table that contains (at least) the model's predictors."""
        return self.predict(self.design_frame(frame))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'size': self.size,
            'predictors': list(self.predictors),
            'coefficients': {k: float(v) for k, v in self.coefficients.items()},
            'rss': self.rss,
            'rsquared': self.rsquared,
            'adj_rsquared': self.adj_rsquared,
            'bic': self.bic,
            'cp': self.cp
        }


@dataclass
class SubsetSelectionResult:
    """Best model of every size together with the per-size statistics."""
    target: str
    candidates: List[str]
    models: List[SubsetModel]
    n_obs: int
    method: str = 'exhaustive'
    subsets_evaluated: int = 0
    full_model_sigma2: float = float('nan')

    @property
    def nvmax(self) -> int:
        return len(self.models)

    @property
    def sizes(self) -> List[int]:
        return [m.size for m in self.models]

    def _statistic(self, name: str) -> pd.Series:
        return pd.Series(
            [getattr(m, name) for m in self.models],
            index=pd.Index(self.sizes, name='size'),
            name=name
        )

    @property
    def rss(self) -> pd.Series:
        return self._statistic('rss')

    @property
    def rsquared(self) -> pd.Series:
        return self._statistic('rsquared')

    @property
    def adj_rsquared(self) -> pd.Series:
        return self._statistic('adj_rsquared')

    @property
    def bic(self) -> pd.Series:
        return self._statistic('bic')

    @property
    def cp(self) -> pd.Series:
        return self._statistic('cp')

    @property
    def best_by_bic(self) -> int:
        """Size with the lowest BIC."""
        return int(self.bic.idxmin())

    @property
    def best_by_adj_r2(self) -> int:
        """Size with the highest adjusted R^2."""
        return int(self.adj_rsquared.idxmax())

    @property
    def best_by_cp(self) -> int:
        """Size with the lowest Mallows' Cp (``-1`` when Cp is undefined)."""
        cp = self.cp.dropna()
        return int(cp.idxmin()) if len(cp) else -1

    def model(self, size: int) -> SubsetModel:
        if not 1 <= size <= self.nvmax:
            raise ValueError(f"Subset size must be between 1 and {self.nvmax}, got {size}")
        return self.models[size - 1]

    def coef(self, size: int) -> pd.Series:
        """Coefficients of the best model of ``size`` predictors."""
        return self.model(size).coefficients.copy()

    def which(self) -> pd.DataFrame:
        """Boolean inclusion matrix: rows are sizes, columns candidate predictors."""
        rows = [
            [c in m.predictors for c in self.candidates]
            for m in self.models
        ]
        return pd.DataFrame(rows, index=pd.Index(self.sizes, name='size'), columns=self.candidates)

    def summary(self) -> pd.DataFrame:
        table = pd.concat(
            [self.rsquared, self.rss, self.adj_rsquared, self.cp, self.bic],
            axis=1
        )
        table['predictors'] = [', '.join(m.predictors) for m in self.models]
        return table

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target': self.target,
            'method': self.method,
            'n_obs': self.n_obs,
            'candidates': list(self.candidates),
            'subsets_evaluated': self.subsets_evaluated,
            'best_by_bic': self.best_by_bic,
            'best_by_adj_r2': self.best_by_adj_r2,
            'best_by_cp': self.best_by_cp,
            'models': [m.to_dict() for m in self.models]
        }


class BestSubsetSelector:
    """
    Best-subset regression search.

    ``fit`` stores the result in ``result_``; the same selector is reused by the
    cross-validator on each training partition.
    """

    def __init__(self, config: Optional[SubsetSelectionConfig] = None):
        """Initialize the selector.

        Args:
            config: Search configuration (nvmax, method, exhaustive guard)
        """
        self.config = config or SubsetSelectionConfig()
        self.result_: Optional[SubsetSelectionResult] = None
        self._n_fits = 0

    def _prepare(self, frame: pd.DataFrame, target: str) -> Tuple[np.ndarray, np.ndarray, List[str]]:
        if target not in frame.columns:
            raise ValueError(f"Target column {target!r} not found")

        candidates = [c for c in frame.columns if c != target]
        if not candidates:
            raise ValueError("Need at least one predictor besides the target")
        if frame.isna().any().any():
            raise ValueError("Input table has missing values; clean it first")

        X = frame[candidates].to_numpy(dtype=float)
        y = frame[target].to_numpy(dtype=float)
        # Intercept is column 0 of the design
        design = np.column_stack([np.ones(len(frame)), X])
        return design, y, candidates

    def _fit_columns(self, design: np.ndarray, y: np.ndarray, columns: Sequence[int]) -> Tuple[np.ndarray, float]:
        """Least-squares fit on the intercept plus the given predictor indices."""
        idx = [0] + [c + 1 for c in columns]
        sub = design[:, idx]
        beta, _, _, _ = linalg.lstsq(sub, y, lapack_driver='gelsd')
        resid = y - sub @ beta
        self._n_fits += 1
        return beta, float(resid @ resid)

    def _exhaustive(self, design, y, n_candidates: int, nvmax: int) -> Dict[int, Tuple[Tuple[int, ...], np.ndarray, float]]:
        total = sum(comb(n_candidates, s) for s in range(1, nvmax + 1))
        if total > self.config.max_exhaustive_subsets:
            raise ValueError(
                f"Exhaustive search needs {total:,} fits (limit "
                f"{self.config.max_exhaustive_subsets:,}); use method='forward' or 'backward'"
            )
        logger.debug(f"Exhaustive search over {total:,} subsets")

        best = {}
        for size in range(1, nvmax + 1):
            best_rss = np.inf
            for subset in combinations(range(n_candidates), size):
                beta, rss = self._fit_columns(design, y, subset)
                if rss < best_rss:
                    best_rss = rss
                    best[size] = (subset, beta, rss)
        return best

    def _forward(self, design, y, n_candidates: int, nvmax: int):
        best = {}
        selected: List[int] = []
        remaining = list(range(n_candidates))

        for size in range(1, nvmax + 1):
            step_best = None
            for candidate in remaining:
                subset = tuple(sorted(selected + [candidate]))
                beta, rss = self._fit_columns(design, y, subset)
                if step_best is None or rss < step_best[2]:
                    step_best = (subset, beta, rss, candidate)

            subset, beta, rss, added = step_best
            selected.append(added)
            remaining.remove(added)
            best[size] = (subset, beta, rss)
            logger.debug(f"Forward step {size}: added column {added}, RSS={rss:.4f}")

        return best

    def _backward(self, design, y, n_candidates: int, nvmax: int):
        best = {}
        current = list(range(n_candidates))

        beta, rss = self._fit_columns(design, y, current)
        if n_candidates <= nvmax:
            best[n_candidates] = (tuple(current), beta, rss)

        while len(current) > 1:
            step_best = None
            for candidate in current:
                subset = tuple(c for c in current if c != candidate)
                beta, rss = self._fit_columns(design, y, subset)
                if step_best is None or rss < step_best[2]:
                    step_best = (subset, beta, rss, candidate)

            subset, beta, rss, removed = step_best
            current.remove(removed)
            if len(current) <= nvmax:
                best[len(current)] = (subset, beta, rss)
            logger.debug(f"Backward step: removed column {removed}, RSS={rss:.4f}")

        return best

    def fit(self, frame: pd.DataFrame, target: str) -> 'BestSubsetSelector':
        """
        Search the best subset of every size.

        Args:
            frame: Complete numeric table holding the target and candidate predictors
            target: Response column

        Returns:
            self
        """
        design, y, candidates = self._prepare(frame, target)
        n_obs, n_candidates = len(y), len(candidates)

        nvmax = self.config.nvmax
        if nvmax > n_candidates:
            logger.warning(f"nvmax={nvmax} exceeds the {n_candidates} available predictors; using {n_candidates}")
            nvmax = n_candidates
        if n_obs <= nvmax + 1:
            raise ValueError(
                f"Need more than {nvmax + 1} observations for subsets up to size {nvmax}, got {n_obs}"
            )

        tss = float(np.sum((y - y.mean()) ** 2))
        if tss == 0:
            raise ValueError(f"Target column {target!r} is constant")

        self._n_fits = 0
        logger.info(
            f"Best-subset search ({self.config.method}): {n_candidates} candidates, "
            f"nvmax={nvmax}, n={n_obs:,}"
        )

        if self.config.method == 'exhaustive':
            best = self._exhaustive(design, y, n_candidates, nvmax)
        elif self.config.method == 'forward':
            best = self._forward(design, y, n_candidates, nvmax)
        elif self.config.method == 'backward':
            best = self._backward(design, y, n_candidates, nvmax)
        else:
            raise ValueError(f"Unknown search method: {self.config.method}")

        # Cp scales RSS by the residual variance of the model with every predictor
        residual_df = n_obs - n_candidates - 1
        if residual_df > 0:
            _, full_rss = self._fit_columns(design, y, range(n_candidates))
            sigma2 = full_rss / residual_df
        else:
            sigma2 = float('nan')

        models = []
        for size in range(1, nvmax + 1):
            subset, beta, rss = best[size]
            predictors = tuple(candidates[c] for c in subset)
            models.append(self._build_model(size, predictors, beta, rss, tss, n_obs, sigma2))

        self.result_ = SubsetSelectionResult(
            target=target,
            candidates=candidates,
            models=models,
            n_obs=n_obs,
            method=self.config.method,
            subsets_evaluated=self._n_fits,
            full_model_sigma2=sigma2
        )

        logger.info(
            f"Best size by BIC: {self.result_.best_by_bic}, "
            f"by adjusted R^2: {self.result_.best_by_adj_r2} ({self._n_fits:,} fits)"
        )
        return self

    @staticmethod
    def _build_model(size, predictors, beta, rss, tss, n_obs, sigma2) -> SubsetModel:
        n_params = size + 1
        rsquared = 1.0 - rss / tss
        adj_rsquared = 1.0 - (1.0 - rsquared) * (n_obs - 1) / (n_obs - size - 1)
        with np.errstate(divide='ignore'):
            bic = n_obs * np.log(rss / n_obs) + n_params * np.log(n_obs)
        if sigma2 > 0:
            cp = rss / sigma2 + 2 * n_params - n_obs
        else:
            cp = float('nan')

        coefficients = pd.Series(beta, index=[INTERCEPT, *predictors], name='coef')
        return SubsetModel(
            size=size,
            predictors=predictors,
            coefficients=coefficients,
            rss=float(rss),
            rsquared=float(rsquared),
            adj_rsquared=float(adj_rsquared),
            bic=float(bic),
            cp=float(cp)
        )

    def fit_select(self, frame: pd.DataFrame, target: str) -> SubsetSelectionResult:
        """Fit and return the selection result."""
        return self.fit(frame, target).result_
