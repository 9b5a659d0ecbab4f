"""
OLS Fit and VIF-Based Multicollinearity Reduction

Fits an ordinary least-squares model of the target on every remaining
predictor, reports Variance Inflation Factors, removes a caller-chosen list of
collinear predictors and refits for diagnostic reporting.

The drop list is a manual decision read off the first fit's VIF table; the
``vif_threshold`` here only flags predictors in the report and log.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import variance_inflation_factor

logger = logging.getLogger(__name__)

# 1 - R^2_j below this is treated as perfect collinearity
PERFECT_COLLINEARITY_TOL = 1e-10


def compute_vif(X: pd.DataFrame) -> pd.Series:
    """
    Variance Inflation Factor of every column of ``X``.

    VIF_j = 1 / (1 - R^2_j), where R^2_j comes from regressing column j on all
    other columns plus an intercept. A column that the others explain exactly
    gets ``inf``.

    Args:
        X: Predictor matrix (no intercept column)

    Returns:
        Series of VIF values indexed by column name
    """
    if X.shape[1] == 0:
        return pd.Series(dtype=float, name='vif')
    if X.shape[1] == 1:
        col = X.columns[0]
        # A constant column is the intercept over again
        if X[col].nunique(dropna=False) <= 1:
            logger.warning(f"Predictor {col} is constant (VIF = inf)")
            return pd.Series([float('inf')], index=X.columns, name='vif')
        return pd.Series([1.0], index=X.columns, name='vif')

    exog = sm.add_constant(X.to_numpy(dtype=float), has_constant='add')
    vifs = {}

    for i, col in enumerate(X.columns):
        with np.errstate(divide='ignore', invalid='ignore'), warnings.catch_warnings():
            warnings.simplefilter('ignore', RuntimeWarning)
            vif = variance_inflation_factor(exog, i + 1)

        # 1 / (1 - R^2) blows up to a large finite number under rounding
        if not np.isfinite(vif) or vif > 1.0 / PERFECT_COLLINEARITY_TOL:
            logger.warning(f"Predictor {col} is perfectly explained by the others (VIF = inf)")
            vif = float('inf')

        vifs[col] = float(vif)

    return pd.Series(vifs, name='vif')


def coefficient_table(results) -> pd.DataFrame:
    """Coefficient, standard error, t statistic and p-value of a fitted OLS model."""
    table = pd.DataFrame({
        'coef': results.params,
        'std_err': results.bse,
        't': results.tvalues,
        'p_value': results.pvalues
    })
    return table.rename(index={'const': '(Intercept)'})


@dataclass
class OLSSummary:
    """Diagnostic summary of one OLS fit."""
    coefficients: pd.DataFrame
    rsquared: float
    rsquared_adj: float
    fvalue: float
    f_pvalue: float
    n_obs: int
    df_model: int

    @classmethod
    def from_results(cls, results) -> 'OLSSummary':
        return cls(
            coefficients=coefficient_table(results),
            rsquared=float(results.rsquared),
            rsquared_adj=float(results.rsquared_adj),
            fvalue=float(results.fvalue),
            f_pvalue=float(results.f_pvalue),
            n_obs=int(results.nobs),
            df_model=int(results.df_model)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'coefficients': self.coefficients.to_dict(orient='index'),
            'rsquared': self.rsquared,
            'rsquared_adj': self.rsquared_adj,
            'fvalue': self.fvalue,
            'f_pvalue': self.f_pvalue,
            'n_obs': self.n_obs,
            'df_model': self.df_model
        }


@dataclass
class CollinearityReport:
    """Results of the collinearity reduction stage."""
    target: str
    initial_fit: OLSSummary
    vif_before: pd.Series
    dropped_columns: List[str]
    refit: OLSSummary
    vif_after: pd.Series
    vif_threshold: float = 10.0
    high_vif_before: List[str] = field(default_factory=list)
    high_vif_after: List[str] = field(default_factory=list)

    @property
    def retained_predictors(self) -> List[str]:
        return list(self.vif_after.index)

    def to_dict(self) -> Dict[str, Any]:
        def _vif(series: pd.Series) -> Dict[str, Optional[float]]:
            # JSON has no infinity
            return {k: (None if np.isinf(v) else float(v)) for k, v in series.items()}

        return {
            'target': self.target,
            'initial_fit': self.initial_fit.to_dict(),
            'vif_before': _vif(self.vif_before),
            'dropped_columns': list(self.dropped_columns),
            'refit': self.refit.to_dict(),
            'vif_after': _vif(self.vif_after),
            'vif_threshold': self.vif_threshold,
            'high_vif_before': list(self.high_vif_before),
            'high_vif_after': list(self.high_vif_after)
        }


class CollinearityReducer:
    """
    Remove hand-picked collinear predictors and report OLS/VIF diagnostics.
    """

    def __init__(
        self,
        columns_to_drop_for_collinearity: Optional[Sequence[str]] = None,
        vif_threshold: float = 10.0
    ):
        """
        Initialize reducer.

        Args:
            columns_to_drop_for_collinearity: Predictors to remove after the first fit
            vif_threshold: VIF above which a predictor is flagged (never auto-dropped)
        """
        self.columns_to_drop_for_collinearity = list(columns_to_drop_for_collinearity or [])
        self.vif_threshold = vif_threshold

        self.report_: Optional[CollinearityReport] = None

    def _validate(self, frame: pd.DataFrame, target: str) -> None:
        if frame.empty:
            raise ValueError("Input table is empty")
        if target not in frame.columns:
            raise ValueError(f"Target column {target!r} not found")
        if target in self.columns_to_drop_for_collinearity:
            raise ValueError(f"Target column {target!r} cannot be dropped for collinearity")

        missing = [c for c in self.columns_to_drop_for_collinearity if c not in frame.columns]
        if missing:
            raise ValueError(f"Columns listed for collinearity removal not found: {missing}")

        if frame.isna().any().any():
            raise ValueError("Input table has missing values; clean it first")

        if frame.shape[1] < 2:
            raise ValueError("Need at least one predictor besides the target")

    def fit_ols(self, frame: pd.DataFrame, target: str) -> OLSSummary:
        """Fit OLS of ``target`` on every other column of ``frame``."""
        y = frame[target].astype(float)
        X = sm.add_constant(frame.drop(columns=[target]).astype(float), has_constant='add')
        results = sm.OLS(y, X).fit()
        return OLSSummary.from_results(results)

    def _flag_high_vif(self, vif: pd.Series) -> List[str]:
        return [col for col, value in vif.items() if value > self.vif_threshold]

    def fit(self, frame: pd.DataFrame, target: str) -> CollinearityReport:
        """
        Run the first fit, apply the drop list and refit.

        Args:
            frame: Complete numeric table
            target: Response column

        Returns:
            CollinearityReport with both fits and VIF tables
        """
        self._validate(frame, target)

        logger.info(f"Fitting OLS of {target} on {frame.shape[1] - 1} predictors")
        initial_fit = self.fit_ols(frame, target)
        vif_before = compute_vif(frame.drop(columns=[target]))
        high_before = self._flag_high_vif(vif_before)

        logger.info(f"Initial fit: R^2={initial_fit.rsquared:.4f}, F={initial_fit.fvalue:.2f}")
        if high_before:
            logger.info(f"Predictors with VIF > {self.vif_threshold}: {high_before}")

        reduced = self.transform(frame)
        if reduced.shape[1] < 2:
            raise ValueError("No predictors remain after collinearity removal")

        vif_after = compute_vif(reduced.drop(columns=[target]))
        perfect = [col for col, value in vif_after.items() if np.isinf(value)]
        if perfect:
            logger.error(f"Retained predictors are perfectly collinear: {perfect}")
            raise ValueError(
                f"Perfect collinearity among retained predictors {perfect}; "
                f"add one of them to columns_to_drop_for_collinearity"
            )

        refit = self.fit_ols(reduced, target)
        high_after = self._flag_high_vif(vif_after)

        logger.info(
            f"Dropped {self.columns_to_drop_for_collinearity}; refit R^2={refit.rsquared:.4f}, "
            f"max VIF={vif_after.max():.2f}"
        )
        if high_after:
            logger.warning(f"Retained predictors still above VIF {self.vif_threshold}: {high_after}")

        self.report_ = CollinearityReport(
            target=target,
            initial_fit=initial_fit,
            vif_before=vif_before,
            dropped_columns=list(self.columns_to_drop_for_collinearity),
            refit=refit,
            vif_after=vif_after,
            vif_threshold=self.vif_threshold,
            high_vif_before=high_before,
            high_vif_after=high_after
        )
        return self.report_

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Drop the configured collinear predictors."""
        return frame.drop(columns=self.columns_to_drop_for_collinearity)

    def fit_transform(self, frame: pd.DataFrame, target: str) -> pd.DataFrame:
        self.fit(frame, target)
        return self.transform(frame)
