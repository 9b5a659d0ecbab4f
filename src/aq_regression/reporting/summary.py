"""
Console and JSON summaries of an analysis run.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union, Any

import numpy as np
import pandas as pd

from ..analysis.collinearity import CollinearityReport, OLSSummary
from ..selection.best_subset import SubsetSelectionResult
from ..selection.cross_validation import CrossValidationResult

logger = logging.getLogger(__name__)

RULE = "=" * 60


def _section(title: str) -> List[str]:
    return ["", RULE, title, RULE]


def format_ols_summary(summary: OLSSummary, title: str) -> str:
    lines = _section(title)
    lines.append(summary.coefficients.to_string(float_format=lambda v: f"{v:.4g}"))
    lines.append(
        f"R^2: {summary.rsquared:.4f}   Adjusted R^2: {summary.rsquared_adj:.4f}   "
        f"F: {summary.fvalue:.2f} on {summary.df_model} df (p={summary.f_pvalue:.3g})   n={summary.n_obs:,}"
    )
    return "\n".join(lines)


def format_vif_table(vif: pd.Series, threshold: float, title: str = "Variance Inflation Factors") -> str:
    lines = _section(title)
    for name, value in vif.sort_values(ascending=False).items():
        flag = "  <-- high" if value > threshold else ""
        lines.append(f"{name:>12}  {value:>12.3f}{flag}")
    return "\n".join(lines)


def format_collinearity_report(report: CollinearityReport) -> str:
    return "\n".join([
        format_ols_summary(report.initial_fit, f"OLS: {report.target} ~ all predictors"),
        format_vif_table(report.vif_before, report.vif_threshold, "VIF before removal"),
        f"\nRemoved for collinearity: {', '.join(report.dropped_columns) or '<none>'}",
        format_ols_summary(report.refit, f"OLS refit: {report.target} ~ retained predictors"),
        format_vif_table(report.vif_after, report.vif_threshold, "VIF after removal")
    ])


def format_subset_selection(result: SubsetSelectionResult) -> str:
    lines = _section(f"Best-subset selection ({result.method}, n={result.n_obs:,})")
    table = result.summary().drop(columns=['predictors'])
    lines.append(table.to_string(float_format=lambda v: f"{v:.4f}"))
    lines.append("")
    for model in result.models:
        lines.append(f"{model.size:>3}: {', '.join(model.predictors)}")
    lines.append(
        f"\nMin BIC at size {result.best_by_bic}; "
        f"max adjusted R^2 at size {result.best_by_adj_r2}; "
        f"min Cp at size {result.best_by_cp}"
    )
    return "\n".join(lines)


def format_cross_validation(result: CrossValidationResult, reference_size: Optional[int] = None) -> str:
    reference = reference_size if reference_size is not None else result.best_size
    lines = _section(f"{result.n_folds}-fold cross-validation (seed={result.seed}, n={result.n_obs:,})")
    lines.append(result.summary().to_string(float_format=lambda v: f"{v:.4f}"))
    lines.append(
        f"\nMinimum mean CV error at size {result.best_size}; "
        f"sizes within one SE of size {reference}: {result.one_standard_error_sizes(reference)}"
    )
    return "\n".join(lines)


def _json_default(value: Any) -> Any:
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating,)):
        return None if not np.isfinite(value) else float(value)
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (pd.Series, pd.DataFrame)):
        return value.to_dict()
    return str(value)


def _finite(obj: Any) -> Any:
    # json.dump writes NaN/Infinity, which is not valid JSON
    if isinstance(obj, dict):
        return {k: _finite(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_finite(v) for v in obj]
    if isinstance(obj, float) and not np.isfinite(obj):
        return None
    return obj


def save_results(results: Dict[str, Any], output_path: Union[str, Path]) -> Path:
    """Save a result dictionary as JSON, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(_finite(results), f, indent=2, default=_json_default)

    logger.info(f"Results saved to {output_path}")
    return output_path
