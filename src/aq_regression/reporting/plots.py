"""
Figures for subset-size comparison and cross-validation.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from ..selection.best_subset import SubsetSelectionResult
from ..selection.cross_validation import CrossValidationResult

logger = logging.getLogger(__name__)

sns.set_palette("husl")


def _save(fig, output_dir: Optional[Union[str, Path]], name: str, dpi: int) -> Optional[Path]:
    if output_dir is None:
        return None
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.png"
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    logger.info(f"Saved figure {path}")
    return path


def plot_subset_statistics(
    result: SubsetSelectionResult,
    figsize=(10, 8)
):
    """
    RSS, adjusted R^2, Cp and BIC against the number of predictors.

    The best size of each criterion is marked in red.
    """
    sizes = np.asarray(result.sizes)
    panels = [
        ('rss', 'RSS', None),
        ('adj_rsquared', 'Adjusted R^2', result.best_by_adj_r2),
        ('cp', "Mallows' Cp", result.best_by_cp if result.best_by_cp > 0 else None),
        ('bic', 'BIC', result.best_by_bic),
    ]

    fig, axes = plt.subplots(2, 2, figsize=figsize)
    for ax, (attr, label, best) in zip(axes.ravel(), panels):
        values = getattr(result, attr)
        ax.plot(sizes, values.to_numpy(), marker='o')
        if best is not None:
            ax.plot(best, values[best], marker='o', markersize=10, color='red')
        ax.set_xlabel('Number of variables')
        ax.set_ylabel(label)
        ax.set_xticks(sizes)
        ax.grid(True, alpha=0.3)

    fig.suptitle(f"Best-subset fit statistics ({result.target})")
    fig.tight_layout()
    return fig


def plot_cv_errors(
    result: CrossValidationResult,
    reference_size: Optional[int] = None,
    figsize=(10, 6)
):
    """Mean held-out MSE per size with one-standard-error bars and cut-off line."""
    reference = reference_size if reference_size is not None else result.best_size
    means = result.mean_errors
    ses = result.standard_errors

    fig, ax = plt.subplots(figsize=figsize)
    ax.errorbar(means.index, means.to_numpy(), yerr=ses.to_numpy(), marker='o', capsize=3)
    ax.plot(result.best_size, means[result.best_size], marker='o', markersize=10, color='red')
    ax.axhline(means[reference] + ses[reference], linestyle='--', color='grey',
               label=f'one SE above size {reference}')
    ax.set_xlabel('Number of variables')
    ax.set_ylabel('Mean cross-validation MSE')
    ax.set_xticks(list(means.index))
    ax.legend()
    ax.grid(True, alpha=0.3)
    return fig


def plot_cv_error_matrix(result: CrossValidationResult, figsize=(10, 6)):
    """Heatmap of held-out MSE by size and fold."""
    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(result.errors, annot=result.errors.shape[1] <= 10, fmt='.1f', cmap='viridis', ax=ax)
    ax.set_xlabel('Fold')
    ax.set_ylabel('Number of variables')
    ax.set_title('Held-out MSE')
    return fig


def save_figures(
    subset_result: SubsetSelectionResult,
    cv_result: Optional[CrossValidationResult],
    output_dir: Union[str, Path],
    reference_size: Optional[int] = None,
    chart_width: int = 10,
    chart_height: int = 6,
    dpi: int = 150
) -> Dict[str, Path]:
    """Render every figure to ``output_dir`` and close it."""
    figures = {'subset_statistics': plot_subset_statistics(subset_result, figsize=(chart_width, chart_width * 0.8))}
    if cv_result is not None:
        figures['cv_errors'] = plot_cv_errors(cv_result, reference_size, figsize=(chart_width, chart_height))
        figures['cv_error_matrix'] = plot_cv_error_matrix(cv_result, figsize=(chart_width, chart_height))

    paths = {}
    for name, fig in figures.items():
        try:
            paths[name] = _save(fig, output_dir, name, dpi)
        finally:
            plt.close(fig)
    return paths
