"""
Console, JSON and figure output for analysis results.
"""

from .summary import (
    format_collinearity_report,
    format_subset_selection,
    format_cross_validation,
    save_results
)
from .plots import (
    plot_subset_statistics,
    plot_cv_errors,
    plot_cv_error_matrix,
    save_figures
)

__all__ = [
    'format_collinearity_report',
    'format_subset_selection',
    'format_cross_validation',
    'save_results',
    'plot_subset_statistics',
    'plot_cv_errors',
    'plot_cv_error_matrix',
    'save_figures'
]
