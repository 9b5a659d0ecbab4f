"""
OLS diagnostics and VIF-based collinearity reduction.
"""

from .collinearity import (
    CollinearityReducer,
    CollinearityReport,
    OLSSummary,
    compute_vif,
    coefficient_table
)

__all__ = [
    'CollinearityReducer',
    'CollinearityReport',
    'OLSSummary',
    'compute_vif',
    'coefficient_table'
]
