"""
Best-subset regression and its k-fold cross-validation.
"""

from .best_subset import (
    BestSubsetSelector,
    SubsetModel,
    SubsetSelectionResult,
    INTERCEPT
)
from .cross_validation import (
    BestSubsetCrossValidator,
    CrossValidationResult,
    assign_folds
)

__all__ = [
    'BestSubsetSelector',
    'SubsetModel',
    'SubsetSelectionResult',
    'INTERCEPT',
    'BestSubsetCrossValidator',
    'CrossValidationResult',
    'assign_folds'
]
