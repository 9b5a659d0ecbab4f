"""
Missing-Value Cleaning

Removes columns with excessive missingness and then every row that still has a
missing entry, leaving a complete, all-numeric observation table.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union, Any

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

ColumnRef = Union[str, int]


def missingness_report(frame: pd.DataFrame) -> pd.DataFrame:
    """Per-column missing count and fraction, most incomplete first."""
    n_rows = len(frame)
    counts = frame.isna().sum()
    report = pd.DataFrame({
        'missing': counts.astype(int),
        'fraction': counts / n_rows if n_rows else 0.0
    })
    return report.sort_values('missing', ascending=False)


class MissingValueCleaner:
    """
    Drop a caller-supplied list of columns, then drop incomplete rows.

    Columns can be referenced by name or by integer position in the input
    table. Positions are resolved to names on the first ``clean`` call and
    those names are reused afterwards. Names that are not present are skipped
    with a warning, so cleaning an already-cleaned table returns it unchanged.
    Infinite values count as missing.
    """

    def __init__(
        self,
        columns_to_drop_for_missingness: Optional[Sequence[ColumnRef]] = None,
        max_missing_fraction: Optional[float] = None
    ):
        """
        Initialize cleaner.

        Args:
            columns_to_drop_for_missingness: Columns (names or positions) to remove
            max_missing_fraction: Also drop any column missing more than this fraction
        """
        if max_missing_fraction is not None and not 0 <= max_missing_fraction <= 1:
            raise ValueError("max_missing_fraction must be between 0 and 1")

        self.columns_to_drop_for_missingness = list(columns_to_drop_for_missingness or [])
        self.max_missing_fraction = max_missing_fraction

        self.resolved_columns_: Optional[List[str]] = None
        self.dropped_columns_: Dict[str, str] = {}
        self.rows_removed_ = 0
        self.non_finite_values_ = 0
        self.processing_stats_: Dict[str, Any] = {}

    def _resolve_columns(self, frame: pd.DataFrame) -> List[str]:
        if self.resolved_columns_ is None:
            names = []
            for ref in self.columns_to_drop_for_missingness:
                if isinstance(ref, (int, np.integer)) and not isinstance(ref, bool):
                    if not -frame.shape[1] <= ref < frame.shape[1]:
                        raise ValueError(
                            f"Column position {ref} out of range for table with {frame.shape[1]} columns"
                        )
                    names.append(frame.columns[ref])
                else:
                    names.append(ref)
            self.resolved_columns_ = names

        resolved = []
        for name in self.resolved_columns_:
            if name in frame.columns:
                resolved.append(name)
            else:
                logger.warning(f"Column {name!r} listed for removal is not present; skipping")
        return resolved

    def clean(self, frame: pd.DataFrame) -> pd.DataFrame:
        """
        Produce a complete, numeric copy of ``frame``.

        Args:
            frame: Observation table, possibly with missing values

        Returns:
            Table with no missing entries and only numeric columns
        """
        logger.info(f"Cleaning table: {frame.shape[0]:,} rows, {frame.shape[1]} columns")
        self.dropped_columns_ = {}

        listed = self._resolve_columns(frame)
        for col in listed:
            self.dropped_columns_[col] = 'listed_for_missingness'

        if self.max_missing_fraction is not None and len(frame):
            fractions = frame.isna().mean()
            for col, fraction in fractions.items():
                if fraction > self.max_missing_fraction and col not in self.dropped_columns_:
                    self.dropped_columns_[col] = f'missing_fraction_{fraction:.3f}'

        reduced = frame.drop(columns=list(self.dropped_columns_))
        if reduced.shape[1] == 0:
            raise ValueError("No columns remain after dropping columns for missingness")

        # to_numeric parses 'inf'; OLS cannot use it
        infinite = reduced.select_dtypes(include=[np.number]).isin([np.inf, -np.inf])
        self.non_finite_values_ = int(infinite.sum().sum())
        if self.non_finite_values_:
            logger.warning(f"Treating {self.non_finite_values_} infinite values as missing")
            reduced = reduced.mask(infinite.reindex(columns=reduced.columns, fill_value=False))

        complete = reduced.dropna(axis=0, how='any')
        self.rows_removed_ = len(reduced) - len(complete)

        non_numeric = [
            col for col in complete.columns
            if not pd.api.types.is_numeric_dtype(complete[col])
        ]
        if non_numeric:
            raise ValueError(f"Non-numeric columns remain after cleaning: {non_numeric}")

        if complete.empty:
            logger.error("Every row has at least one missing value after column removal")
            raise ValueError("No complete rows remain after cleaning")

        self.processing_stats_ = {
            'input_rows': len(frame),
            'input_columns': frame.shape[1],
            'output_rows': len(complete),
            'output_columns': complete.shape[1],
            'rows_removed': self.rows_removed_,
            'non_finite_values': self.non_finite_values_,
            'columns_removed': list(self.dropped_columns_)
        }

        logger.info(
            f"Dropped {len(self.dropped_columns_)} columns {list(self.dropped_columns_)} "
            f"and {self.rows_removed_:,} incomplete rows -> {complete.shape[0]:,} x {complete.shape[1]}"
        )

        return complete.reset_index(drop=True)
