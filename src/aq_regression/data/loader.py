"""
Air-Quality Data Loader

Reads station measurement records from a delimited file, restricts them to a
single monitoring station and coerces every column to numeric.

Columns that carry text (wind direction, the station name itself) turn into
all-missing columns after coercion; they are left for the cleaner to drop.
Columns the analysis declares as required must keep at least one usable
numeric value.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class AirQualityLoader:
    """
    Loader for per-station air-quality measurement tables.

    After ``load`` the per-column coercion report is available as
    ``coercion_report_`` and the raw row count as ``raw_rows_``.
    """

    def __init__(
        self,
        station_column: str = 'station',
        required_columns: Optional[Sequence[str]] = None,
        optional_columns: Optional[Sequence[Union[str, int]]] = None,
        sep: str = ','
    ):
        """
        Initialize loader.

        Args:
            station_column: Column holding the monitoring station identifier
            required_columns: Columns that must contain numeric values after coercion
            optional_columns: When given, every column except these (names or
                positions) and the station column is required as well
            sep: Field delimiter of the input file
        """
        self.station_column = station_column
        self.required_columns = list(required_columns or [])
        self.optional_columns = None if optional_columns is None else list(optional_columns)
        self.sep = sep

        self.raw_rows_ = 0
        self.station_rows_ = 0
        self.coercion_report_: Dict[str, int] = {}

    def _read(self, path: Path) -> pd.DataFrame:
        if not path.exists():
            logger.error(f"Input file not found: {path}")
            raise FileNotFoundError(f"Input file not found: {path}")

        try:
            with open(path, newline='') as f:
                frame = pd.read_csv(f, sep=self.sep)
        except pd.errors.EmptyDataError as e:
            logger.error(f"Input file is empty: {path}")
            raise ValueError(f"Input file is empty: {path}") from e
        except pd.errors.ParserError as e:
            logger.error(f"Could not parse {path}: {e}")
            raise ValueError(f"Could not parse input file {path}: {e}") from e

        return frame

    def filter_station(self, frame: pd.DataFrame, station: Optional[str]) -> pd.DataFrame:
        """Restrict rows to one station; ``None`` keeps every row."""
        if station is None:
            return frame

        if self.station_column not in frame.columns:
            raise ValueError(f"Station column {self.station_column!r} not found in input")

        mask = frame[self.station_column].astype(str).str.strip() == str(station)
        filtered = frame.loc[mask].reset_index(drop=True)

        if filtered.empty:
            available = sorted(frame[self.station_column].dropna().astype(str).unique())
            raise ValueError(
                f"No rows for station {station!r}; available stations: {', '.join(available[:20])}"
            )

        return filtered

    def _required_columns(self, frame: pd.DataFrame) -> List[str]:
        required = list(self.required_columns)
        if self.optional_columns is None:
            return required

        optional = {self.station_column}
        for ref in self.optional_columns:
            if isinstance(ref, (int, np.integer)) and not isinstance(ref, bool):
                if -frame.shape[1] <= ref < frame.shape[1]:
                    optional.add(frame.columns[ref])
            else:
                optional.add(ref)

        required.extend(col for col in frame.columns if col not in optional and col not in required)
        return required

    def coerce_numeric(self, frame: pd.DataFrame) -> pd.DataFrame:
        """
        Coerce every column to numeric.

        Unparseable entries become NaN. The number of present raw values lost to
        coercion is recorded per column in ``coercion_report_``.
        """
        coerced = frame.apply(pd.to_numeric, errors='coerce')

        lost = (frame.notna() & coerced.isna()).sum()
        self.coercion_report_ = {col: int(n) for col, n in lost.items()}

        for col, n_lost in self.coercion_report_.items():
            if n_lost:
                logger.debug(f"Column {col}: {n_lost} values could not be parsed as numbers")

        required = self._required_columns(coerced)
        missing_required = [col for col in required if col not in coerced.columns]
        if missing_required:
            raise ValueError(f"Required columns not found in input: {missing_required}")

        unusable = [col for col in required if not coerced[col].notna().any()]
        if unusable:
            logger.error(f"Numeric coercion left no usable values in: {unusable}")
            raise ValueError(f"Columns have no usable numeric values: {unusable}")

        return coerced.astype(np.float64)

    def load(
        self,
        path: Union[str, Path],
        station: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Load a station's observation table.

        Args:
            path: Delimited text file with a header row
            station: Station to keep (``None`` keeps all rows)

        Returns:
            All-numeric DataFrame (text columns become all-NaN)
        """
        path = Path(path)
        logger.info(f"Loading air-quality data from {path}")

        raw = self._read(path)
        self.raw_rows_ = len(raw)

        station_frame = self.filter_station(raw, station)
        self.station_rows_ = len(station_frame)
        logger.info(
            f"Station {station if station is not None else '<all>'}: "
            f"{self.station_rows_:,} of {self.raw_rows_:,} rows, {station_frame.shape[1]} columns"
        )

        return self.coerce_numeric(station_frame)

    def non_numeric_columns(self) -> List[str]:
        """Columns for which coercion discarded at least one value."""
        return [col for col, n in self.coercion_report_.items() if n > 0]


def load_station_data(
    path: Union[str, Path],
    station: Optional[str] = None,
    station_column: str = 'station',
    required_columns: Optional[Sequence[str]] = None,
    optional_columns: Optional[Sequence[Union[str, int]]] = None
) -> pd.DataFrame:
    """Convenience wrapper around AirQualityLoader.load."""
    loader = AirQualityLoader(
        station_column=station_column,
        required_columns=required_columns,
        optional_columns=optional_columns
    )
    return loader.load(path, station)
