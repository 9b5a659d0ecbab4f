"""
Tests for station data loading and numeric coercion.
"""

import numpy as np
import pandas as pd
import pytest

from aq_regression.data.loader import AirQualityLoader, load_station_data


class TestAirQualityLoader:
    """Test loading, station filtering and coercion."""

    def test_load_filters_station(self, station_csv):
        loader = AirQualityLoader()
        frame = loader.load(station_csv, 'Aotizhongxin')

        assert len(frame) == 120
        assert loader.raw_rows_ == 240
        assert loader.station_rows_ == 120
        assert all(pd.api.types.is_float_dtype(frame[col]) for col in frame.columns)

    def test_text_columns_become_missing(self, station_csv):
        loader = AirQualityLoader()
        frame = loader.load(station_csv, 'Dongsi')

        assert frame['wd'].isna().all()
        assert frame['station'].isna().all()
        assert loader.coercion_report_['wd'] == 120
        assert loader.coercion_report_['PM2.5'] == 0
        assert set(loader.non_numeric_columns()) == {'wd', 'station'}

    def test_measurement_gaps_preserved(self, station_csv, station_records):
        frame = AirQualityLoader().load(station_csv, 'Aotizhongxin')
        expected = station_records[station_records['station'] == 'Aotizhongxin']

        assert frame['SO2'].isna().sum() == expected['SO2'].isna().sum()
        np.testing.assert_allclose(
            frame['TEMP'].to_numpy(), expected['TEMP'].to_numpy()
        )

    def test_no_station_keeps_all_rows(self, station_csv):
        frame = AirQualityLoader().load(station_csv)
        assert len(frame) == 240

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Input file not found"):
            AirQualityLoader().load(tmp_path / 'missing.csv', 'Dongsi')

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.csv'
        path.write_text('')

        with pytest.raises(ValueError, match="empty"):
            AirQualityLoader().load(path)

    def test_unknown_station(self, station_csv):
        with pytest.raises(ValueError, match="No rows for station 'Wanliu'"):
            AirQualityLoader().load(station_csv, 'Wanliu')

    def test_missing_station_column(self, station_csv):
        loader = AirQualityLoader(station_column='site')
        with pytest.raises(ValueError, match="Station column 'site' not found"):
            loader.load(station_csv, 'Dongsi')

    def test_required_text_column_fails(self, station_csv):
        loader = AirQualityLoader(required_columns=['SO2', 'wd'])
        with pytest.raises(ValueError, match="no usable numeric values"):
            loader.load(station_csv, 'Dongsi')

    def test_required_column_absent(self, station_csv):
        loader = AirQualityLoader(required_columns=['SO3'])
        with pytest.raises(ValueError, match="Required columns not found"):
            loader.load(station_csv, 'Dongsi')

    def test_every_unlisted_column_is_required(self, station_csv):
        # wd is text and not listed as optional
        loader = AirQualityLoader(optional_columns=['No'])
        with pytest.raises(ValueError, match="wd"):
            loader.load(station_csv, 'Dongsi')

        loader = AirQualityLoader(optional_columns=['No', 'wd'])
        frame = loader.load(station_csv, 'Dongsi')
        assert len(frame) == 120

    def test_optional_columns_by_position(self, station_csv):
        # wd is the 16th column of the station file
        loader = AirQualityLoader(optional_columns=[15])
        frame = loader.load(station_csv, 'Aotizhongxin')
        assert frame['wd'].isna().all()

    def test_convenience_wrapper(self, station_csv):
        frame = load_station_data(station_csv, 'Dongsi', required_columns=['SO2'])
        assert len(frame) == 120
        assert 'SO2' in frame.columns
