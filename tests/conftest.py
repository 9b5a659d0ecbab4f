"""
Pytest configuration and shared fixtures for the subset regression tests.

Synthetic tables follow the Beijing multi-site air-quality layout so the
loader, cleaner and pipeline see the same columns a real station file has.
"""

import logging

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

# Configure logging for tests
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

PREDICTORS = ['PM2.5', 'NO2', 'CO', 'TEMP', 'PRES']
STATIONS = ('Aotizhongxin', 'Dongsi')
WIND_DIRECTIONS = ['N', 'NNE', 'NE', 'E', 'SE', 'S', 'SW', 'W', 'NW']

# Columns of the station file that are not measurements
NON_PREDICTOR_COLUMNS = ['No', 'year', 'month', 'day', 'hour', 'wd', 'station']


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )


def make_regression_frame(n_samples: int = 100, seed: int = 42) -> pd.DataFrame:
    """SO2 driven by PM2.5, NO2 and TEMP; CO and PRES are pure noise."""
    rng = np.random.RandomState(seed)
    X = rng.randn(n_samples, len(PREDICTORS))
    so2 = 10 + 4.0 * X[:, 0] + 2.5 * X[:, 1] - 1.5 * X[:, 3] + rng.randn(n_samples) * 0.8

    frame = pd.DataFrame(X, columns=PREDICTORS)
    frame['SO2'] = so2
    return frame


def make_station_records(n_per_station: int = 120, seed: int = 7) -> pd.DataFrame:
    """Raw hourly records for two stations, with gaps and a text column."""
    rng = np.random.RandomState(seed)
    frames = []

    for station in STATIONS:
        n = n_per_station
        hours = np.arange(n)
        pm25 = rng.gamma(2.0, 40.0, n)
        no2 = rng.gamma(3.0, 15.0, n)
        temp = rng.randn(n) * 10 + 13

        records = pd.DataFrame({
            'No': hours + 1,
            'year': 2014,
            'month': 3,
            'day': 1 + hours // 24,
            'hour': hours % 24,
            'PM2.5': pm25,
            'PM10': pm25 * 1.3 + rng.randn(n) * 5,
            'SO2': 2 + 0.08 * pm25 + 0.15 * no2 - 0.3 * temp + rng.randn(n) * 3,
            'NO2': no2,
            'CO': 10 * pm25 + rng.randn(n) * 50 + 300,
            'O3': rng.gamma(2.0, 25.0, n),
            'TEMP': temp,
            'PRES': 1010 - 0.8 * temp + rng.randn(n) * 3,
            'DEWP': temp - rng.gamma(2.0, 4.0, n),
            'RAIN': np.where(rng.rand(n) < 0.9, 0.0, rng.gamma(1.0, 2.0, n)),
            'wd': rng.choice(WIND_DIRECTIONS, n),
            'WSPM': rng.gamma(2.0, 0.9, n),
            'station': station
        })

        for col in ['PM2.5', 'SO2', 'NO2', 'CO', 'O3']:
            gaps = rng.choice(n, 3, replace=False)
            records.loc[gaps, col] = np.nan

        frames.append(records)

    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def regression_frame():
    """Complete numeric table: 100 rows, 5 predictors, SO2 target."""
    return make_regression_frame()


@pytest.fixture
def non_predictor_columns():
    return list(NON_PREDICTOR_COLUMNS)


@pytest.fixture
def station_records():
    return make_station_records()


@pytest.fixture
def station_csv(tmp_path, station_records):
    """Station records written as a CSV with NA markers."""
    path = tmp_path / 'PRSA_Data_test.csv'
    station_records.to_csv(path, index=False, na_rep='NA')
    return path
