"""
Data loading and cleaning for station air-quality tables.
"""

from .loader import AirQualityLoader, load_station_data
from .cleaner import MissingValueCleaner, missingness_report

__all__ = [
    'AirQualityLoader',
    'load_station_data',
    'MissingValueCleaner',
    'missingness_report'
]
