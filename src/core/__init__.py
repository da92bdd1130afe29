"""
Core utilities shared across the monitor.
"""

from .database import PostgresConnection
from .errors import (
    BackendComputationError,
    BackendInitializationError,
    BackendSessionError,
    CacheComputationError,
    ConfigurationError,
    DataSourceError,
    ForecastError,
    MonitorError,
)
from .logger import setup_logging

__all__ = [
    "PostgresConnection",
    "setup_logging",
    "MonitorError",
    "ConfigurationError",
    "DataSourceError",
    "BackendComputationError",
    "BackendSessionError",
    "BackendInitializationError",
    "ForecastError",
    "CacheComputationError",
]
