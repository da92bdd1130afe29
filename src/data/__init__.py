"""
Data sources feeding the anomaly detectors.
"""

from .models import ApiCall, ApplicationRequest, DatabaseConfig, ResponseTimeSummary
from .postgres import PostgresDataSource
from .random_source import RandomDataSource
from .source import DataSource

__all__ = [
    "ApiCall",
    "ApplicationRequest",
    "DatabaseConfig",
    "DataSource",
    "PostgresDataSource",
    "RandomDataSource",
    "ResponseTimeSummary",
]
