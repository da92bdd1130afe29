"""
Quantile forecasts: cache, forecasting client and concurrent updater.
"""

from .cache import InMemoryQuantileCache, QuantileCache, RedisQuantileCache
from .client import ForecastClient, HttpForecastClient
from .models import CacheItem, QuantileRequest, RedisConfig, TimeSeries
from .updater import CacheUpdater, KeyLockRegistry

__all__ = [
    "CacheItem",
    "CacheUpdater",
    "ForecastClient",
    "HttpForecastClient",
    "InMemoryQuantileCache",
    "KeyLockRegistry",
    "QuantileCache",
    "QuantileRequest",
    "RedisConfig",
    "RedisQuantileCache",
    "TimeSeries",
]
