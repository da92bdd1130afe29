"""
Caches for predicted quantile series, keyed by (identity, size).
"""

import json
import threading
from abc import ABC, abstractmethod

import redis
import structlog

from .models import RedisConfig, TimeSeries

logger = structlog.get_logger(__name__)


class QuantileCache(ABC):
    """Stores one quantile series per (identity, size)"""

    @abstractmethod
    def contains(self, identity: str, size: int) -> bool:
        pass

    @abstractmethod
    def get(self, identity: str, size: int) -> TimeSeries | None:
        pass

    @abstractmethod
    def put(self, identity: str, size: int, series: TimeSeries) -> None:
        pass


class InMemoryQuantileCache(QuantileCache):
    """Process-local cache"""

    def __init__(self):
        self._entries: dict[tuple[str, int], TimeSeries] = {}
        self._lock = threading.Lock()

    def contains(self, identity: str, size: int) -> bool:
        with self._lock:
            return (identity, size) in self._entries

    def get(self, identity: str, size: int) -> TimeSeries | None:
        with self._lock:
            return self._entries.get((identity, size))

    def put(self, identity: str, size: int, series: TimeSeries) -> None:
        with self._lock:
            self._entries[(identity, size)] = series

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisQuantileCache(QuantileCache):
    """Redis cache shared between monitor processes"""

    def __init__(self, config: RedisConfig):
        try:
            self.redis = redis.Redis(
                host=config.host,
                port=config.port,
                db=config.db,
                password=config.password,
                decode_responses=True,
            )
            self.ttl = config.ttl_seconds
            self.redis.ping()  # Test connection
            logger.info("Redis quantile cache initialized", host=config.host, port=config.port)
        except redis.RedisError as e:
            logger.error("Failed to initialize Redis", error=str(e))
            raise

    def contains(self, identity: str, size: int) -> bool:
        return bool(self.redis.exists(self._make_key(identity, size)))

    def get(self, identity: str, size: int) -> TimeSeries | None:
        key = self._make_key(identity, size)
        data = self.redis.get(key)
        if data is None:
            return None
        return TimeSeries.from_json(json.loads(data))

    def put(self, identity: str, size: int, series: TimeSeries) -> None:
        key = self._make_key(identity, size)
        self.redis.setex(key, self.ttl, json.dumps(series.to_json()))
        logger.debug("Quantiles saved to Redis", key=key, points=len(series))

    def _make_key(self, identity: str, size: int) -> str:
        """Generate Redis key"""
        return f"roots:quantiles:{identity}:{size}"
