"""
Tests for quantile caches and forecasting models.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import redis

from src.core.errors import ConfigurationError
from src.forecast.cache import InMemoryQuantileCache, RedisQuantileCache
from src.forecast.models import QuantileRequest, RedisConfig, TimeSeries

SERIES = TimeSeries(timestamps=(1000, 2000, 3000), values=(1.5, 2.5, 3.5))


class TestTimeSeries:
    """Tests for TimeSeries class."""

    def test_tail(self):
        assert SERIES.tail(2) == TimeSeries((2000, 3000), (2.5, 3.5))
        assert SERIES.tail(10) is SERIES

    def test_json_format(self):
        points = SERIES.to_json()

        assert points[0] == {"Timestamp": 1000, "Value": 1.5}
        assert TimeSeries.from_json(points) == SERIES

    def test_mismatched_lengths(self):
        with pytest.raises(ConfigurationError):
            TimeSeries((1, 2), (1.0,))


class TestQuantileRequest:
    """Tests for QuantileRequest validation."""

    def test_payload(self):
        request = QuantileRequest(SERIES, quantile=0.95, confidence=0.01, name="op", length=2)

        assert request.to_payload() == {
            "quantile": 0.95,
            "confidence": 0.01,
            "data": SERIES.to_json(),
            "name": "op",
        }

    @pytest.mark.parametrize(
        "overrides",
        [{"quantile": 1.0}, {"quantile": 0.0}, {"confidence": 1.5}, {"length": 0}],
    )
    def test_invalid_values(self, overrides):
        params = {"quantile": 0.95, "confidence": 0.05, "name": "op", "length": 2}
        params.update(overrides)

        with pytest.raises(ConfigurationError):
            QuantileRequest(SERIES, **params)


class TestInMemoryQuantileCache:
    """Tests for InMemoryQuantileCache class."""

    def test_put_get(self):
        cache = InMemoryQuantileCache()

        assert not cache.contains("op", 2)
        assert cache.get("op", 2) is None

        cache.put("op", 2, SERIES)

        assert cache.contains("op", 2)
        assert not cache.contains("op", 3)
        assert cache.get("op", 2) == SERIES


class TestRedisQuantileCache:
    """Tests for RedisQuantileCache class."""

    @patch("src.forecast.cache.redis.Redis")
    def test_initialization(self, mock_redis_class):
        mock_redis = MagicMock()
        mock_redis_class.return_value = mock_redis

        cache = RedisQuantileCache(RedisConfig(host="redis", ttl_seconds=60))

        mock_redis_class.assert_called_once_with(
            host="redis", port=6379, db=0, password=None, decode_responses=True
        )
        mock_redis.ping.assert_called_once()
        assert cache.ttl == 60

    @patch("src.forecast.cache.redis.Redis")
    def test_unreachable_redis(self, mock_redis_class):
        mock_redis_class.return_value.ping.side_effect = redis.ConnectionError("refused")

        with pytest.raises(redis.ConnectionError):
            RedisQuantileCache(RedisConfig())

    @patch("src.forecast.cache.redis.Redis")
    def test_put_uses_ttl(self, mock_redis_class):
        mock_redis = MagicMock()
        mock_redis_class.return_value = mock_redis
        cache = RedisQuantileCache(RedisConfig(ttl_seconds=120))

        cache.put("datastore:get", 3, SERIES)

        mock_redis.setex.assert_called_once_with(
            "roots:quantiles:datastore:get:3", 120, json.dumps(SERIES.to_json())
        )

    @patch("src.forecast.cache.redis.Redis")
    def test_get_and_contains(self, mock_redis_class):
        mock_redis = MagicMock()
        mock_redis.get.return_value = json.dumps(SERIES.to_json())
        mock_redis.exists.return_value = 1
        mock_redis_class.return_value = mock_redis
        cache = RedisQuantileCache(RedisConfig())

        assert cache.get("datastore:get", 3) == SERIES
        assert cache.contains("datastore:get", 3) is True
        mock_redis.exists.assert_called_once_with("roots:quantiles:datastore:get:3")

    @patch("src.forecast.cache.redis.Redis")
    def test_missing_key(self, mock_redis_class):
        mock_redis = MagicMock()
        mock_redis.get.return_value = None
        mock_redis.exists.return_value = 0
        mock_redis_class.return_value = mock_redis
        cache = RedisQuantileCache(RedisConfig())

        assert cache.get("datastore:get", 3) is None
        assert cache.contains("datastore:get", 3) is False
