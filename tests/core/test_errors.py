"""
Tests for the error taxonomy.
"""

import pytest

from src.core.errors import (
    BackendComputationError,
    BackendInitializationError,
    BackendSessionError,
    CacheComputationError,
    ConfigurationError,
    DataSourceError,
    ForecastError,
    MonitorError,
)


class TestErrors:
    """Tests for error classes."""

    @pytest.mark.parametrize(
        "error_class",
        [
            BackendComputationError,
            BackendInitializationError,
            BackendSessionError,
            CacheComputationError,
            ConfigurationError,
            DataSourceError,
            ForecastError,
        ],
    )
    def test_all_errors_are_monitor_errors(self, error_class):
        """Test every error shares the MonitorError base."""
        assert issubclass(error_class, MonitorError)

    def test_session_error_is_a_computation_error(self):
        """Test a broken session is also a failed computation."""
        with pytest.raises(BackendComputationError):
            raise BackendSessionError("socket closed")

    def test_configuration_error_is_value_error(self):
        """Test invalid parameters can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise ConfigurationError("bad threshold")

    def test_cache_error_carries_key(self):
        """Test cache errors identify the key that failed."""
        error = CacheComputationError("service down", identity="datastore:op1", size=3)

        assert str(error) == "service down"
        assert error.identity == "datastore:op1"
        assert error.size == 3
