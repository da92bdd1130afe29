"""
Error taxonomy shared by the monitoring engine.

Only DataSourceError and ConfigurationError abort a run or a startup.
Statistic-level errors degrade to "no signal this period".
"""


class MonitorError(Exception):
    """Base class for all monitoring engine errors"""


class ConfigurationError(MonitorError, ValueError):
    """Invalid construction parameters"""


class DataSourceError(MonitorError):
    """Data retrieval failed; fatal to the current detector run"""


class BackendComputationError(MonitorError):
    """A statistic could not be computed by the statistics backend"""


class BackendSessionError(BackendComputationError):
    """The backend session itself is broken and must not be reused"""


class BackendInitializationError(MonitorError):
    """A backend session could not be created or initialized"""


class ForecastError(MonitorError):
    """The forecasting service call failed"""


class CacheComputationError(MonitorError):
    """A quantile forecast for one cache key could not be computed"""

    def __init__(self, message: str, identity: str | None = None, size: int | None = None):
        super().__init__(message)
        self.identity = identity
        self.size = size
