"""
Pytest configuration and shared fixtures.
"""

import pytest

from src.anomaly.models import DetectorConfig
from src.anomaly.sinks import AnomalySink
from src.core.errors import DataSourceError
from src.data.models import ApiCall, ApplicationRequest, ResponseTimeSummary
from src.data.source import DataSource
from src.stats.backend import StatisticsBackend


class StubDataSource(DataSource):
    """Serves canned per-period data keyed by period start"""

    def __init__(self):
        self.history: dict[str, list[ResponseTimeSummary]] = {}
        self.summaries: dict[int, dict[str, ResponseTimeSummary]] = {}
        self.requests: dict[str, list[ApplicationRequest]] = {}
        self.workload: list[float] = []
        self.fail = False
        self.calls: list[tuple] = []

    def _check(self, *call):
        self.calls.append(call)
        if self.fail:
            raise DataSourceError("data source unavailable")

    def get_response_time_summary(self, application, start, end):
        self._check("summary", start, end)
        return dict(self.summaries.get(start, {}))

    def get_response_time_history(self, application, start, end, period):
        self._check("history", start, end, period)
        return {op: list(items) for op, items in self.history.items()}

    def get_request_info(self, application, start, end):
        self._check("requests", start, end)
        return {
            op: [r for r in items if start <= r.timestamp < end]
            for op, items in self.requests.items()
        }

    def get_workload_summary(self, application, operation, start, end, period):
        self._check("workload", operation, start, end, period)
        return list(self.workload)


class CollectingSink(AnomalySink):
    """Keeps every report in memory"""

    def __init__(self):
        self.reports = []

    def report(self, report):
        self.reports.append(report)
        return True


class ScriptedBackend(StatisticsBackend):
    """Returns queued values; a queued exception is raised instead"""

    def __init__(self):
        self.correlations: list = []
        self.distances: list = []
        self.level_shifts: list[int] = []
        self.correlation_inputs: list[tuple[list, list]] = []

    @property
    def name(self):
        return "scripted"

    def correlation(self, x, y):
        self.correlation_inputs.append((list(x), list(y)))
        value = self.correlations.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def warping_distance(self, x, y):
        value = self.distances.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def detect_level_shifts(self, series):
        if isinstance(self.level_shifts, Exception):
            raise self.level_shifts
        return list(self.level_shifts)


def build_request(timestamp, operation, *calls):
    """Request whose path is the given call names ("service:op")"""
    api_calls = tuple(
        ApiCall(timestamp, name.split(":")[0], name.split(":")[1], 1.0) for name in calls
    )
    return ApplicationRequest(timestamp, "shop", operation, api_calls)


@pytest.fixture
def data_source():
    """Stub data source with no data."""
    return StubDataSource()


@pytest.fixture
def sink():
    """Sink collecting reports in memory."""
    return CollectingSink()


@pytest.fixture
def backend():
    """Scripted statistics backend."""
    return ScriptedBackend()


@pytest.fixture
def detector_config():
    """One-minute periods, five minutes of history, no guard."""
    return DetectorConfig(
        application="shop",
        analysis="correlation",
        period_seconds=60,
        history_length_seconds=300,
        period_guard_seconds=0,
        analysis_config={"correlation_threshold": 0.3, "distance_increase_threshold": 20.0},
    )


@pytest.fixture
def make_request():
    """Factory for traced requests."""
    return build_request
