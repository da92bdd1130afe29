"""
Correlation-based performance anomaly analysis.

For every operation the request counts and mean response times of the
retained periods are compared. Latency normally follows load; an anomaly
is flagged when the two stop correlating AND the warping distance between
them grows sharply compared with the previous period.
"""

import math

import structlog

from src.core.errors import ConfigurationError
from src.data.models import ResponseTimeSummary
from src.data.source import DataSource
from src.stats.backend import StatisticsBackend

from ..models import Correlation, CorrelationConfig
from .base import DetectorAnalysis

logger = structlog.get_logger(__name__)

MIN_POINTS = 3


def distance_increase(previous: float, current: float) -> float:
    """Percentage increase of the warping distance"""
    if previous == 0:
        return math.inf if current > 0 else 0.0
    return (current - previous) * 100.0 / previous


class CorrelationAnalysis(DetectorAnalysis):
    """Load/latency correlation breakdown per operation"""

    name = "correlation"

    def __init__(self, config: dict | None = None, backend: StatisticsBackend | None = None):
        if backend is None:
            raise ConfigurationError("Correlation analysis needs a statistics backend")
        self.config = CorrelationConfig(**(config or {}))
        self.backend = backend
        self.history: dict[str, list[ResponseTimeSummary]] = {}
        self.prev_distance: dict[str, float] = {}

    def load_history(
        self, data_source: DataSource, application: str, start: int, end: int, period: int
    ) -> set[str]:
        data = data_source.get_response_time_history(application, start, end, period)
        for operation, summaries in data.items():
            self.history[operation] = sorted(summaries, key=lambda s: s.timestamp)
        return set(data)

    def fetch_period(
        self, data_source: DataSource, application: str, start: int, end: int
    ) -> dict[str, ResponseTimeSummary]:
        return data_source.get_response_time_summary(application, start, end)

    def apply_period(self, data: dict[str, ResponseTimeSummary], start: int, end: int) -> set[str]:
        for operation, summary in data.items():
            self.history.setdefault(operation, []).append(summary)
        return set(data)

    def evict(self, cutoff: int) -> None:
        for operation in list(self.history):
            retained = [s for s in self.history[operation] if s.timestamp >= cutoff]
            if retained:
                self.history[operation] = retained
            else:
                del self.history[operation]
                self.prev_distance.pop(operation, None)

    def compute_statistic(self, key: str) -> Correlation | None:
        summaries = self.history.get(key, [])
        if len(summaries) < MIN_POINTS:
            return None

        request_counts = [float(s.request_count) for s in summaries]
        response_times = [s.mean_response_time for s in summaries]
        r_value = self.backend.correlation(request_counts, response_times)
        distance = self.backend.warping_distance(request_counts, response_times)

        logger.debug(
            "Correlation computed",
            operation=key,
            points=len(summaries),
            r_value=round(r_value, 4),
            distance=round(distance, 4),
        )
        return Correlation(key=key, r_value=r_value, distance=distance)

    def evaluate(self, key: str, statistic: Correlation) -> list[str]:
        previous = self.prev_distance.get(key)
        if previous is None or not statistic.defined:
            return []
        if statistic.r_value >= self.config.correlation_threshold:
            return []

        increase = distance_increase(previous, statistic.distance)
        if increase > self.config.distance_increase_threshold:
            return [f"Correlation: {statistic.r_value:.4f}; DTW-Increase: {increase:.4f}%"]
        return []

    def record(self, key: str, statistic: Correlation) -> None:
        self.prev_distance[key] = statistic.distance

    def keys(self) -> list[str]:
        return sorted(self.history)
