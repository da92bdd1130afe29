"""
Detector lifecycle: bootstrap, periodic advance and history eviction.

The first run seeds history with the whole history horizon (shifted back
by the period guard to absorb ingestion lag) and records baseline
statistics without reporting. Every later run processes at most one
period, and only once that period plus the guard has fully elapsed.
"""

import threading

import structlog

from src.core.errors import BackendComputationError, DataSourceError
from src.data.source import DataSource

from .analysis.base import DetectorAnalysis
from .models import AnomalyReport, DetectorConfig, DetectorState
from .sinks import AnomalySink

logger = structlog.get_logger(__name__)


class Detector:
    """Periodic, stateful anomaly detector for one application"""

    def __init__(
        self,
        config: DetectorConfig,
        analysis: DetectorAnalysis,
        data_source: DataSource,
        sink: AnomalySink,
    ):
        self.config = config
        self.analysis = analysis
        self.data_source = data_source
        self.sink = sink

        self.state = DetectorState.UNINITIALIZED
        self.window_end: int | None = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"{self.analysis.name}:{self.config.application}"

    def is_due(self, now: int) -> bool:
        """Whether run(now) would do any work"""
        if self.state == DetectorState.STOPPED:
            return False
        if self.window_end is None:
            return True
        return self.window_end + self.config.period_ms + self.config.guard_ms <= now

    def run(self, now: int) -> list[AnomalyReport]:
        """Advance the detector to `now` (epoch milliseconds)

        Returns:
            Anomalies reported by this run

        Raises:
            DataSourceError: If the data source fails; history and window are left untouched
        """
        with self._lock:
            if self.state == DetectorState.STOPPED:
                return []
            if self.window_end is None:
                return self._bootstrap(now)
            if not self.is_due(now):
                return []
            return self._advance()

    def stop(self) -> None:
        with self._lock:
            self.state = DetectorState.STOPPED
        logger.info("Detector stopped", detector=self.name)

    def _bootstrap(self, now: int) -> list[AnomalyReport]:
        end = now - self.config.guard_ms
        start = end - self.config.history_ms

        try:
            keys = self.analysis.load_history(
                self.data_source, self.config.application, start, end, self.config.period_ms
            )
        except DataSourceError as e:
            logger.error(
                "Bootstrap failed",
                detector=self.name,
                application=self.config.application,
                start=start,
                end=end,
                error=str(e),
            )
            raise

        self.analysis.evict(end - self.config.history_ms)
        for key in sorted(keys):
            statistic = self._compute(key, start, end)
            if statistic is not None:
                self.analysis.record(key, statistic)

        self.window_end = end
        self.state = DetectorState.BOOTSTRAPPED
        logger.info(
            "Detector bootstrapped",
            detector=self.name,
            start=start,
            end=end,
            keys=len(keys),
        )
        return []

    def _advance(self) -> list[AnomalyReport]:
        start = self.window_end
        end = start + self.config.period_ms

        try:
            data = self.analysis.fetch_period(
                self.data_source, self.config.application, start, end
            )
        except DataSourceError as e:
            logger.error(
                "Failed to fetch period",
                detector=self.name,
                application=self.config.application,
                start=start,
                end=end,
                error=str(e),
            )
            raise

        keys = self.analysis.apply_period(data, start, end)
        self.window_end = end
        self.analysis.evict(end - self.config.history_ms)

        reports = []
        for key in sorted(keys):
            statistic = self._compute(key, start, end)
            if statistic is None:
                continue
            for message in self.analysis.evaluate(key, statistic):
                report = AnomalyReport(
                    timestamp=end,
                    application=self.config.application,
                    key=key,
                    message=message,
                    detector=self.analysis.name,
                )
                self.sink.report(report)
                reports.append(report)
            self.analysis.record(key, statistic)

        self.state = DetectorState.RUNNING
        logger.debug(
            "Period processed",
            detector=self.name,
            start=start,
            end=end,
            keys=len(keys),
            anomalies=len(reports),
        )
        return reports

    def _compute(self, key: str, start: int, end: int):
        try:
            return self.analysis.compute_statistic(key)
        except BackendComputationError as e:
            logger.warning(
                "Statistic computation failed",
                detector=self.name,
                application=self.config.application,
                key=key,
                start=start,
                end=end,
                error=str(e),
            )
            return None

    def __repr__(self) -> str:
        return (
            f"Detector(name={self.name!r}, state={self.state.value}, "
            f"window_end={self.window_end})"
        )
