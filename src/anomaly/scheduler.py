"""
Periodic driver running every due detector on each tick.
"""

import threading
import time
from collections.abc import Callable

import structlog

from src.core.errors import MonitorError

from .detector import Detector
from .models import AnomalyReport

logger = structlog.get_logger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class DetectorScheduler:
    """Ticks detectors until stopped

    A run that fails is logged and retried on a later tick; the detector
    keeps its state because failing runs do not mutate it.
    """

    def __init__(
        self,
        detectors: list[Detector],
        clock: Callable[[], int] = now_millis,
        sleep: Callable[[float], object] | None = None,
        tick_seconds: float = 1.0,
    ):
        self.detectors = detectors
        self.clock = clock
        self.tick_seconds = tick_seconds
        self._stop_event = threading.Event()
        self.sleep = sleep or self._stop_event.wait

        self.runs = 0
        self.failures = 0
        self.anomalies = 0

    def run_once(self) -> list[AnomalyReport]:
        """Run every detector that is due now"""
        now = self.clock()
        reports = []
        for detector in self.detectors:
            if not detector.is_due(now):
                continue
            self.runs += 1
            try:
                reports.extend(detector.run(now))
            except MonitorError as e:
                self.failures += 1
                logger.error(
                    "Detector run failed, retrying on next tick",
                    detector=detector.name,
                    now=now,
                    error=str(e),
                )
        self.anomalies += len(reports)
        return reports

    def run(self, iterations: int | None = None) -> None:
        """Tick until stop() is called or `iterations` ticks have run"""
        logger.info(
            "Starting scheduler",
            detectors=[d.name for d in self.detectors],
            tick_seconds=self.tick_seconds,
            iterations=iterations if iterations else "indefinite",
        )

        ticks = 0
        try:
            while not self._stop_event.is_set():
                self.run_once()
                ticks += 1
                if iterations is not None and ticks >= iterations:
                    break
                self.sleep(self.tick_seconds)
        finally:
            logger.info(
                "Scheduler stopped",
                ticks=ticks,
                runs=self.runs,
                failures=self.failures,
                anomalies=self.anomalies,
            )

    def stop(self) -> None:
        self._stop_event.set()
        for detector in self.detectors:
            detector.stop()
