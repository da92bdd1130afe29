"""
Base abstract interface for detector analyses.

A Detector owns the window state machine and delegates everything that
depends on the kind of data to a DetectorAnalysis:
- load_history(): seed history for the bootstrap interval
- fetch_period() / apply_period(): pull and merge one period
- evict(): drop entries older than the history horizon
- compute_statistic() / evaluate() / record(): per key statistics
"""

from abc import ABC, abstractmethod
from typing import Any

from src.data.source import DataSource


class DetectorAnalysis(ABC):
    """Abstract base class for the data-specific part of a detector

    The analysis owns its history; it is only touched from the detector
    that holds it.
    """

    name: str = "analysis"

    @abstractmethod
    def load_history(
        self, data_source: DataSource, application: str, start: int, end: int, period: int
    ) -> set[str]:
        """Seed history with the whole bootstrap interval

        Returns:
            Keys present in the seeded history
        """

    @abstractmethod
    def fetch_period(self, data_source: DataSource, application: str, start: int, end: int) -> Any:
        """Retrieve the data of one period without touching history

        Raises:
            DataSourceError: If the data source fails
        """

    @abstractmethod
    def apply_period(self, data: Any, start: int, end: int) -> set[str]:
        """Merge fetched period data into history

        Returns:
            Keys whose history changed
        """

    @abstractmethod
    def evict(self, cutoff: int) -> None:
        """Drop every history entry with timestamp < cutoff"""

    @abstractmethod
    def compute_statistic(self, key: str) -> Any | None:
        """Statistic for one key, or None when history is too short

        Raises:
            BackendComputationError: If the statistics backend fails
        """

    @abstractmethod
    def evaluate(self, key: str, statistic: Any) -> list[str]:
        """Anomaly messages for a freshly computed statistic"""

    def record(self, key: str, statistic: Any) -> None:
        """Keep whatever the next evaluation compares against"""

    def keys(self) -> list[str]:
        """Keys currently held in history"""
        return []
