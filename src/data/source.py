"""
Base abstract interface for data sources.

A data source turns stored request logs and traces into the summaries the
detectors consume. All intervals are [start, end) in epoch milliseconds and
every retrieval failure is raised as DataSourceError.
"""

from abc import ABC, abstractmethod

from .models import ApplicationRequest, ResponseTimeSummary


class DataSource(ABC):
    """Abstract base class for all data sources"""

    @abstractmethod
    def get_response_time_summary(
        self, application: str, start: int, end: int
    ) -> dict[str, ResponseTimeSummary]:
        """Response time statistics per operation over [start, end)

        Args:
            application: Name of the application
            start: Start of the interval (inclusive)
            end: End of the interval (exclusive)

        Returns:
            Mapping of operation to the summary of its requests in the interval
        """

    @abstractmethod
    def get_response_time_history(
        self, application: str, start: int, end: int, period: int
    ) -> dict[str, list[ResponseTimeSummary]]:
        """Response time statistics per operation, one summary per period

        Args:
            application: Name of the application
            start: Start of the interval (inclusive)
            end: End of the interval (exclusive)
            period: Length of one period in milliseconds

        Returns:
            Mapping of operation to time-ascending per-period summaries
        """

    @abstractmethod
    def get_request_info(
        self, application: str, start: int, end: int
    ) -> dict[str, list[ApplicationRequest]]:
        """Execution traces per operation observed in [start, end)"""

    @abstractmethod
    def get_workload_summary(
        self, application: str, operation: str, start: int, end: int, period: int
    ) -> list[float]:
        """Request count of one operation per period in [start, end)"""

    def close(self) -> None:
        """Release resources held by the data source"""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
