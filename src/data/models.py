"""
Data models produced by data sources.

All timestamps are epoch milliseconds.
"""

from dataclasses import dataclass, field
from statistics import fmean


@dataclass(frozen=True)
class ResponseTimeSummary:
    """Request count and mean response time of one operation over one period"""

    timestamp: int  # window start
    request_count: int
    mean_response_time: float

    @classmethod
    def from_response_times(
        cls, timestamp: int, response_times: list[float]
    ) -> "ResponseTimeSummary":
        """Summarize the response times of the requests observed in a window"""
        if not response_times:
            return cls(timestamp=timestamp, request_count=0, mean_response_time=0.0)
        return cls(
            timestamp=timestamp,
            request_count=len(response_times),
            mean_response_time=fmean(response_times),
        )


@dataclass(frozen=True)
class ApiCall:
    """A downstream service call made while serving a request"""

    timestamp: int
    service: str
    operation: str
    duration_ms: float

    @property
    def name(self) -> str:
        return f"{self.service}:{self.operation}"


@dataclass(frozen=True)
class ApplicationRequest:
    """One observed execution trace of an application operation"""

    timestamp: int
    application: str
    operation: str
    calls: tuple[ApiCall, ...] = field(default_factory=tuple)

    @property
    def path(self) -> str:
        """Path signature: the ordered sequence of downstream call names"""
        return ", ".join(call.name for call in self.calls)


@dataclass
class DatabaseConfig:
    """PostgreSQL connection settings"""

    host: str = "localhost"
    port: int = 5432
    database: str = "roots_db"
    user: str = "roots"
    password: str = "roots_password"
