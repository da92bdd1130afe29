"""
Data models and configuration for the anomaly detectors.
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum

from src.core.errors import ConfigurationError


class DetectorState(Enum):
    """Lifecycle of a detector"""

    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPED = "bootstrapped"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class DetectorConfig:
    """Configuration shared by all detectors"""

    application: str
    analysis: str = "correlation"
    period_seconds: int = 60
    history_length_seconds: int = 3600
    period_guard_seconds: int = 0  # Lag tolerated for late-arriving data

    # Analysis-specific configuration
    analysis_config: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.application:
            raise ConfigurationError("application must not be empty")
        if self.period_seconds <= 0:
            raise ConfigurationError(f"period_seconds must be positive, got {self.period_seconds}")
        if self.history_length_seconds < self.period_seconds:
            raise ConfigurationError(
                f"history_length_seconds ({self.history_length_seconds}) "
                f"must cover at least one period ({self.period_seconds})"
            )
        if self.period_guard_seconds < 0:
            raise ConfigurationError(
                f"period_guard_seconds must not be negative, got {self.period_guard_seconds}"
            )

    @property
    def period_ms(self) -> int:
        return self.period_seconds * 1000

    @property
    def history_ms(self) -> int:
        return self.history_length_seconds * 1000

    @property
    def guard_ms(self) -> int:
        return self.period_guard_seconds * 1000


@dataclass
class CorrelationConfig:
    """Thresholds of the correlation-based detector"""

    correlation_threshold: float = 0.5
    distance_increase_threshold: float = 20.0  # percent

    def __post_init__(self):
        if not -1.0 <= self.correlation_threshold <= 1.0:
            raise ConfigurationError(
                f"correlation_threshold must be in [-1, 1], got {self.correlation_threshold}"
            )
        if self.distance_increase_threshold <= 0:
            raise ConfigurationError(
                "distance_increase_threshold must be positive, "
                f"got {self.distance_increase_threshold}"
            )


@dataclass
class PathConfig:
    """Thresholds of the path distribution detector"""

    drift_threshold: float = 3.0  # standard deviations
    min_history: int = 3

    def __post_init__(self):
        if self.drift_threshold <= 0:
            raise ConfigurationError(
                f"drift_threshold must be positive, got {self.drift_threshold}"
            )
        if self.min_history < 2:
            raise ConfigurationError(f"min_history must be at least 2, got {self.min_history}")


@dataclass(frozen=True)
class Correlation:
    """Statistic computed for one operation in one period"""

    key: str
    r_value: float
    distance: float

    @property
    def defined(self) -> bool:
        return not math.isnan(self.r_value)


@dataclass(frozen=True)
class PathRatio:
    """Share of an operation's requests that took one path in one period"""

    timestamp: int
    ratio: float  # percent, [0, 100]

    @classmethod
    def of(cls, timestamp: int, count: int, total: int) -> "PathRatio":
        if total <= 0:
            return cls.zero(timestamp)
        return cls(timestamp=timestamp, ratio=count * 100.0 / total)

    @classmethod
    def zero(cls, timestamp: int) -> "PathRatio":
        return cls(timestamp=timestamp, ratio=0.0)


@dataclass(frozen=True)
class AnomalyReport:
    """Represents a detected anomaly"""

    timestamp: int
    application: str
    key: str
    message: str
    detector: str

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization"""
        return asdict(self)
