"""
Data models for quantile forecasting.
"""

from dataclasses import dataclass, field

from src.core.errors import ConfigurationError


@dataclass(frozen=True)
class TimeSeries:
    """Time-ascending (timestamp, value) points"""

    timestamps: tuple[int, ...] = field(default_factory=tuple)
    values: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.timestamps) != len(self.values):
            raise ConfigurationError(
                f"Timestamps and values differ in length: "
                f"{len(self.timestamps)} != {len(self.values)}"
            )

    def __len__(self) -> int:
        return len(self.values)

    def tail(self, length: int) -> "TimeSeries":
        """Keep only the trailing `length` points"""
        if length >= len(self):
            return self
        return TimeSeries(self.timestamps[-length:], self.values[-length:])

    def to_json(self) -> list[dict]:
        """Wire format shared with the forecasting service"""
        return [{"Timestamp": t, "Value": v} for t, v in zip(self.timestamps, self.values)]

    @classmethod
    def from_json(cls, points: list[dict]) -> "TimeSeries":
        return cls(
            timestamps=tuple(int(p["Timestamp"]) for p in points),
            values=tuple(float(p["Value"]) for p in points),
        )


@dataclass(frozen=True)
class QuantileRequest:
    """Parameters of one quantile prediction"""

    data: TimeSeries
    quantile: float
    confidence: float
    name: str
    length: int  # Trailing points kept from the prediction

    def __post_init__(self):
        if not 0 < self.quantile < 1:
            raise ConfigurationError(f"quantile must be in (0, 1), got {self.quantile}")
        if not 0 < self.confidence < 1:
            raise ConfigurationError(f"confidence must be in (0, 1), got {self.confidence}")
        if self.length < 1:
            raise ConfigurationError(f"length must be at least 1, got {self.length}")

    def to_payload(self) -> dict:
        return {
            "quantile": self.quantile,
            "confidence": self.confidence,
            "data": self.data.to_json(),
            "name": self.name,
        }


@dataclass(frozen=True)
class CacheItem:
    """One key of a batch cache update"""

    identity: str
    size: int
    request: QuantileRequest


@dataclass
class RedisConfig:
    """Redis settings for the shared quantile cache"""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str | None = None
    ttl_seconds: int = 900
