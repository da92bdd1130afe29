"""
Base abstract interface for statistics backends.

The detectors only need three numeric primitives. Every backend raises
BackendComputationError when one of them cannot be computed.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence


class StatisticsBackend(ABC):
    """Narrow numeric interface used by the detectors"""

    @abstractmethod
    def correlation(self, x: Sequence[float], y: Sequence[float]) -> float:
        """Pearson correlation coefficient of two equal-length series"""

    @abstractmethod
    def warping_distance(self, x: Sequence[float], y: Sequence[float]) -> float:
        """Dynamic time warping distance between two series"""

    @abstractmethod
    def detect_level_shifts(self, series: Sequence[float]) -> list[int]:
        """Positions where a level shift starts

        Returns:
            1-based positions, ascending, as reported by the outlier model
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the backend"""

    def close(self) -> None:
        """Release backend resources"""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
