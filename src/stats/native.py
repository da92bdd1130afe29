"""
Native statistics backend built on numpy and statsmodels.

- Correlation: Pearson coefficient (NaN for constant input, like R's cor)
- Warping distance: DTW with absolute-difference local cost and the
  symmetric2 step pattern (diagonal steps weighted 2), not normalized.
  This is the value R's dtw(x, y)$distance reports.
- Level shifts: joint estimation of ARIMA parameters and level-shift
  effects (Chen & Liu, 1993), the procedure behind R's tsoutliers::tso.
"""

import warnings
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import structlog
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.arima_process import arma2ar

from src.core.errors import BackendComputationError

from .backend import StatisticsBackend

logger = structlog.get_logger(__name__)

# Consistency constant turning a MAD into a normal standard deviation
MAD_SCALE = 1.483


@dataclass
class NativeStatisticsConfig:
    """Configuration for the native backend"""

    arima_order: tuple[int, int, int] = (1, 0, 0)
    min_points: int = 8  # Shortest series handed to the outlier model
    max_iterations: int = 10  # Upper bound on detected level shifts
    critical_value: float | None = None  # None: tso's length-dependent default


class NativeStatistics(StatisticsBackend):
    """In-process implementation of the numeric primitives"""

    def __init__(self, config: dict | None = None):
        self.config = NativeStatisticsConfig(**(config or {}))
        self._name = "native"

    @property
    def name(self) -> str:
        return self._name

    def correlation(self, x: Sequence[float], y: Sequence[float]) -> float:
        a, b = self._as_pair(x, y)
        if len(a) < 2:
            raise BackendComputationError("Correlation needs at least two points")
        with np.errstate(divide="ignore", invalid="ignore"):
            return float(np.corrcoef(a, b)[0, 1])

    def warping_distance(self, x: Sequence[float], y: Sequence[float]) -> float:
        a = np.asarray(x, dtype=float)
        b = np.asarray(y, dtype=float)
        if a.size == 0 or b.size == 0:
            raise BackendComputationError("Warping distance needs non-empty series")

        cost = np.abs(a[:, None] - b[None, :])
        n, m = cost.shape
        acc = np.full((n, m), np.inf)
        acc[0, 0] = cost[0, 0]
        for i in range(n):
            for j in range(m):
                if i == 0 and j == 0:
                    continue
                best = np.inf
                if i > 0 and j > 0:
                    best = acc[i - 1, j - 1] + 2 * cost[i, j]
                if i > 0:
                    best = min(best, acc[i - 1, j] + cost[i, j])
                if j > 0:
                    best = min(best, acc[i, j - 1] + cost[i, j])
                acc[i, j] = best
        return float(acc[-1, -1])

    def detect_level_shifts(self, series: Sequence[float]) -> list[int]:
        y = np.asarray(series, dtype=float)
        n = len(y)
        if n < self.config.min_points:
            raise BackendComputationError(
                f"Insufficient data points: {n} < {self.config.min_points}"
            )
        if not np.all(np.isfinite(y)):
            raise BackendComputationError("Series contains non-finite values")
        if np.ptp(y) == 0:
            return []

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                fitted = ARIMA(y, order=self.config.arima_order).fit()
        except (ValueError, np.linalg.LinAlgError) as e:
            raise BackendComputationError(f"ARIMA fit failed: {e}") from e

        residuals = np.asarray(fitted.resid, dtype=float).copy()
        shift_effects = self._shift_effects(fitted, n)
        critical = self._critical_value(n)

        found: list[int] = []
        for _ in range(self.config.max_iterations):
            sigma = self._robust_sigma(residuals)
            if sigma == 0:
                break

            best_index, best_tau, best_omega = None, 0.0, 0.0
            for t in range(1, n):
                if t in found:
                    continue
                x = np.zeros(n)
                x[t:] = shift_effects[: n - t]
                xx = float(x @ x)
                omega = float(x @ residuals) / xx
                tau = omega * np.sqrt(xx) / sigma
                if abs(tau) > abs(best_tau):
                    best_index, best_tau, best_omega = t, tau, omega

            if best_index is None or abs(best_tau) <= critical:
                break

            found.append(best_index)
            x = np.zeros(n)
            x[best_index:] = shift_effects[: n - best_index]
            residuals = residuals - best_omega * x

        logger.debug(
            "Level shift search finished",
            points=n,
            critical_value=round(critical, 3),
            shifts=len(found),
        )
        return sorted(t + 1 for t in found)

    def _shift_effects(self, fitted, n: int) -> np.ndarray:
        """Residual-domain response to a unit step: cumulative pi-weights"""
        ar = np.r_[1.0, -np.asarray(fitted.arparams, dtype=float)]
        ma = np.r_[1.0, np.asarray(fitted.maparams, dtype=float)]
        for _ in range(self.config.arima_order[1]):
            ar = np.convolve(ar, [1.0, -1.0])
        return np.cumsum(arma2ar(ar, ma, lags=n))

    def _critical_value(self, n: int) -> float:
        if self.config.critical_value is not None:
            return self.config.critical_value
        if n <= 50:
            return 3.0
        if n >= 450:
            return 4.0
        return 3.0 + 0.0025 * (n - 50)

    @staticmethod
    def _robust_sigma(residuals: np.ndarray) -> float:
        sigma = MAD_SCALE * float(np.median(np.abs(residuals - np.median(residuals))))
        if sigma == 0:
            sigma = float(np.std(residuals))
        return sigma

    @staticmethod
    def _as_pair(x: Sequence[float], y: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        a = np.asarray(x, dtype=float)
        b = np.asarray(y, dtype=float)
        if a.shape != b.shape:
            raise BackendComputationError(
                f"Series must have equal length: {a.size} != {b.size}"
            )
        return a, b

    def __repr__(self) -> str:
        return f"NativeStatistics(config={self.config})"
