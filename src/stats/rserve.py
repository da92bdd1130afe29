"""
Remote statistics backend running on a pool of Rserve sessions.

Each session loads the dtw and tsoutliers R packages when it is created.
Computations bind their inputs to temporary names and always remove them
before the session goes back to the pool, so backend memory stays bounded.
Requires the optional ``pyRserve`` dependency (``pip install .[rserve]``).
"""

from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

import numpy as np
import structlog

from src.core.errors import BackendComputationError, BackendSessionError

from .backend import StatisticsBackend
from .pool import Session, SessionPool

logger = structlog.get_logger(__name__)

REQUIRED_EXTENSIONS = ("dtw", "tsoutliers")


class RserveSession(Session):
    """One Rserve connection with the required R packages loaded"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6311,
        extensions: Sequence[str] = REQUIRED_EXTENSIONS,
    ):
        import pyRserve

        self._errors = pyRserve.rexceptions
        self._conn = pyRserve.connect(host=host, port=port)
        try:
            for extension in extensions:
                self._conn.voidEval(f"library('{extension}')")
        except Exception:
            self._conn.close()
            raise
        logger.debug("Rserve session created", host=host, port=port, extensions=list(extensions))

    def assign(self, name: str, value: Any) -> None:
        try:
            setattr(self._conn.r, name, value)
        except Exception as e:
            raise BackendSessionError(f"Failed to assign '{name}': {e}") from e

    def evaluate(self, expression: str) -> Any:
        try:
            return self._conn.eval(expression)
        except self._errors.REvalError as e:
            raise BackendComputationError(f"R evaluation failed [{expression}]: {e}") from e
        except Exception as e:
            raise BackendSessionError(f"Rserve session failure [{expression}]: {e}") from e

    def remove(self, *names: str) -> None:
        if not names:
            return
        try:
            self._conn.voidEval(f"rm({', '.join(names)})")
        except Exception as e:
            raise BackendSessionError(f"Failed to remove temporaries: {e}") from e

    def close(self) -> None:
        self._conn.close()


@dataclass
class RserveConfig:
    """Configuration for the Rserve backend"""

    host: str = "localhost"
    port: int = 6311
    pool_size: int = 4
    borrow_timeout: float | None = 30.0


class RserveStatistics(StatisticsBackend):
    """Statistics computed by R through pooled Rserve sessions"""

    def __init__(self, pool: SessionPool):
        self.pool = pool
        self._name = "rserve"

    @classmethod
    def from_config(cls, config: dict | None = None) -> "RserveStatistics":
        settings = RserveConfig(**(config or {}))
        pool = SessionPool(
            partial(RserveSession, settings.host, settings.port),
            size=settings.pool_size,
            borrow_timeout=settings.borrow_timeout,
        )
        return cls(pool)

    @property
    def name(self) -> str:
        return self._name

    def correlation(self, x: Sequence[float], y: Sequence[float]) -> float:
        with self.pool.session() as session:
            try:
                session.assign("x", np.asarray(x, dtype=float))
                session.assign("y", np.asarray(y, dtype=float))
                return float(session.evaluate("cor(x, y, method='pearson')"))
            finally:
                session.remove("x", "y")

    def warping_distance(self, x: Sequence[float], y: Sequence[float]) -> float:
        with self.pool.session() as session:
            try:
                session.assign("x", np.asarray(x, dtype=float))
                session.assign("y", np.asarray(y, dtype=float))
                session.evaluate("time_warp <- dtw(x, y)")
                return float(session.evaluate("time_warp$distance"))
            finally:
                session.remove("x", "y", "time_warp")

    def detect_level_shifts(self, series: Sequence[float]) -> list[int]:
        with self.pool.session() as session:
            try:
                session.assign("x", np.asarray(series, dtype=float))
                session.evaluate("x_ts <- ts(x)")
                session.evaluate("result <- tso(x_ts, types=c('LS'))")
                positions = session.evaluate("result$outliers[,2]")
            finally:
                session.remove("x", "x_ts", "result")
        return sorted(int(p) for p in np.atleast_1d(np.asarray(positions)))

    def close(self) -> None:
        self.pool.shutdown()

    def __repr__(self) -> str:
        return f"RserveStatistics(pool_size={self.pool.size})"
