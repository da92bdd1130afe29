"""
Concurrent cache updater with single-flight semantics per cache key.

Missing quantile series are computed on a bounded worker pool. A per-key
mutex guarantees that at most one computation per (identity, size) is in
flight; other callers for the same key wait for it and then find the
entry cached. Distinct keys compute concurrently.
"""

import os
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from contextlib import contextmanager

import structlog

from src.core.errors import CacheComputationError, ForecastError

from .cache import QuantileCache
from .client import ForecastClient
from .models import CacheItem, QuantileRequest

logger = structlog.get_logger(__name__)


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyLockRegistry:
    """Reference-counted mutex per cache key"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, int], _KeyLock] = {}

    @contextmanager
    def hold(self, key: tuple[str, int]) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class CacheUpdater:
    """Fills a QuantileCache through a ForecastClient"""

    def __init__(self, cache: QuantileCache, client: ForecastClient, workers: int | None = None):
        self.cache = cache
        self.client = client
        self.workers = workers or max(1, (os.cpu_count() or 1) - 1)
        self.locks = KeyLockRegistry()
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="quantile-worker"
        )
        self._closed = False
        logger.info("Cache updater started", workers=self.workers)

    def ensure_computed(self, identity: str, size: int, request: QuantileRequest) -> None:
        """Make sure quantiles for (identity, size) are cached, blocking until they are"""
        self.ensure_computed_batch([CacheItem(identity, size, request)])

    def ensure_computed_batch(self, items: Iterable[CacheItem]) -> None:
        """Compute every missing key concurrently

        All submitted computations are awaited. If any failed, the first
        failure in submission order is raised; keys that succeeded stay cached.

        Raises:
            CacheComputationError: If a key could not be computed or the updater is closed
        """
        pending: list[tuple[CacheItem, Future]] = []
        for item in items:
            if not self.cache.contains(item.identity, item.size):
                pending.append((item, self._submit(item)))

        failures: list[CacheComputationError] = []
        for item, future in pending:
            try:
                future.result()
            except CacheComputationError as e:
                failures.append(e)
            except CancelledError:
                failures.append(
                    CacheComputationError(
                        f"Computation cancelled for {item.identity}", item.identity, item.size
                    )
                )
            except Exception as e:
                failures.append(
                    CacheComputationError(
                        f"Computation failed for {item.identity}: {e}", item.identity, item.size
                    )
                )

        if failures:
            logger.error(
                "Quantile batch failed",
                failed=len(failures),
                submitted=len(pending),
                first=failures[0].identity,
            )
            raise failures[0]

    def close(self) -> None:
        """Stop accepting work and cancel queued computations"""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Cache updater closed")

    def _submit(self, item: CacheItem) -> Future:
        if self._closed:
            raise CacheComputationError("Cache updater is closed", item.identity, item.size)
        try:
            return self._executor.submit(self._compute, item)
        except RuntimeError as e:
            raise CacheComputationError(
                f"Cache updater rejected {item.identity}: {e}", item.identity, item.size
            ) from e

    def _compute(self, item: CacheItem) -> None:
        with self.locks.hold((item.identity, item.size)):
            if self.cache.contains(item.identity, item.size):
                return

            request = item.request
            logger.debug(
                "Calculating quantiles",
                identity=item.identity,
                size=item.size,
                quantile=request.quantile,
                confidence=request.confidence,
            )
            try:
                prediction = self.client.predict(request)
            except ForecastError as e:
                logger.error("Quantile computation failed", identity=item.identity, error=str(e))
                raise CacheComputationError(str(e), item.identity, item.size) from e

            self.cache.put(item.identity, item.size, prediction.tail(request.length))
