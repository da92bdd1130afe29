"""
Fixed-size pool of stateful statistics backend sessions.

Sessions are created eagerly so a backend that cannot be initialized fails
at startup. A lent session is never shared between callers; use
``SessionPool.session()`` so it always goes back to the pool.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from src.core.errors import (
    BackendComputationError,
    BackendInitializationError,
    BackendSessionError,
    ConfigurationError,
)

logger = structlog.get_logger(__name__)


class Session(ABC):
    """A stateful computation session (e.g. one Rserve connection)"""

    @abstractmethod
    def assign(self, name: str, value: Any) -> None:
        """Bind a value to a name inside the session"""

    @abstractmethod
    def evaluate(self, expression: str) -> Any:
        """Evaluate an expression and return its value"""

    @abstractmethod
    def remove(self, *names: str) -> None:
        """Drop temporary bindings"""

    @abstractmethod
    def close(self) -> None:
        """Destroy the session"""


class SessionPool:
    """Lends a bounded number of backend sessions to concurrent callers

    Sessions lost to a failed replacement are re-created on a later borrow,
    so the pool never stays below its configured size.
    """

    def __init__(
        self,
        factory: Callable[[], Session],
        size: int,
        borrow_timeout: float | None = None,
    ):
        if size < 1:
            raise ConfigurationError(f"Pool size must be positive, got {size}")

        self.factory = factory
        self.size = size
        self.borrow_timeout = borrow_timeout
        self._idle: list[Session] = []
        self._available = threading.Condition()
        self._closed = False
        self._lent = 0
        self._missing = 0

        created: list[Session] = []
        try:
            for _ in range(size):
                created.append(factory())
        except Exception as e:
            for session in created:
                self._destroy(session)
            logger.error("Failed to initialize backend session pool", size=size, error=str(e))
            raise BackendInitializationError(f"Could not create backend session: {e}") from e

        self._idle.extend(created)
        logger.info("Backend session pool initialized", size=size)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def available(self) -> int:
        """Number of idle sessions"""
        with self._available:
            return len(self._idle)

    def borrow(self, timeout: float | None = None) -> Session:
        """Take a session, blocking while every session is lent out

        Raises:
            BackendComputationError: On timeout, on shutdown (also while
                waiting) or when a missing session cannot be re-created
        """
        timeout = self.borrow_timeout if timeout is None else timeout
        with self._available:
            ready = self._available.wait_for(
                lambda: self._closed or self._idle or self._missing > 0, timeout=timeout
            )
            if self._closed:
                raise BackendComputationError("Backend session pool is shut down")
            if not ready:
                raise BackendComputationError(
                    f"No backend session available after {timeout} seconds"
                )
            if self._idle:
                self._lent += 1
                return self._idle.pop()
            # Claim the slot of a lost session
            self._missing -= 1
            self._lent += 1

        try:
            session = self.factory()
        except Exception as e:
            with self._available:
                self._missing += 1
                self._lent -= 1
                self._available.notify()
            logger.error("Failed to re-create backend session", error=str(e))
            raise BackendComputationError(f"Could not re-create backend session: {e}") from e

        logger.info("Backend session re-created", size=self.size)
        return session

    def release(self, session: Session, discard: bool = False) -> None:
        """Return a session; discarded sessions are replaced by fresh ones"""
        if discard and not self._closed:
            self._destroy(session)
            try:
                session = self.factory()
            except Exception as e:
                logger.error("Failed to replace discarded backend session", error=str(e))
                session = None

        with self._available:
            self._lent -= 1
            if not self._closed:
                if session is None:
                    self._missing += 1
                else:
                    self._idle.append(session)
                self._available.notify()
                return

        if session is not None:
            self._destroy(session)

    @contextmanager
    def session(self, timeout: float | None = None) -> Iterator[Session]:
        """Scoped acquisition: the session is always released"""
        session = self.borrow(timeout)
        discard = False
        try:
            yield session
        except BackendSessionError:
            discard = True
            raise
        finally:
            self.release(session, discard=discard)

    def shutdown(self) -> None:
        """Stop lending, wake every waiting borrower and destroy idle sessions

        Lent sessions are destroyed when they are released.
        """
        with self._available:
            if self._closed:
                return
            self._closed = True
            idle, self._idle = self._idle, []
            in_flight = self._lent
            self._available.notify_all()

        for session in idle:
            self._destroy(session)

        logger.info("Backend session pool shut down", destroyed=len(idle), in_flight=in_flight)

    def _destroy(self, session: Session) -> None:
        try:
            session.close()
        except Exception as e:
            logger.warning("Failed to close backend session", error=str(e))
