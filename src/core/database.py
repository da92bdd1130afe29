"""
PostgreSQL connection management.
Shared by the PostgreSQL data source and the anomaly table sink.

The monitor holds one connection for its whole lifetime, so a connection
lost to a server restart is dropped and reopened on the next use.
"""

from contextlib import contextmanager
from typing import Any

import psycopg2
import structlog

logger = structlog.get_logger(__name__)

# Errors after which the connection can no longer be used
CONNECTION_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)


class PostgresConnection:
    """Lazily reopened PostgreSQL connection"""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        connect_timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.connection = None
        self._connect()

    def _connect(self):
        try:
            self.connection = psycopg2.connect(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                connect_timeout=self.connect_timeout,
            )
        except psycopg2.Error as e:
            logger.error("Failed to connect to PostgreSQL", host=self.host, error=str(e))
            raise
        logger.info("PostgreSQL connection established", host=self.host, database=self.database)

    def _discard(self):
        """Forget a broken connection so the next cursor reconnects"""
        connection, self.connection = self.connection, None
        try:
            connection.close()
        except psycopg2.Error:
            pass
        logger.warning("PostgreSQL connection dropped", host=self.host)

    @contextmanager
    def get_cursor(self):
        """Cursor that commits on success and rolls back on error

        Raises:
            psycopg2.Error: Propagated after rollback
        """
        if self.connection is None:
            self._connect()

        try:
            cursor = self.connection.cursor()
        except CONNECTION_ERRORS:
            self._discard()
            raise

        try:
            yield cursor
            self.connection.commit()
        except Exception as e:
            logger.error("Database operation failed", database=self.database, error=str(e))
            if isinstance(e, CONNECTION_ERRORS):
                self._discard()
            else:
                self.connection.rollback()
            raise
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: dict[str, Any] | tuple | None = None) -> list[tuple]:
        """Run a read query and return every row

        Errors are propagated to the caller, which decides how to classify them.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or {})
            return cursor.fetchall()

    def is_healthy(self) -> bool:
        """Whether the server answers a trivial query"""
        try:
            rows = self.fetch_all("SELECT 1")
        except psycopg2.Error as e:
            logger.warning("Database health check failed", host=self.host, error=str(e))
            return False
        return rows == [(1,)]

    def close(self):
        if self.connection is None:
            return
        self.connection.close()
        self.connection = None
        logger.info("PostgreSQL connection closed", host=self.host)
