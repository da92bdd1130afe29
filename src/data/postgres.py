"""
PostgreSQL data source.

Reads the request log and the downstream call traces written by the
ingestion layer:

    request_log(timestamp, application, operation, request_id, response_time_ms)
    api_calls(request_id, timestamp, sequence, service, operation, duration_ms)

Periods are bucketed in SQL relative to the interval start so bucket
boundaries line up with detector windows.
"""

import math
from datetime import datetime

import psycopg2
import structlog

from src.core.database import PostgresConnection
from src.core.errors import DataSourceError

from .models import ApiCall, ApplicationRequest, DatabaseConfig, ResponseTimeSummary
from .source import DataSource

logger = structlog.get_logger(__name__)

SUMMARY_QUERY = """
    SELECT operation, COUNT(*), AVG(response_time_ms)
    FROM request_log
    WHERE application = %(application)s
      AND timestamp >= to_timestamp(%(start)s / 1000.0)
      AND timestamp < to_timestamp(%(end)s / 1000.0)
    GROUP BY operation
"""

HISTORY_QUERY = """
    SELECT operation,
           FLOOR((EXTRACT(EPOCH FROM timestamp) * 1000 - %(start)s) / %(period)s)::BIGINT AS bucket,
           COUNT(*),
           AVG(response_time_ms)
    FROM request_log
    WHERE application = %(application)s
      AND timestamp >= to_timestamp(%(start)s / 1000.0)
      AND timestamp < to_timestamp(%(end)s / 1000.0)
    GROUP BY operation, bucket
    ORDER BY operation, bucket
"""

REQUEST_INFO_QUERY = """
    SELECT r.request_id, r.timestamp, r.operation,
           c.timestamp, c.service, c.operation, c.duration_ms
    FROM request_log r
    LEFT JOIN api_calls c ON c.request_id = r.request_id
    WHERE r.application = %(application)s
      AND r.timestamp >= to_timestamp(%(start)s / 1000.0)
      AND r.timestamp < to_timestamp(%(end)s / 1000.0)
    ORDER BY r.timestamp, r.request_id, c.sequence
"""

WORKLOAD_QUERY = """
    SELECT FLOOR((EXTRACT(EPOCH FROM timestamp) * 1000 - %(start)s) / %(period)s)::BIGINT AS bucket,
           COUNT(*)
    FROM request_log
    WHERE application = %(application)s
      AND operation = %(operation)s
      AND timestamp >= to_timestamp(%(start)s / 1000.0)
      AND timestamp < to_timestamp(%(end)s / 1000.0)
    GROUP BY bucket
    ORDER BY bucket
"""


def to_millis(value: datetime | int | float) -> int:
    """Convert a database timestamp to epoch milliseconds"""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


class PostgresDataSource(PostgresConnection, DataSource):
    """Data source backed by the request log tables"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
        )
        self.config = config

    def get_response_time_summary(
        self, application: str, start: int, end: int
    ) -> dict[str, ResponseTimeSummary]:
        rows = self._query(
            SUMMARY_QUERY, {"application": application, "start": start, "end": end}
        )
        return {
            operation: ResponseTimeSummary(start, int(count), float(mean))
            for operation, count, mean in rows
        }

    def get_response_time_history(
        self, application: str, start: int, end: int, period: int
    ) -> dict[str, list[ResponseTimeSummary]]:
        rows = self._query(
            HISTORY_QUERY,
            {"application": application, "start": start, "end": end, "period": period},
        )
        history: dict[str, list[ResponseTimeSummary]] = {}
        for operation, bucket, count, mean in rows:
            history.setdefault(operation, []).append(
                ResponseTimeSummary(start + int(bucket) * period, int(count), float(mean))
            )
        return history

    def get_request_info(
        self, application: str, start: int, end: int
    ) -> dict[str, list[ApplicationRequest]]:
        rows = self._query(
            REQUEST_INFO_QUERY, {"application": application, "start": start, "end": end}
        )

        # Rows arrive ordered by request, then call sequence
        traces: dict[str, tuple[int, str, list[ApiCall]]] = {}
        for request_id, timestamp, operation, call_ts, service, call_op, duration in rows:
            if request_id not in traces:
                traces[request_id] = (to_millis(timestamp), operation, [])
            if service is not None:
                traces[request_id][2].append(
                    ApiCall(to_millis(call_ts), service, call_op, float(duration))
                )

        requests: dict[str, list[ApplicationRequest]] = {}
        for timestamp, operation, calls in traces.values():
            requests.setdefault(operation, []).append(
                ApplicationRequest(timestamp, application, operation, tuple(calls))
            )
        return requests

    def get_workload_summary(
        self, application: str, operation: str, start: int, end: int, period: int
    ) -> list[float]:
        rows = self._query(
            WORKLOAD_QUERY,
            {
                "application": application,
                "operation": operation,
                "start": start,
                "end": end,
                "period": period,
            },
        )
        workload = [0.0] * math.ceil((end - start) / period)
        for bucket, count in rows:
            workload[int(bucket)] = float(count)
        return workload

    def _query(self, query: str, params: dict) -> list[tuple]:
        try:
            return self.fetch_all(query, params)
        except psycopg2.Error as e:
            logger.error(
                "Failed to query request log",
                application=params.get("application"),
                start=params.get("start"),
                end=params.get("end"),
                error=str(e),
            )
            raise DataSourceError(f"Error while retrieving data: {e}") from e

    def __repr__(self) -> str:
        return f"PostgresDataSource(host={self.host}, database={self.database})"
