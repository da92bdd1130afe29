"""
Synthetic data source for demos and tests.

Generates random access logs, traces and workload series. The random
generator is injected so runs are reproducible.
"""

import numpy as np
import structlog

from .models import ApiCall, ApplicationRequest, ResponseTimeSummary
from .source import DataSource

logger = structlog.get_logger(__name__)

# Operation name -> number of downstream calls per request
DEFAULT_OPERATIONS = {"GET /": 3, "POST /": 2}


class RandomDataSource(DataSource):
    """Random data source with an injectable numpy Generator"""

    def __init__(
        self,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        operations: dict[str, int] | None = None,
        max_requests: int = 100,
        max_response_time: int = 50,
        change_probability: float = 0.5,
    ):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.operations = operations or dict(DEFAULT_OPERATIONS)
        self.max_requests = max_requests
        self.max_response_time = max_response_time
        self.change_probability = change_probability

    def get_response_time_summary(
        self, application: str, start: int, end: int
    ) -> dict[str, ResponseTimeSummary]:
        summaries = {}
        for operation in self.operations:
            count = int(self.rng.integers(0, self.max_requests))
            if count == 0:
                continue
            response_times = self.rng.integers(0, self.max_response_time, size=count)
            summaries[operation] = ResponseTimeSummary.from_response_times(
                start, [float(v) for v in response_times]
            )
        return summaries

    def get_response_time_history(
        self, application: str, start: int, end: int, period: int
    ) -> dict[str, list[ResponseTimeSummary]]:
        history: dict[str, list[ResponseTimeSummary]] = {}
        for window_start in range(start, end, period):
            window_end = min(window_start + period, end)
            for operation, summary in self.get_response_time_summary(
                application, window_start, window_end
            ).items():
                history.setdefault(operation, []).append(summary)
        return history

    def get_request_info(
        self, application: str, start: int, end: int
    ) -> dict[str, list[ApplicationRequest]]:
        return {
            operation: self._requests(application, operation, start, end, calls)
            for operation, calls in self.operations.items()
        }

    def get_workload_summary(
        self, application: str, operation: str, start: int, end: int, period: int
    ) -> list[float]:
        change_point = start + (end - start) * 0.7
        inject_change = self.rng.random() < self.change_probability
        workload = []
        for window_start in range(start, end, period):
            value = float(self.rng.integers(0, 10))
            if inject_change and window_start >= change_point:
                value += 20
            workload.append(value)

        logger.debug(
            "Generated workload",
            application=application,
            operation=operation,
            points=len(workload),
            change_injected=inject_change,
        )
        return workload

    def _requests(
        self, application: str, operation: str, start: int, end: int, call_count: int
    ) -> list[ApplicationRequest]:
        requests = []
        for _ in range(int(self.rng.integers(0, 50))):
            timestamp = start + int(self.rng.integers(0, max(1, end - start)))
            calls = tuple(
                ApiCall(
                    timestamp=timestamp,
                    service="datastore",
                    operation=f"op{j}",
                    duration_ms=float(self.rng.integers(0, 30)),
                )
                for j in range(call_count)
            )
            requests.append(
                ApplicationRequest(
                    timestamp=timestamp,
                    application=application,
                    operation=operation,
                    calls=calls,
                )
            )
        requests.sort(key=lambda r: r.timestamp)
        return requests

    def __repr__(self) -> str:
        return f"RandomDataSource(operations={list(self.operations)})"
