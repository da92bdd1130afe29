"""
Execution path distribution analysis.

Each operation keeps, per path signature, the percentage of its requests
that took that path in every retained period. All paths of an operation
share the same timestamps, so the history reads as a matrix with one row
per period and one column per path.
"""

from collections import Counter

import pandas as pd
import structlog

from src.data.models import ApplicationRequest
from src.data.source import DataSource
from src.stats.backend import StatisticsBackend

from ..models import PathConfig, PathRatio
from .base import DetectorAnalysis

logger = structlog.get_logger(__name__)


class PathAnalysis(DetectorAnalysis):
    """Detects new, vanished and drifting execution paths"""

    name = "path"

    def __init__(self, config: dict | None = None, backend: StatisticsBackend | None = None):
        self.config = PathConfig(**(config or {}))
        self.history: dict[str, dict[str, list[PathRatio]]] = {}

    def load_history(
        self, data_source: DataSource, application: str, start: int, end: int, period: int
    ) -> set[str]:
        requests = data_source.get_request_info(application, start, end)

        touched: set[str] = set()
        for bucket_start in range(start, end, period):
            bucket_end = min(bucket_start + period, end)
            bucket = {
                operation: [r for r in items if bucket_start <= r.timestamp < bucket_end]
                for operation, items in requests.items()
            }
            touched |= self.apply_period(bucket, bucket_start, bucket_end)
        return touched

    def fetch_period(
        self, data_source: DataSource, application: str, start: int, end: int
    ) -> dict[str, list[ApplicationRequest]]:
        return data_source.get_request_info(application, start, end)

    def apply_period(
        self, data: dict[str, list[ApplicationRequest]], start: int, end: int
    ) -> set[str]:
        touched: set[str] = set()
        for operation in sorted(set(self.history) | set(data)):
            counts = Counter(request.path for request in data.get(operation, []))
            total = sum(counts.values())

            paths = self.history.get(operation)
            if paths is None:
                if total == 0:
                    continue
                paths = self.history[operation] = {}

            for path in counts:
                if path not in paths:
                    self._add_path(operation, paths, path)

            for path, ratios in paths.items():
                ratios.append(PathRatio.of(start, counts.get(path, 0), total))
            touched.add(operation)
        return touched

    def _add_path(self, operation: str, paths: dict[str, list[PathRatio]], path: str) -> None:
        longest = max(paths.values(), key=len, default=[])
        paths[path] = [PathRatio.zero(ratio.timestamp) for ratio in longest]
        logger.info("New path detected", operation=operation, path=path, backfilled=len(longest))

    def evict(self, cutoff: int) -> None:
        for operation in list(self.history):
            paths = self.history[operation]
            for path in paths:
                paths[path] = [r for r in paths[path] if r.timestamp >= cutoff]
            if all(not ratios for ratios in paths.values()):
                del self.history[operation]

    def to_frame(self, operation: str) -> pd.DataFrame:
        """Path ratios of one operation, rows are periods and columns are paths"""
        paths = self.history.get(operation, {})
        if not paths:
            return pd.DataFrame()
        index = [ratio.timestamp for ratio in next(iter(paths.values()))]
        return pd.DataFrame(
            {path: [ratio.ratio for ratio in ratios] for path, ratios in paths.items()},
            index=pd.Index(index, name="timestamp"),
        )

    def compute_statistic(self, key: str) -> pd.DataFrame | None:
        frame = self.to_frame(key)
        if len(frame) < 2:
            return None

        prior = frame.iloc[:-1]
        for path in frame.columns:
            logger.debug(
                "Path statistics",
                operation=key,
                path=path,
                mean=round(float(prior[path].mean()), 4),
                std=round(float(prior[path].std(ddof=0)), 4),
                latest=round(float(frame[path].iloc[-1]), 4),
            )
        return frame

    def evaluate(self, key: str, statistic: pd.DataFrame) -> list[str]:
        prior = statistic.iloc[:-1]
        latest = statistic.iloc[-1]

        messages = []
        for path in statistic.columns:
            history = prior[path]
            value = float(latest[path])

            if value > 0 and (history == 0).all():
                messages.append(f"New path: {path} ({value:.2f}%)")
                continue

            previous = float(history.iloc[-1])
            if previous > 0 and value == 0:
                messages.append(f"Path vanished: {path} (was {previous:.2f}%)")
                continue

            if len(history) >= self.config.min_history:
                mean = float(history.mean())
                std = float(history.std(ddof=0))
                if std > 0 and abs(value - mean) > self.config.drift_threshold * std:
                    messages.append(
                        f"Path ratio drift: {path}: {value:.2f}% (mean {mean:.2f}%, std {std:.2f})"
                    )
        return messages

    def keys(self) -> list[str]:
        return sorted(self.history)
