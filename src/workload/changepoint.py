"""
Workload change point detection.

A change point is the index of the last period before a level shift in an
operation's request counts. The statistics backend reports 1-based
positions where the shift starts; `offset` converts them to 0-based
indices of the preceding period.

Positions closer than `offset` to the start of the series have no
preceding period and are dropped instead of being returned as negative
indices.
"""

from collections.abc import Sequence

import structlog

from src.data.source import DataSource
from src.stats.backend import StatisticsBackend

logger = structlog.get_logger(__name__)


class ChangePointDetector:
    """Finds structural breaks in workload series"""

    def __init__(self, backend: StatisticsBackend, offset: int = 2):
        self.backend = backend
        self.offset = offset

    def compute_change_points(self, series: Sequence[float]) -> list[int]:
        """Sorted change point indices; backend errors propagate"""
        positions = self.backend.detect_level_shifts(series)
        return sorted(p - self.offset for p in positions if p - self.offset >= 0)

    def find_workload_changes(
        self,
        data_source: DataSource,
        application: str,
        operation: str,
        start: int,
        end: int,
        period: int,
    ) -> list[int]:
        """Change points in the workload of one operation over [start, end)"""
        workload = data_source.get_workload_summary(application, operation, start, end, period)
        changes = self.compute_change_points(workload)
        logger.info(
            "Workload change points",
            application=application,
            operation=operation,
            periods=len(workload),
            changes=changes,
        )
        return changes
