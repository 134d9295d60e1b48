# src/tasktimer/stats/aggregator.py

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, tzinfo

from ..core.clock import Clock, normalize_bound
from ..errors import ValidationError
from ..storage.store import TrackerStore
from .periods import date_range_for_period

logger = logging.getLogger(__name__)

DateBound = str | date | datetime


def completion_rate(completed: int, total: int) -> float:
    """Completed / total, 0.0 for an empty range."""
    if total <= 0:
        return 0.0
    return completed / total


@dataclass(frozen=True, slots=True)
class TaskStatistics:
    task_id: str
    task_name: str
    task_group_id: str
    task_group_name: str
    total_sessions: int
    total_duration_minutes: int
    completed_sessions: int
    completion_rate: float


@dataclass(frozen=True, slots=True)
class TaskGroupStatistics:
    task_group_id: str
    task_group_name: str
    total_tasks: int
    total_sessions: int
    total_duration_minutes: int
    completed_sessions: int
    completion_rate: float


@dataclass(frozen=True, slots=True)
class StatisticsReport:
    start_date: str
    end_date: str
    task_statistics: list[TaskStatistics]
    group_statistics: list[TaskGroupStatistics]

    def to_dict(self) -> dict[str, list[dict]]:
        return {
            "taskStatistics": [asdict(s) for s in self.task_statistics],
            "groupStatistics": [asdict(s) for s in self.group_statistics],
        }


# Session filter lives in the JOIN condition, not WHERE: tasks and groups
# without sessions in range must still come out with zero counts.
_TASK_STATS_SQL = """
    SELECT
        t.id AS task_id,
        t.name AS task_name,
        g.id AS task_group_id,
        g.name AS task_group_name,
        COUNT(s.id) AS total_sessions,
        COALESCE(SUM(s.duration_minutes), 0) AS total_duration_minutes,
        COUNT(CASE WHEN s.completed = 1 THEN 1 END) AS completed_sessions
    FROM tasks t
    JOIN task_groups g ON t.task_group_id = g.id
    LEFT JOIN task_sessions s ON t.id = s.task_id
        AND s.start_time >= ? AND s.start_time <= ?
    GROUP BY t.id, t.name, g.id, g.name
    ORDER BY total_duration_minutes DESC, t.name ASC, t.id ASC
"""

_GROUP_STATS_SQL = """
    SELECT
        g.id AS task_group_id,
        g.name AS task_group_name,
        COUNT(DISTINCT t.id) AS total_tasks,
        COUNT(s.id) AS total_sessions,
        COALESCE(SUM(s.duration_minutes), 0) AS total_duration_minutes,
        COUNT(CASE WHEN s.completed = 1 THEN 1 END) AS completed_sessions
    FROM task_groups g
    LEFT JOIN tasks t ON g.id = t.task_group_id
    LEFT JOIN task_sessions s ON t.id = s.task_id
        AND s.start_time >= ? AND s.start_time <= ?
    GROUP BY g.id, g.name
    ORDER BY total_duration_minutes DESC, g.name ASC, g.id ASC
"""


class StatisticsAggregator:
    """Read-only per-task / per-group projections over a start_time range."""

    def __init__(
        self,
        store: TrackerStore,
        *,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or store.clock
        self._tz = tz

    def get_statistics(self, start_date: DateBound, end_date: DateBound) -> StatisticsReport:
        start = normalize_bound(start_date, end=False)
        end = normalize_bound(end_date, end=True)
        if start > end:
            raise ValidationError(f"start_date {start} is after end_date {end}")

        logger.debug("Statistics requested range=[%s, %s]", start, end)

        with self._store.transaction() as cur:
            cur.execute(_TASK_STATS_SQL, (start, end))
            task_rows = cur.fetchall()
            cur.execute(_GROUP_STATS_SQL, (start, end))
            group_rows = cur.fetchall()

        task_stats = [
            TaskStatistics(
                task_id=str(r["task_id"]),
                task_name=str(r["task_name"]),
                task_group_id=str(r["task_group_id"]),
                task_group_name=str(r["task_group_name"]),
                total_sessions=int(r["total_sessions"]),
                total_duration_minutes=int(r["total_duration_minutes"]),
                completed_sessions=int(r["completed_sessions"]),
                completion_rate=completion_rate(
                    int(r["completed_sessions"]), int(r["total_sessions"])
                ),
            )
            for r in task_rows
        ]
        group_stats = [
            TaskGroupStatistics(
                task_group_id=str(r["task_group_id"]),
                task_group_name=str(r["task_group_name"]),
                total_tasks=int(r["total_tasks"]),
                total_sessions=int(r["total_sessions"]),
                total_duration_minutes=int(r["total_duration_minutes"]),
                completed_sessions=int(r["completed_sessions"]),
                completion_rate=completion_rate(
                    int(r["completed_sessions"]), int(r["total_sessions"])
                ),
            )
            for r in group_rows
        ]

        logger.debug(
            "Statistics ready tasks=%d groups=%d sessions=%d",
            len(task_stats),
            len(group_stats),
            sum(s.total_sessions for s in task_stats),
        )
        return StatisticsReport(
            start_date=start,
            end_date=end,
            task_statistics=task_stats,
            group_statistics=group_stats,
        )

    def get_statistics_for_period(self, period: str) -> StatisticsReport:
        start, end = date_range_for_period(period, now=self._clock.now(), tz=self._tz)
        return self.get_statistics(start, end)
