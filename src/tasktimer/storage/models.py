# src/tasktimer/storage/models.py

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime

from ..core.clock import ms_between, parse_opt_ts, parse_ts


@dataclass(frozen=True, slots=True)
class TaskGroup:
    id: str
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row, prefix: str = "") -> TaskGroup:
        return cls(
            id=str(row[f"{prefix}id"]),
            name=str(row[f"{prefix}name"]),
            description=row[f"{prefix}description"],
            created_at=parse_ts(row[f"{prefix}created_at"]),
            updated_at=parse_ts(row[f"{prefix}updated_at"]),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    task_group_id: str
    name: str
    description: str | None
    duration_minutes: int | None  # None -> stopwatch task
    created_at: datetime
    updated_at: datetime

    @property
    def is_countdown(self) -> bool:
        return self.duration_minutes is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row, prefix: str = "") -> Task:
        dur = row[f"{prefix}duration_minutes"]
        return cls(
            id=str(row[f"{prefix}id"]),
            task_group_id=str(row[f"{prefix}task_group_id"]),
            name=str(row[f"{prefix}name"]),
            description=row[f"{prefix}description"],
            duration_minutes=int(dur) if dur is not None else None,
            created_at=parse_ts(row[f"{prefix}created_at"]),
            updated_at=parse_ts(row[f"{prefix}updated_at"]),
        )


@dataclass(frozen=True, slots=True)
class TaskSession:
    id: str
    task_id: str
    start_time: datetime
    end_time: datetime | None
    duration_minutes: int | None
    completed: bool
    is_paused: bool
    paused_at: datetime | None
    total_paused_duration_ms: int
    created_at: datetime

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def active_elapsed_ms(self, now: datetime) -> int:
        """
        Time actually worked: wall time since start minus finished pauses
        minus the pause in progress (if any).
        """
        until = self.end_time or now
        elapsed = ms_between(self.start_time, until) - self.total_paused_duration_ms
        if self.is_paused and self.paused_at is not None:
            elapsed -= ms_between(self.paused_at, until)
        return max(0, elapsed)

    @classmethod
    def from_row(cls, row: sqlite3.Row, prefix: str = "") -> TaskSession:
        dur = row[f"{prefix}duration_minutes"]
        return cls(
            id=str(row[f"{prefix}id"]),
            task_id=str(row[f"{prefix}task_id"]),
            start_time=parse_ts(row[f"{prefix}start_time"]),
            end_time=parse_opt_ts(row[f"{prefix}end_time"]),
            duration_minutes=int(dur) if dur is not None else None,
            completed=bool(row[f"{prefix}completed"]),
            is_paused=bool(row[f"{prefix}is_paused"]),
            paused_at=parse_opt_ts(row[f"{prefix}paused_at"]),
            total_paused_duration_ms=int(row[f"{prefix}total_paused_duration_ms"] or 0),
            created_at=parse_ts(row[f"{prefix}created_at"]),
        )


@dataclass(frozen=True, slots=True)
class ActiveSession:
    """The open session together with its task and group."""

    session: TaskSession
    task: Task
    task_group: TaskGroup
