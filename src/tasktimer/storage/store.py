# src/tasktimer/storage/store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.clock import Clock, SystemClock, format_ts
from ..errors import NotFoundError, StorageError, ValidationError
from .migrations import apply_migrations
from .models import Task, TaskGroup, TaskSession

logger = logging.getLogger(__name__)

UNSET: Any = object()

_SESSION_COLS = (
    "id, task_id, start_time, end_time, duration_minutes, completed, "
    "is_paused, paused_at, total_paused_duration_ms, created_at"
)


def _clean_name(name: Any, what: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} name is required")
    return name.strip()


def _clean_description(description: Any) -> str | None:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("description must be text")
    return description.strip() or None


def _clean_duration(duration_minutes: Any) -> int | None:
    if duration_minutes is None:
        return None
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("duration_minutes must be an integer")
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")
    return duration_minutes


class TrackerStore:
    """
    SQLite store for task groups, tasks and sessions.

    One connection per store, guarded by a re-entrant lock:
    - every public method runs inside transaction(),
    - callers that need several statements to be atomic (check-then-write)
      open their own transaction() and pass the cursor down.

    Foreign keys are enforced, so deleting a group removes its tasks and
    deleting a task removes its sessions.
    """

    def __init__(
        self,
        db_path: str | Path = "tasktimer.sqlite3",
        *,
        clock: Clock | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock: Clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._depth = 0

        try:
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=timeout,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise StorageError(f"cannot open database {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        self._conn: sqlite3.Connection | None = conn

        try:
            with self.transaction() as cur:
                version = apply_migrations(cur)
        except StorageError:
            self.close()
            raise
        logger.info("TrackerStore ready db=%s schema=%s", self._db_path, version)

    @property
    def clock(self) -> Clock:
        return self._clock

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ---- low-level helpers ----

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys = ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Exclusive section over the store.

        The outermost call holds the lock and an IMMEDIATE transaction for the
        whole block; nested calls join it. sqlite3 errors surface as
        StorageError and roll the whole block back.
        """
        with self._lock:
            if self._conn is None:
                raise StorageError("store is closed")
            conn = self._conn
            outer = self._depth == 0
            self._depth += 1
            try:
                if outer:
                    conn.execute("BEGIN IMMEDIATE")
                yield conn.cursor()
                if outer:
                    conn.execute("COMMIT")
            except sqlite3.Error as e:
                if outer:
                    self._rollback(conn)
                raise StorageError(str(e)) from e
            except BaseException:
                if outer:
                    self._rollback(conn)
                raise
            finally:
                self._depth -= 1

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def _now_text(self) -> str:
        return format_ts(self._clock.now())

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    # ---- task groups ----

    def create_group(self, name: str, description: str | None = None) -> TaskGroup:
        clean = _clean_name(name, "group")
        desc = _clean_description(description)
        group_id = self._new_id()
        now = self._now_text()

        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO task_groups(id, name, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (group_id, clean, desc, now, now),
            )
            group = self.fetch_group(cur, group_id)
        logger.debug("Group created id=%s name=%s", group_id, clean)
        return group

    def list_groups(self) -> list[TaskGroup]:
        with self.transaction() as cur:
            cur.execute("SELECT * FROM task_groups ORDER BY created_at DESC, rowid DESC")
            return [TaskGroup.from_row(r) for r in cur.fetchall()]

    def get_group(self, group_id: str) -> TaskGroup:
        with self.transaction() as cur:
            return self.fetch_group(cur, group_id)

    @staticmethod
    def fetch_group(cur: sqlite3.Cursor, group_id: str) -> TaskGroup:
        cur.execute("SELECT * FROM task_groups WHERE id = ?", (group_id,))
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"task group {group_id} not found")
        return TaskGroup.from_row(row)

    def update_group(
        self,
        group_id: str,
        *,
        name: str | None = None,
        description: str | None | Any = UNSET,
    ) -> TaskGroup:
        fields: list[str] = []
        params: list[Any] = []

        if name is not None:
            fields.append("name = ?")
            params.append(_clean_name(name, "group"))

        if description is not UNSET:
            fields.append("description = ?")
            params.append(_clean_description(description))

        with self.transaction() as cur:
            self.fetch_group(cur, group_id)
            if fields:
                fields.append("updated_at = ?")
                params.append(self._now_text())
                params.append(group_id)
                cur.execute(f"UPDATE task_groups SET {', '.join(fields)} WHERE id = ?", params)
                logger.debug("Group updated id=%s fields=%s", group_id, len(fields) - 1)
            return self.fetch_group(cur, group_id)

    def delete_group(self, group_id: str) -> None:
        with self.transaction() as cur:
            cur.execute("DELETE FROM task_groups WHERE id = ?", (group_id,))
            if cur.rowcount == 0:
                raise NotFoundError(f"task group {group_id} not found")
        logger.info("Group deleted id=%s (tasks and sessions cascaded)", group_id)

    # ---- tasks ----

    def create_task(
        self,
        task_group_id: str,
        name: str,
        description: str | None = None,
        duration_minutes: int | None = None,
    ) -> Task:
        clean = _clean_name(name, "task")
        desc = _clean_description(description)
        dur = _clean_duration(duration_minutes)
        task_id = self._new_id()
        now = self._now_text()

        with self.transaction() as cur:
            self.fetch_group(cur, task_group_id)
            cur.execute(
                """
                INSERT INTO tasks(
                    id, task_group_id, name, description, duration_minutes,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (task_id, task_group_id, clean, desc, dur, now, now),
            )
            task = self.fetch_task(cur, task_id)
        logger.debug(
            "Task created id=%s group=%s name=%s duration=%s", task_id, task_group_id, clean, dur
        )
        return task

    def list_tasks_by_group(self, task_group_id: str) -> list[Task]:
        with self.transaction() as cur:
            self.fetch_group(cur, task_group_id)
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE task_group_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (task_group_id,),
            )
            return [Task.from_row(r) for r in cur.fetchall()]

    def get_task(self, task_id: str) -> Task:
        with self.transaction() as cur:
            return self.fetch_task(cur, task_id)

    @staticmethod
    def fetch_task(cur: sqlite3.Cursor, task_id: str) -> Task:
        cur.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"task {task_id} not found")
        return Task.from_row(row)

    def update_task(
        self,
        task_id: str,
        *,
        name: str | None = None,
        description: str | None | Any = UNSET,
        duration_minutes: int | None | Any = UNSET,
    ) -> Task:
        """
        Change only the given fields. Passing description=None or
        duration_minutes=None clears them (the latter turns the task into a
        stopwatch task).
        """
        fields: list[str] = []
        params: list[Any] = []

        if name is not None:
            fields.append("name = ?")
            params.append(_clean_name(name, "task"))

        if description is not UNSET:
            fields.append("description = ?")
            params.append(_clean_description(description))

        if duration_minutes is not UNSET:
            fields.append("duration_minutes = ?")
            params.append(_clean_duration(duration_minutes))

        with self.transaction() as cur:
            self.fetch_task(cur, task_id)
            if fields:
                fields.append("updated_at = ?")
                params.append(self._now_text())
                params.append(task_id)
                cur.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
                logger.debug("Task updated id=%s fields=%s", task_id, len(fields) - 1)
            return self.fetch_task(cur, task_id)

    def delete_task(self, task_id: str) -> None:
        with self.transaction() as cur:
            cur.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            if cur.rowcount == 0:
                raise NotFoundError(f"task {task_id} not found")
        logger.info("Task deleted id=%s (sessions cascaded)", task_id)

    # ---- sessions (row access for the lifecycle manager) ----

    def insert_session(
        self, cur: sqlite3.Cursor, task_id: str, started_at: datetime
    ) -> TaskSession:
        session_id = self._new_id()
        now = format_ts(started_at)
        cur.execute(
            """
            INSERT INTO task_sessions(
                id, task_id, start_time, end_time, duration_minutes, completed,
                is_paused, paused_at, total_paused_duration_ms, created_at
            )
            VALUES (?, ?, ?, NULL, NULL, 0, 0, NULL, 0, ?)
            """,
            (session_id, task_id, now, now),
        )
        return self.get_session(cur, session_id)

    @staticmethod
    def get_session(cur: sqlite3.Cursor, session_id: str) -> TaskSession:
        cur.execute(f"SELECT {_SESSION_COLS} FROM task_sessions WHERE id = ?", (session_id,))
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"session {session_id} not found")
        return TaskSession.from_row(row)

    @staticmethod
    def save_session(cur: sqlite3.Cursor, session: TaskSession) -> None:
        """Write the mutable lifecycle columns of an existing session."""
        cur.execute(
            """
            UPDATE task_sessions
            SET end_time = ?,
                duration_minutes = ?,
                completed = ?,
                is_paused = ?,
                paused_at = ?,
                total_paused_duration_ms = ?
            WHERE id = ?
            """,
            (
                format_ts(session.end_time) if session.end_time else None,
                session.duration_minutes,
                int(session.completed),
                int(session.is_paused),
                format_ts(session.paused_at) if session.paused_at else None,
                int(session.total_paused_duration_ms),
                session.id,
            ),
        )
        if cur.rowcount != 1:
            raise NotFoundError(f"session {session.id} not found")

    @staticmethod
    def list_open_sessions(cur: sqlite3.Cursor) -> list[TaskSession]:
        cur.execute(
            f"""
            SELECT {_SESSION_COLS}
            FROM task_sessions
            WHERE end_time IS NULL
            ORDER BY start_time DESC
            """
        )
        return [TaskSession.from_row(r) for r in cur.fetchall()]

    @staticmethod
    def find_active_rows(cur: sqlite3.Cursor) -> list[sqlite3.Row]:
        """Open sessions joined with their task and group (columns prefixed s_/t_/g_)."""
        cur.execute(
            """
            SELECT
                s.id AS s_id,
                s.task_id AS s_task_id,
                s.start_time AS s_start_time,
                s.end_time AS s_end_time,
                s.duration_minutes AS s_duration_minutes,
                s.completed AS s_completed,
                s.is_paused AS s_is_paused,
                s.paused_at AS s_paused_at,
                s.total_paused_duration_ms AS s_total_paused_duration_ms,
                s.created_at AS s_created_at,
                t.id AS t_id,
                t.task_group_id AS t_task_group_id,
                t.name AS t_name,
                t.description AS t_description,
                t.duration_minutes AS t_duration_minutes,
                t.created_at AS t_created_at,
                t.updated_at AS t_updated_at,
                g.id AS g_id,
                g.name AS g_name,
                g.description AS g_description,
                g.created_at AS g_created_at,
                g.updated_at AS g_updated_at
            FROM task_sessions s
            JOIN tasks t ON s.task_id = t.id
            JOIN task_groups g ON t.task_group_id = g.id
            WHERE s.end_time IS NULL
            ORDER BY s.start_time DESC
            """
        )
        return cur.fetchall()

    # ---- counters ----

    def _count(self, table: str) -> int:
        with self.transaction() as cur:
            cur.execute(f"SELECT COUNT(*) FROM {table}")
            (n,) = cur.fetchone()
            return int(n)

    def count_groups(self) -> int:
        return self._count("task_groups")

    def count_tasks(self) -> int:
        return self._count("tasks")

    def count_sessions(self) -> int:
        return self._count("task_sessions")

    def count_open_sessions(self) -> int:
        with self.transaction() as cur:
            cur.execute("SELECT COUNT(*) FROM task_sessions WHERE end_time IS NULL")
            (n,) = cur.fetchone()
            return int(n)
