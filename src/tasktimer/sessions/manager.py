# src/tasktimer/sessions/manager.py

"""
Session lifecycle: Idle -> Running <-> Paused -> Stopped.

Rules:
- at most one open session (end_time IS NULL) in the whole store,
- pause only a running session, resume only a paused one,
- a stopped session is immutable.

Every operation reads and writes inside a single store transaction, so the
state check and the update cannot be split by another call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ..core.clock import Clock, ms_between
from ..errors import ConflictError, CorruptStoreError, ValidationError
from ..storage.models import ActiveSession, Task, TaskGroup, TaskSession
from ..storage.store import TrackerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TimerSnapshot:
    """What a timer display needs at a given instant."""

    elapsed_seconds: int
    remaining_seconds: int | None  # None for stopwatch tasks
    is_paused: bool


class SessionManager:
    def __init__(
        self,
        store: TrackerStore,
        *,
        clock: Clock | None = None,
        min_recorded_minutes: int = 1,
    ) -> None:
        self._store = store
        self._clock = clock or store.clock
        self._min_recorded_minutes = max(0, int(min_recorded_minutes))

    def start(self, task_id: str) -> TaskSession:
        with self._store.transaction() as cur:
            task = self._store.fetch_task(cur, task_id)
            open_sessions = self._store.list_open_sessions(cur)
            if open_sessions:
                active = open_sessions[0]
                raise ConflictError(
                    f"session {active.id} (task {active.task_id}) is still active; "
                    "stop it before starting another"
                )
            session = self._store.insert_session(cur, task.id, self._clock.now())

        logger.info("Session started id=%s task=%s (%s)", session.id, task.id, task.name)
        return session

    def get_active(self) -> ActiveSession | None:
        with self._store.transaction() as cur:
            rows = self._store.find_active_rows(cur)

        if not rows:
            return None
        if len(rows) > 1:
            ids = ", ".join(str(r["s_id"]) for r in rows)
            logger.error("Invariant violated: %d open sessions (%s)", len(rows), ids)
            raise CorruptStoreError(f"{len(rows)} sessions are open at once: {ids}")

        row = rows[0]
        return ActiveSession(
            session=TaskSession.from_row(row, prefix="s_"),
            task=Task.from_row(row, prefix="t_"),
            task_group=TaskGroup.from_row(row, prefix="g_"),
        )

    def pause(self, session_id: str) -> TaskSession:
        with self._store.transaction() as cur:
            session = self._store.get_session(cur, session_id)
            self._require_open(session, "pause")
            if session.is_paused:
                raise ConflictError(f"session {session_id} is already paused")

            updated = replace(session, is_paused=True, paused_at=self._clock.now())
            self._store.save_session(cur, updated)

        logger.info("Session paused id=%s", session_id)
        return updated

    def resume(self, session_id: str) -> TaskSession:
        with self._store.transaction() as cur:
            session = self._store.get_session(cur, session_id)
            self._require_open(session, "resume")
            if not session.is_paused:
                raise ConflictError(f"session {session_id} is not paused")

            updated = self._fold_pause(session, self._clock.now())
            self._store.save_session(cur, updated)

        logger.info(
            "Session resumed id=%s paused_total_ms=%s", session_id, updated.total_paused_duration_ms
        )
        return updated

    def stop(self, session_id: str, duration_minutes: int | None = None) -> TaskSession:
        """
        Close the session.

        An explicit duration_minutes is stored as given (fixed-duration flows
        report the planned length). Without it the duration is the worked
        time in whole minutes, at least min_recorded_minutes.
        """
        if duration_minutes is not None and (
            isinstance(duration_minutes, bool)
            or not isinstance(duration_minutes, int)
            or duration_minutes < 0
        ):
            raise ValidationError("duration_minutes must be a non-negative integer")

        with self._store.transaction() as cur:
            session = self._store.get_session(cur, session_id)
            self._require_open(session, "stop")

            now = self._clock.now()
            if session.is_paused:
                session = self._fold_pause(session, now)

            if duration_minutes is None:
                worked_ms = ms_between(session.start_time, now) - session.total_paused_duration_ms
                minutes = max(0, worked_ms) // 60_000
                duration_minutes = max(self._min_recorded_minutes, minutes)

            updated = replace(
                session,
                end_time=now,
                completed=True,
                duration_minutes=duration_minutes,
            )
            self._store.save_session(cur, updated)

        logger.info("Session stopped id=%s duration_minutes=%s", session_id, duration_minutes)
        return updated

    def snapshot(self, active: ActiveSession, now: datetime | None = None) -> TimerSnapshot:
        now = now or self._clock.now()
        elapsed = active.session.active_elapsed_ms(now) // 1000
        remaining: int | None = None
        if active.task.duration_minutes is not None:
            remaining = max(0, active.task.duration_minutes * 60 - elapsed)
        return TimerSnapshot(
            elapsed_seconds=elapsed,
            remaining_seconds=remaining,
            is_paused=active.session.is_paused,
        )

    # ---- helpers ----

    @staticmethod
    def _require_open(session: TaskSession, action: str) -> None:
        if not session.is_open:
            raise ConflictError(f"cannot {action} session {session.id}: it is already stopped")

    @staticmethod
    def _fold_pause(session: TaskSession, now: datetime) -> TaskSession:
        paused_ms = ms_between(session.paused_at, now) if session.paused_at else 0
        return replace(
            session,
            is_paused=False,
            paused_at=None,
            total_paused_duration_ms=session.total_paused_duration_ms + paused_ms,
        )
