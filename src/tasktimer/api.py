# src/tasktimer/api.py

"""
Command surface for UI shells.

The typed functions below raise TrackerError subclasses. dispatch() is the
entry point for shells that want plain data back: it maps the camelCase
command names to those functions and returns a tagged result instead of
raising.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from typing import Any

from .core.clock import format_ts
from .core.state import AppState
from .errors import StorageError, TrackerError, ValidationError
from .stats.aggregator import DateBound, StatisticsReport
from .storage.models import ActiveSession, Task, TaskGroup, TaskSession
from .storage.store import UNSET

logger = logging.getLogger(__name__)


# ---- task groups ----


def create_task_group(state: AppState, name: str, description: str | None = None) -> TaskGroup:
    return state.store.create_group(name, description)


def list_task_groups(state: AppState) -> list[TaskGroup]:
    return state.store.list_groups()


def update_task_group(
    state: AppState,
    group_id: str,
    *,
    name: str | None = None,
    description: str | None | Any = UNSET,
) -> TaskGroup:
    return state.store.update_group(group_id, name=name, description=description)


def delete_task_group(state: AppState, group_id: str) -> None:
    state.store.delete_group(group_id)


# ---- tasks ----


def create_task(
    state: AppState,
    task_group_id: str,
    name: str,
    description: str | None = None,
    duration_minutes: int | None = None,
) -> Task:
    return state.store.create_task(task_group_id, name, description, duration_minutes)


def list_tasks_by_group(state: AppState, task_group_id: str) -> list[Task]:
    return state.store.list_tasks_by_group(task_group_id)


def update_task(
    state: AppState,
    task_id: str,
    *,
    name: str | None = None,
    description: str | None | Any = UNSET,
    duration_minutes: int | None | Any = UNSET,
) -> Task:
    return state.store.update_task(
        task_id, name=name, description=description, duration_minutes=duration_minutes
    )


def delete_task(state: AppState, task_id: str) -> None:
    state.store.delete_task(task_id)


# ---- sessions ----


def start_session(state: AppState, task_id: str) -> TaskSession:
    return state.sessions.start(task_id)


def pause_session(state: AppState, session_id: str) -> TaskSession:
    return state.sessions.pause(session_id)


def resume_session(state: AppState, session_id: str) -> TaskSession:
    return state.sessions.resume(session_id)


def end_session(
    state: AppState, session_id: str, duration_minutes: int | None = None
) -> TaskSession:
    return state.sessions.stop(session_id, duration_minutes)


def get_active_session(state: AppState) -> ActiveSession | None:
    return state.sessions.get_active()


# ---- statistics ----


def get_statistics(state: AppState, start_date: DateBound, end_date: DateBound) -> StatisticsReport:
    return state.stats.get_statistics(start_date, end_date)


# ---- tagged dispatch ----


def to_jsonable(value: Any) -> Any:
    """Dataclasses -> dicts, datetimes -> storage-format text."""
    if isinstance(value, StatisticsReport):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, datetime):
        return format_ts(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _optional(payload: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Pick keys that are present; explicit nulls are kept (they clear the field)."""
    return {k: payload[k] for k in keys if k in payload}


def _required(payload: dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise ValidationError(f"missing required field {key!r}")
    return payload[key]


def _required_id(payload: dict[str, Any], key: str) -> str:
    value = _required(payload, key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"field {key!r} must be a non-empty string id")
    return value


_COMMANDS: dict[str, Callable[[AppState, dict[str, Any]], Any]] = {
    "createTaskGroup": lambda s, p: create_task_group(
        s, _required(p, "name"), p.get("description")
    ),
    "listTaskGroups": lambda s, p: list_task_groups(s),
    "updateTaskGroup": lambda s, p: update_task_group(
        s, _required_id(p, "id"), **_optional(p, "name", "description")
    ),
    "deleteTaskGroup": lambda s, p: delete_task_group(s, _required_id(p, "id")),
    "createTask": lambda s, p: create_task(
        s,
        _required_id(p, "task_group_id"),
        _required(p, "name"),
        p.get("description"),
        p.get("duration_minutes"),
    ),
    "listTasksByGroup": lambda s, p: list_tasks_by_group(s, _required_id(p, "task_group_id")),
    "updateTask": lambda s, p: update_task(
        s, _required_id(p, "id"), **_optional(p, "name", "description", "duration_minutes")
    ),
    "deleteTask": lambda s, p: delete_task(s, _required_id(p, "id")),
    "startSession": lambda s, p: start_session(s, _required_id(p, "task_id")),
    "pauseSession": lambda s, p: pause_session(s, _required_id(p, "session_id")),
    "resumeSession": lambda s, p: resume_session(s, _required_id(p, "session_id")),
    "endSession": lambda s, p: end_session(
        s, _required_id(p, "session_id"), p.get("duration_minutes")
    ),
    "getActiveSession": lambda s, p: get_active_session(s),
    "getStatistics": lambda s, p: get_statistics(
        s, _required(p, "start_date"), _required(p, "end_date")
    ),
}

COMMAND_NAMES = tuple(_COMMANDS)


def dispatch(state: AppState, command: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Run a named command and return
      {"ok": True, "data": ...} or
      {"ok": False, "error": {"kind": ..., "message": ...}}.
    """
    handler = _COMMANDS.get(command)
    try:
        if handler is None:
            raise ValidationError(f"unknown command {command!r}")
        if payload is not None and not isinstance(payload, dict):
            raise ValidationError("payload must be an object")
        result = handler(state, payload or {})
    except StorageError as e:
        logger.exception("Command %s failed with a storage error", command)
        return {"ok": False, "error": {"kind": e.kind, "message": e.message}}
    except TrackerError as e:
        logger.info("Command %s rejected (%s): %s", command, e.kind, e.message)
        return {"ok": False, "error": {"kind": e.kind, "message": e.message}}

    return {"ok": True, "data": to_jsonable(result)}
