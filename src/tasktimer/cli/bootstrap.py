# src/tasktimer/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, the session manager and the aggregator into AppState.
"""

from __future__ import annotations

import logging
from datetime import UTC, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import get_settings
from ..core.clock import Clock, SystemClock
from ..core.state import AppState
from ..sessions.manager import SessionManager
from ..stats.aggregator import StatisticsAggregator
from ..storage.store import TrackerStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _display_tz(settings) -> tzinfo:
    name = str(getattr(settings, "timezone", "UTC") or "UTC")
    if name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return UTC


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and clock are injectable so tests can use a temp database and a
    fake clock. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    _ensure_local_dirs(settings)

    store = TrackerStore(
        settings.db_path,
        clock=clock,
        timeout=float(getattr(settings, "db_timeout_seconds", 30.0)),
    )
    return AppState(
        settings=settings,
        store=store,
        sessions=SessionManager(
            store,
            clock=clock,
            min_recorded_minutes=int(getattr(settings, "min_recorded_minutes", 1)),
        ),
        stats=StatisticsAggregator(store, clock=clock, tz=_display_tz(settings)),
    )
