# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasktimer.cli.bootstrap import create_initial_state
from tasktimer.core.state import AppState
from tasktimer.storage.store import TrackerStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasktimer-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "tasktimer.sqlite3",
        log_dir=tmp_path,
        timezone="UTC",
        min_recorded_minutes=1,
        db_timeout_seconds=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(tmp_path: Path, clock: FakeClock):
    s = TrackerStore(tmp_path / "store.sqlite3", clock=clock)
    yield s
    s.close()


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock):
    """AppState on a real temp-dir SQLite database and a fake clock."""
    st: AppState = create_initial_state(settings=settings, clock=clock)
    yield st
    st.close()
