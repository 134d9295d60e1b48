# src/tasktimer/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..sessions.manager import SessionManager
from ..stats.aggregator import StatisticsAggregator
from ..storage.store import TrackerStore


@dataclass
class AppState:
    """
    Everything a command needs, passed explicitly.

    The store is the only owner of the database handle; the manager and the
    aggregator share it (and its lock).
    """

    settings: Any
    store: TrackerStore
    sessions: SessionManager
    stats: StatisticsAggregator

    def close(self) -> None:
        self.store.close()
