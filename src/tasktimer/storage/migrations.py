# src/tasktimer/storage/migrations.py

"""
Versioned, additive schema migrations.

Each step is idempotent (CREATE ... IF NOT EXISTS, column checks via
PRAGMA table_info), so databases created by older builds without a
schema_version table open cleanly: they start at version 0 and every step
simply fills in what is missing.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable

logger = logging.getLogger(__name__)

Migration = Callable[[sqlite3.Cursor], None]


def _create_base_tables(cur: sqlite3.Cursor) -> None:
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS task_groups (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            task_group_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            duration_minutes INTEGER,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (task_group_id) REFERENCES task_groups (id) ON DELETE CASCADE
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS task_sessions (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT,
            duration_minutes INTEGER,
            completed BOOLEAN NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            FOREIGN KEY (task_id) REFERENCES tasks (id) ON DELETE CASCADE
        )
        """
    )


def _add_pause_columns(cur: sqlite3.Cursor) -> None:
    cur.execute("PRAGMA table_info(task_sessions)")
    cols = {row["name"] for row in cur.fetchall()}

    def add_col(name: str, decl: str) -> None:
        if name in cols:
            return
        cur.execute(f"ALTER TABLE task_sessions ADD COLUMN {name} {decl}")
        logger.info("Schema migration: added column task_sessions.%s", name)

    add_col("is_paused", "BOOLEAN NOT NULL DEFAULT 0")
    add_col("paused_at", "TEXT")
    add_col("total_paused_duration_ms", "INTEGER NOT NULL DEFAULT 0")


def _add_indexes(cur: sqlite3.Cursor) -> None:
    cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_group ON tasks(task_group_id)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_task ON task_sessions(task_id)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_start ON task_sessions(start_time)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_sessions_open ON task_sessions(end_time)")


# Append only. Never reorder or edit a released step.
MIGRATIONS: list[tuple[int, Migration]] = [
    (1, _create_base_tables),
    (2, _add_pause_columns),
    (3, _add_indexes),
]

LATEST_VERSION = MIGRATIONS[-1][0]


def current_version(cur: sqlite3.Cursor) -> int:
    cur.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
    cur.execute("SELECT MAX(version) AS v FROM schema_version")
    row = cur.fetchone()
    return int(row["v"]) if row is not None and row["v"] is not None else 0


def apply_migrations(cur: sqlite3.Cursor) -> int:
    """Run every step newer than the stored version. Returns the final version."""
    version = current_version(cur)
    for step_version, step in MIGRATIONS:
        if step_version <= version:
            continue
        step(cur)
        cur.execute("INSERT INTO schema_version(version) VALUES (?)", (step_version,))
        logger.info("Schema migrated to version %s (%s)", step_version, step.__name__)
        version = step_version
    return version
