# src/tasktimer/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL until
/exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..errors import StorageError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, console_level=max(console_level, logging.WARNING))

    logger.info("Starting %s (db=%s)...", settings.app_name, settings.db_path)

    try:
        state = create_initial_state(settings=settings)
    except StorageError as e:
        logger.error("Cannot open the database: %s", e)
        print(f"Cannot open the database {settings.db_path}: {e}")
        return 1

    try:
        run_console_loop(state)
    finally:
        state.close()
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
