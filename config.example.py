# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting; copy the names into .env to override defaults.
"""

ENV_VARS = {
    # App / logging
    "TASKTIMER_APP_NAME": "Name shown in the console prompt (default: tasktimer).",
    "TASKTIMER_LOG_LEVEL": "Console logging level; WARNING is the floor in the shell (default: INFO).",
    # Paths
    "TASKTIMER_DATA_DIR": "Local data directory (default: .local/tasktimer).",
    "TASKTIMER_DB_PATH": "SQLite database file (default: <data dir>/tasktimer.sqlite3).",
    "TASKTIMER_LOG_DIR": "Directory for tasktimer.log (default: <data dir>).",
    # Tracking
    "TASKTIMER_TIMEZONE": "Timezone used to cut /stats periods into days (default: $TZ or UTC).",
    "TASKTIMER_MIN_RECORDED_MINUTES": "Smallest duration recorded when stopping without minutes (default: 1).",
    "TASKTIMER_DB_TIMEOUT_SECONDS": "SQLite busy timeout in seconds (default: 30).",
}
