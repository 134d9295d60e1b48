"""
Local task timer: task groups, tasks, timed sessions and statistics.

Components:
- storage/: SQLite store, schema migrations, data records
- sessions/: session lifecycle (start / pause / resume / stop)
- stats/: per-task and per-group statistics, reporting periods
- api.py: command surface for UI shells
- cli/, connectors/: interactive console shell
"""

__version__ = "0.1.0"
