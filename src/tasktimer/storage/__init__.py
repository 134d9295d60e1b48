"""
Storage subsystem.

Components:
- models.py: data records (TaskGroup, Task, TaskSession, ActiveSession)
- migrations.py: versioned, additive schema steps
- store.py: SQLite-backed store, transactions and CRUD
"""
