# src/tasktimer/errors.py

"""
Typed errors shared by the store, the session manager and the aggregator.

Every error carries a `kind` tag; the command surface turns it into
{"kind": ..., "message": ...} for UI shells.
"""

from __future__ import annotations


class TrackerError(Exception):
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TrackerError):
    """Referenced group/task/session id does not exist."""

    kind = "not_found"


class ConflictError(TrackerError):
    """Operation is illegal in the current session state."""

    kind = "conflict"


class ValidationError(TrackerError):
    """Bad input: empty names, invalid durations, unparseable date bounds."""

    kind = "validation"


class StorageError(TrackerError):
    """Underlying persistence failure (I/O, constraint, malformed stored data)."""

    kind = "storage"


class CorruptStoreError(StorageError):
    """Stored data breaks an invariant (e.g. more than one open session)."""
