# src/tasktimer/core/clock.py

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol

from ..errors import StorageError, ValidationError

# Fixed width, always +00:00: lexical order == chronological order.
_STORAGE_FMT = "%Y-%m-%dT%H:%M:%S.%f+00:00"
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Clock(Protocol):
    """Single source of "now" for the lifecycle manager and reports."""

    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_ts(dt: datetime) -> str:
    return to_utc(dt).strftime(_STORAGE_FMT)


def _parse_iso(raw: str) -> datetime:
    s = raw.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(s))


def parse_ts(raw: str | None) -> datetime:
    """Decode a stored timestamp. Malformed data is a storage problem."""
    if not raw:
        raise StorageError("missing timestamp in stored row")
    try:
        return _parse_iso(str(raw))
    except ValueError as e:
        raise StorageError(f"malformed stored timestamp {raw!r}") from e


def parse_opt_ts(raw: str | None) -> datetime | None:
    if raw is None:
        return None
    return parse_ts(raw)


def normalize_bound(value: str | date | datetime, *, end: bool) -> str:
    """
    Turn a caller-supplied range bound into the storage text format.

    Date-only bounds cover the whole day: start -> 00:00:00.000000,
    end -> 23:59:59.999999.
    """
    if isinstance(value, datetime):
        return format_ts(value)
    if isinstance(value, date):
        day_time = time.max if end else time.min
        return format_ts(datetime.combine(value, day_time, tzinfo=UTC))
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("date bound must be a non-empty ISO-8601 string")

    s = value.strip()
    try:
        if _DATE_ONLY.match(s):
            return normalize_bound(date.fromisoformat(s), end=end)
        return format_ts(_parse_iso(s))
    except ValueError as e:
        raise ValidationError(f"invalid date bound {value!r}") from e


def ms_between(start: datetime, end: datetime) -> int:
    """Whole milliseconds from start to end, clamped at 0."""
    delta: timedelta = to_utc(end) - to_utc(start)
    return max(0, delta // timedelta(milliseconds=1))
