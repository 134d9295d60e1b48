# src/tasktimer/stats/periods.py

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta, tzinfo

from ..errors import ValidationError

PERIODS = ("today", "week", "fifteen_days", "month")


def _day_bounds(day_start: datetime, days: int = 1) -> tuple[datetime, datetime]:
    end = day_start + timedelta(days=days) - timedelta(microseconds=1)
    return day_start, end


def date_range_for_period(
    period: str,
    *,
    now: datetime,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """
    Inclusive (start, end) UTC instants for a named reporting period.

    Days are cut in `tz` (the user's display timezone; UTC if None):
    - today: the current day
    - week: Monday 00:00 through Sunday 23:59:59.999999
    - fifteen_days: today and the 14 days before it
    - month: first through last day of the current month
    """
    tz = tz or UTC
    local_now = now.astimezone(tz)
    today = datetime.combine(local_now.date(), time.min, tzinfo=tz)

    key = (period or "").strip().lower()
    if key == "today":
        start, end = _day_bounds(today)
    elif key == "week":
        start, end = _day_bounds(today - timedelta(days=today.weekday()), days=7)
    elif key == "fifteen_days":
        start, end = _day_bounds(today - timedelta(days=14), days=15)
    elif key == "month":
        first = today.replace(day=1)
        next_first = (first + timedelta(days=32)).replace(day=1)
        start, end = first, next_first - timedelta(microseconds=1)
    else:
        raise ValidationError(f"unknown period {period!r}; expected one of {', '.join(PERIODS)}")

    return start.astimezone(UTC), end.astimezone(UTC)
