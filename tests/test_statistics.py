# tests/test_statistics.py

from __future__ import annotations

import math
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from tasktimer.errors import ValidationError
from tasktimer.stats.aggregator import completion_rate
from tasktimer.stats.periods import date_range_for_period

DAY_START = "2026-03-10T00:00:00Z"
DAY_END = "2026-03-10T23:59:59Z"


def _run(state, clock, task_id: str, minutes: int, *, stop: bool = True) -> None:
    session = state.sessions.start(task_id)
    clock.advance(minutes=minutes)
    if stop:
        state.sessions.stop(session.id)
    clock.advance(minutes=1)


@pytest.fixture()
def tracked(state, clock):
    """
    Work: report (2 completed + 1 open session), slides (1 session), idle (none).
    Home: no tasks.
    """
    work = state.store.create_group("Work")
    home = state.store.create_group("Home")
    report = state.store.create_task(work.id, "Write report")
    slides = state.store.create_task(work.id, "Slides")
    idle = state.store.create_task(work.id, "Idle task")

    _run(state, clock, slides.id, 50)
    _run(state, clock, report.id, 30)
    _run(state, clock, report.id, 15)
    _run(state, clock, report.id, 5, stop=False)

    return {"work": work, "home": home, "report": report, "slides": slides, "idle": idle}


def test_per_task_counts_and_completion_rate(state, tracked) -> None:
    report = state.stats.get_statistics(DAY_START, DAY_END)
    by_id = {s.task_id: s for s in report.task_statistics}

    r = by_id[tracked["report"].id]
    assert r.total_sessions == 3
    assert r.completed_sessions == 2
    assert r.total_duration_minutes == 45
    assert r.completion_rate == pytest.approx(2 / 3, abs=1e-3)
    assert r.task_group_name == "Work"
    assert r.task_group_id == tracked["work"].id

    s = by_id[tracked["slides"].id]
    assert (s.total_sessions, s.completed_sessions, s.total_duration_minutes) == (1, 1, 50)
    assert s.completion_rate == 1.0


def test_tasks_without_sessions_have_zero_rate(state, tracked) -> None:
    report = state.stats.get_statistics(DAY_START, DAY_END)
    idle = next(s for s in report.task_statistics if s.task_id == tracked["idle"].id)

    assert idle.total_sessions == 0
    assert idle.completed_sessions == 0
    assert idle.total_duration_minutes == 0
    assert idle.completion_rate == 0.0
    assert not math.isnan(idle.completion_rate)


def test_ordered_by_duration_desc(state, tracked) -> None:
    report = state.stats.get_statistics(DAY_START, DAY_END)
    durations = [s.total_duration_minutes for s in report.task_statistics]
    assert durations == sorted(durations, reverse=True)
    assert report.task_statistics[0].task_id == tracked["slides"].id

    assert [g.task_group_id for g in report.group_statistics] == [
        tracked["work"].id,
        tracked["home"].id,
    ]


def test_per_group_aggregation(state, tracked) -> None:
    report = state.stats.get_statistics(DAY_START, DAY_END)
    work, home = report.group_statistics

    assert work.total_tasks == 3
    assert work.total_sessions == 4
    assert work.completed_sessions == 3
    assert work.total_duration_minutes == 95
    assert work.completion_rate == pytest.approx(0.75)

    assert home.task_group_name == "Home"
    assert (home.total_tasks, home.total_sessions, home.total_duration_minutes) == (0, 0, 0)
    assert home.completion_rate == 0.0


def test_range_excludes_other_days_but_keeps_rows(state, tracked) -> None:
    report = state.stats.get_statistics("2026-03-11", "2026-03-12")

    assert len(report.task_statistics) == 3
    assert all(s.total_sessions == 0 for s in report.task_statistics)
    work = next(g for g in report.group_statistics if g.task_group_id == tracked["work"].id)
    assert work.total_tasks == 3
    assert work.total_sessions == 0


def test_bounds_are_inclusive(state, clock) -> None:
    group = state.store.create_group("Work")
    task = state.store.create_task(group.id, "Edge")
    started_at = clock.now()
    session = state.sessions.start(task.id)
    clock.advance(minutes=10)
    state.sessions.stop(session.id)

    report = state.stats.get_statistics(started_at, started_at)
    assert report.task_statistics[0].total_sessions == 1

    just_after = started_at + timedelta(microseconds=1)
    report = state.stats.get_statistics(just_after, just_after + timedelta(hours=1))
    assert report.task_statistics[0].total_sessions == 0


def test_accepts_dates_datetimes_and_offsets(state, tracked) -> None:
    expected = state.stats.get_statistics(DAY_START, DAY_END).to_dict()

    as_dates = state.stats.get_statistics(date(2026, 3, 10), date(2026, 3, 10))
    as_text_dates = state.stats.get_statistics("2026-03-10", "2026-03-10")
    as_offsets = state.stats.get_statistics(
        "2026-03-10T08:00:00+08:00", "2026-03-11T07:59:59+08:00"
    )
    as_datetimes = state.stats.get_statistics(
        datetime(2026, 3, 10, tzinfo=UTC), datetime(2026, 3, 10, 23, 59, 59)
    )

    for report in (as_dates, as_text_dates, as_offsets, as_datetimes):
        assert report.to_dict() == expected


@pytest.mark.parametrize(
    "start, end",
    [
        ("2026-03-11", "2026-03-10"),
        ("not a date", "2026-03-10"),
        ("2026-03-10", ""),
        (None, "2026-03-10"),
    ],
)
def test_invalid_bounds_are_rejected(state, start, end) -> None:
    with pytest.raises(ValidationError):
        state.stats.get_statistics(start, end)


def test_report_dict_shape(state, tracked) -> None:
    data = state.stats.get_statistics(DAY_START, DAY_END).to_dict()
    assert set(data) == {"taskStatistics", "groupStatistics"}
    assert set(data["taskStatistics"][0]) == {
        "task_id",
        "task_name",
        "task_group_id",
        "task_group_name",
        "total_sessions",
        "total_duration_minutes",
        "completed_sessions",
        "completion_rate",
    }
    assert "total_tasks" in data["groupStatistics"][0]


def test_completion_rate_law() -> None:
    assert completion_rate(0, 0) == 0.0
    assert completion_rate(2, 3) == pytest.approx(0.667, abs=1e-3)
    assert completion_rate(3, 3) == 1.0


def test_statistics_for_period_uses_clock(state, tracked) -> None:
    today = state.stats.get_statistics_for_period("today")
    assert today.start_date == "2026-03-10T00:00:00.000000+00:00"
    assert today.end_date == "2026-03-10T23:59:59.999999+00:00"
    assert sum(s.total_sessions for s in today.task_statistics) == 4

    with pytest.raises(ValidationError):
        state.stats.get_statistics_for_period("fortnight")


# ---- reporting periods ----

NOW = datetime(2026, 3, 10, 9, 30, tzinfo=UTC)  # a Tuesday


def test_period_today() -> None:
    start, end = date_range_for_period("today", now=NOW)
    assert start == datetime(2026, 3, 10, tzinfo=UTC)
    assert end == datetime(2026, 3, 10, 23, 59, 59, 999999, tzinfo=UTC)


def test_period_week_starts_monday() -> None:
    start, end = date_range_for_period("week", now=NOW)
    assert start == datetime(2026, 3, 9, tzinfo=UTC)
    assert end == datetime(2026, 3, 15, 23, 59, 59, 999999, tzinfo=UTC)


def test_period_fifteen_days() -> None:
    start, end = date_range_for_period("fifteen_days", now=NOW)
    assert start == datetime(2026, 2, 24, tzinfo=UTC)
    assert end == datetime(2026, 3, 10, 23, 59, 59, 999999, tzinfo=UTC)


def test_period_month() -> None:
    start, end = date_range_for_period("month", now=NOW)
    assert start == datetime(2026, 3, 1, tzinfo=UTC)
    assert end == datetime(2026, 3, 31, 23, 59, 59, 999999, tzinfo=UTC)

    start, end = date_range_for_period("month", now=datetime(2026, 12, 31, 12, tzinfo=UTC))
    assert (start.month, end.month, end.day) == (12, 12, 31)


def test_period_is_cut_in_display_timezone() -> None:
    plus8 = timezone(timedelta(hours=8))
    late_evening_utc = datetime(2026, 3, 10, 20, 0, tzinfo=UTC)  # 04:00 next day at +08:00

    start, end = date_range_for_period("today", now=late_evening_utc, tz=plus8)
    assert start == datetime(2026, 3, 10, 16, 0, tzinfo=UTC)
    assert end == datetime(2026, 3, 11, 15, 59, 59, 999999, tzinfo=UTC)
    assert start.tzinfo == UTC


def test_unknown_period() -> None:
    with pytest.raises(ValidationError):
        date_range_for_period("custom", now=NOW)
