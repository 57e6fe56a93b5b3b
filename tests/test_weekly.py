# -*- coding: utf-8 -*-
"""Tests for the weekly delta report and the date helpers it relies on."""
from datetime import datetime, timezone

import pytest

from engine import (
    attended_hours,
    hours_until,
    in_range,
    schedule_day,
    parse_when,
    schedule_hours,
    week_bounds,
    weekly_report,
)
from models import Schedule


def test_week_bounds_start_on_monday(now) -> None:
    start, end = week_bounds(now)
    assert start == datetime(2026, 10, 19)
    assert end == datetime(2026, 10, 25, 23, 59, 59, 999999)

    # Sunday still belongs to the week that started on Monday
    assert week_bounds(datetime(2026, 10, 25, 22, 0))[0] == datetime(2026, 10, 19)


def test_parse_when_is_lenient() -> None:
    assert parse_when("2026-10-19") == datetime(2026, 10, 19)
    assert parse_when("2026-10-19T08:30:00Z") == datetime(2026, 10, 19, 8, 30)
    assert parse_when(datetime(2026, 10, 19, 10, tzinfo=timezone.utc)) == datetime(2026, 10, 19, 10)
    assert parse_when("19/10/2026") is None
    assert parse_when(None) is None


def test_in_range_excludes_bad_dates() -> None:
    start, end = datetime(2026, 10, 19), datetime(2026, 10, 25, 23, 59)
    assert in_range("2026-10-19", start, end)
    assert in_range("2026-10-25", start, end)
    assert not in_range("2026-10-26", start, end)
    assert not in_range("garbage", start, end)


def test_hours_until(now) -> None:
    assert hours_until("2026-10-22T00:00:00", now) == pytest.approx(12.0)
    assert hours_until("2026-10-21", now) == pytest.approx(-12.0)
    assert hours_until("soon", now) is None


def test_schedule_day_and_schedule_hours() -> None:
    assert schedule_day(datetime(2026, 10, 18)) == 0   # Sunday
    assert schedule_day(datetime(2026, 10, 19)) == 1   # Monday
    assert schedule_hours(Schedule(day=1, start_time="08:00", end_time="09:40")) == pytest.approx(5 / 3)
    assert schedule_hours(Schedule(day=1, start_time="??", end_time="09:40")) == 0.0


def test_attended_hours_fallback(math_subject, make_record) -> None:
    records = [
        make_record("math", "2026-10-19"),          # Monday slot, 1h40
        make_record("math", "2026-10-20"),          # no Tuesday slot, fallback
        make_record("math", "2026-10-21", False),   # absent
        make_record("ghost", "2026-10-21"),         # unknown subject
    ]
    assert attended_hours(records, [math_subject]) == pytest.approx(5 / 3 + 1.5)


def test_weekly_report(math_subject, make_activity, make_record, now) -> None:
    activities = [
        make_activity(status="completed", deadline="2026-10-20"),
        make_activity(status="completed", deadline="2026-10-13"),
        make_activity(status="completed", deadline="2026-10-15"),
        make_activity(status="pending", deadline="2026-10-20", grade=None),
        make_activity(status="pending", deadline="2026-11-20", grade=8.0),
    ]
    attendance = [
        make_record("math", "2026-10-19"),
        make_record("math", "2026-10-20"),
        make_record("math", "2026-10-21"),
        make_record("math", "2026-10-22", False),
        make_record("math", "2026-10-12"),
        make_record("math", "2026-10-14", False),
        make_record("math", "not-a-date"),
    ]
    report = weekly_report([math_subject], activities, attendance, now)

    assert report["week_start"] == "2026-10-19"
    assert report["week_end"] == "2026-10-25"
    assert report["week_label"] == "19/10 - 25/10"

    assert report["tasks_completed"] == {"current": 1, "previous": 2, "diff": -1, "trend": "down"}
    assert report["attendance_records"] == {"current": 4, "previous": 2, "diff": 2, "trend": "up"}
    assert report["present"] == {"current": 3, "previous": 1, "diff": 2, "trend": "up"}

    # 1h40 (Mon) + 1.5 fallback (Tue) + 2h (Wed) vs 1h40
    hours = report["hours_attended"]
    assert hours["current"] == pytest.approx(5.2)
    assert hours["previous"] == pytest.approx(1.7)
    assert hours["diff"] == pytest.approx(3.5)
    assert hours["trend"] == "up"

    assert report["avg_grade"] == pytest.approx(8.0)
    assert report["pending_count"] == 2
    assert report["overdue_count"] == 1


def test_weekly_report_flat_when_nothing_happened(now) -> None:
    report = weekly_report([], [], [], now)
    assert report["tasks_completed"]["trend"] == "flat"
    assert report["hours_attended"]["current"] == 0
    assert report["avg_grade"] is None
