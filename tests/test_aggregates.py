# -*- coding: utf-8 -*-
"""Tests for attendance and task completion aggregates."""
import time
from datetime import datetime, timedelta, timezone

import pytest

from engine import attendance_rate, is_overdue, overall_attendance_rate, task_completion


def test_attendance_rate_per_subject(make_record) -> None:
    records = [
        make_record("math", "2026-10-12"),
        make_record("math", "2026-10-14"),
        make_record("math", "2026-10-19", False),
        make_record("hist", "2026-10-19", False),
    ]
    assert attendance_rate(records, "math") == pytest.approx(200 / 3)
    assert attendance_rate(records, "hist") == 0.0


def test_attendance_rate_without_records_is_none(make_record) -> None:
    assert attendance_rate([make_record("hist", "2026-10-19")], "math") is None
    assert overall_attendance_rate([]) is None


def test_overall_attendance_is_pooled_not_averaged(make_record) -> None:
    records = [
        make_record("math", "2026-10-12"),
        make_record("hist", "2026-10-12", False),
        make_record("hist", "2026-10-13", False),
        make_record("hist", "2026-10-14", False),
    ]
    # per-subject mean would be 50
    assert overall_attendance_rate(records) == pytest.approx(25.0)


def test_task_completion_with_overdue_penalty(make_activity, now) -> None:
    activities = [
        make_activity(status="completed", deadline="2026-10-01"),
        make_activity(status="completed", deadline="2026-11-01"),
        make_activity(status="pending", deadline="2026-10-10"),
        make_activity(status="in_progress", deadline="2026-11-10"),
    ]
    result = task_completion(activities, now)

    assert result["total"] == 4
    assert result["completed"] == 2
    assert result["pending"] == 2
    assert result["overdue"] == 1
    assert result["completion_rate"] == pytest.approx(50.0)
    assert result["overdue_penalty"] == pytest.approx(5.0)
    assert result["task_score"] == pytest.approx(45.0)


def test_task_completion_empty_is_no_data(now) -> None:
    result = task_completion([], now)
    assert result["completion_rate"] is None
    assert result["task_score"] is None


def test_task_score_never_negative(make_activity, now) -> None:
    result = task_completion([make_activity(deadline="2026-01-01")], now)
    assert result["completion_rate"] == 0.0
    assert result["task_score"] == 0.0


def test_is_overdue(make_activity, now) -> None:
    assert is_overdue(make_activity(deadline="2026-10-20"), now)
    assert not is_overdue(make_activity(deadline="2026-10-20", status="completed"), now)
    assert not is_overdue(make_activity(deadline="2026-10-22"), now)
    # malformed dates are never overdue
    assert not is_overdue(make_activity(deadline="next tuesday"), now)
    assert not is_overdue(make_activity(deadline=""), now)


@pytest.fixture
def sao_paulo_local_time(monkeypatch):
    """Run with a process timezone three hours behind UTC."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/Sao_Paulo")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_default_clock_is_utc(sao_paulo_local_time, make_activity) -> None:
    an_hour_ago = datetime.now(timezone.utc) - timedelta(hours=1)
    in_an_hour = datetime.now(timezone(timedelta(hours=-3))) + timedelta(hours=1)

    assert is_overdue(make_activity(deadline=an_hour_ago.isoformat()))
    assert not is_overdue(make_activity(deadline=in_an_hour.isoformat()))
