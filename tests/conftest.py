# -*- coding: utf-8 -*-
"""Shared fixtures for the engine and API tests."""
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

import app as api
from models import Activity, AttendanceRecord, Schedule, Subject


# Wednesday; the current week runs Mon 2026-10-19 .. Sun 2026-10-25
NOW = datetime(2026, 10, 21, 12, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_activity():
    """Factory for activities with sensible defaults."""
    counter = {"n": 0}

    def _make(**kwargs) -> Activity:
        counter["n"] += 1
        kwargs.setdefault("id", f"act-{counter['n']}")
        kwargs.setdefault("subject_id", "math")
        kwargs.setdefault("deadline", "2026-12-01")
        return Activity(**kwargs)

    return _make


@pytest.fixture
def math_subject() -> Subject:
    return Subject(
        id="math",
        name="Calculus I",
        color="#6366f1",
        schedules=[
            Schedule(day=1, start_time="08:00", end_time="09:40"),
            Schedule(day=3, start_time="10:00", end_time="12:00"),
        ],
        workload=60,
    )


@pytest.fixture
def history_subject() -> Subject:
    return Subject(id="hist", name="History", schedules=[Schedule(day=2, start_time="14:00", end_time="16:00")])


@pytest.fixture
def make_record():
    def _make(subject_id: str, day: str, is_present: bool = True) -> AttendanceRecord:
        return AttendanceRecord(subject_id=subject_id, date=day, present=is_present)

    return _make


@pytest.fixture
def client():
    api.app.config["TESTING"] = True
    with api.app.test_client() as c:
        yield c


@pytest.fixture
def auth_headers():
    with api.app.app_context():
        token = create_access_token(identity="student-1")
    return {"Authorization": f"Bearer {token}"}
