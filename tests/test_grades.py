# -*- coding: utf-8 -*-
"""Tests for grade aggregation and the grade-needed solver."""
import pytest

from engine import (
    grade_needed,
    grade_totals,
    grades_report,
    overall_average,
    subject_grades,
    weighted_average,
)
from models import Subject


def test_weighted_average_uses_weights(make_activity) -> None:
    activities = [
        make_activity(grade=8.0, weight=2),
        make_activity(grade=5.0, weight=1),
        make_activity(grade=None, weight=5),
    ]
    assert weighted_average(activities, "math") == pytest.approx(7.0)


def test_weighted_average_defaults_weight_to_one(make_activity) -> None:
    activities = [make_activity(grade=6.0), make_activity(grade=9.0)]
    assert weighted_average(activities, "math") == pytest.approx(7.5)


def test_weighted_average_without_grades_is_none_not_zero(make_activity) -> None:
    activities = [make_activity(grade=None), make_activity(subject_id="hist", grade=4.0)]
    assert weighted_average(activities, "math") is None


def test_weighted_average_clamps_out_of_range_grades(make_activity) -> None:
    activities = [make_activity(grade=15.0), make_activity(grade=-3.0)]
    avg = weighted_average(activities, "math")
    assert avg == pytest.approx(5.0)
    assert 0 <= avg <= 10


def test_grade_needed_next_evaluation() -> None:
    # one prior grade of 5 with weight 1, target 7
    assert grade_needed(7, 5, 1) == pytest.approx(9.0)


def test_grade_needed_unreachable_is_none() -> None:
    assert grade_needed(9, 2, 1) is None


def test_grade_needed_already_exceeded_clamps_to_zero() -> None:
    assert grade_needed(5, 20, 2) == 0.0


def test_grade_totals(make_activity) -> None:
    activities = [make_activity(grade=8.0, weight=2), make_activity(grade=4.0)]
    assert grade_totals(activities, "math") == (pytest.approx(20.0), pytest.approx(3.0))


def test_overall_average_skips_subjects_without_grades(make_activity) -> None:
    subjects = [Subject(id="math", name="Math"), Subject(id="hist", name="History"), Subject(id="art", name="Art")]
    activities = [
        make_activity(subject_id="math", grade=7.0),
        make_activity(subject_id="hist", grade=5.0),
        make_activity(subject_id="art", grade=None),
    ]
    assert overall_average(activities, subjects) == pytest.approx(6.0)


def test_overall_average_none_without_grades() -> None:
    assert overall_average([], [Subject(id="math", name="Math")]) is None


def test_subject_grades_at_risk(math_subject, make_activity) -> None:
    activities = [
        make_activity(grade=5.0, deadline="2026-09-01"),
        make_activity(grade=None, deadline="2026-11-20"),
    ]
    result = subject_grades(math_subject, activities, target_grade=7.0)

    assert result["average"] == pytest.approx(5.0)
    assert result["needed_next"] == pytest.approx(9.0)
    assert result["needed_remaining"] == pytest.approx(9.0)
    assert result["status"] == "at-risk"


def test_subject_grades_failing_without_pending_work(math_subject, make_activity) -> None:
    result = subject_grades(math_subject, [make_activity(grade=5.0)], target_grade=7.0)
    assert result["status"] == "failing"
    assert result["needed_remaining"] is None


def test_subject_grades_approved_and_no_grades(math_subject, make_activity) -> None:
    assert subject_grades(math_subject, [make_activity(grade=8.0)])["status"] == "approved"

    empty = subject_grades(math_subject, [make_activity(grade=None)])
    assert empty["status"] == "no-grades"
    assert empty["average"] is None
    assert empty["needed_next"] is None


def test_subject_grades_evolution_follows_deadlines(math_subject, make_activity) -> None:
    activities = [
        make_activity(grade=4.0, deadline="2026-10-01"),
        make_activity(grade=8.0, deadline="2026-09-01"),
    ]
    evolution = subject_grades(math_subject, activities)["evolution"]

    assert [e["grade"] for e in evolution] == [8.0, 4.0]
    assert [e["cumulative_average"] for e in evolution] == [8.0, 6.0]
    assert evolution[0]["name"] == "A1"


def test_grades_report(math_subject, history_subject, make_activity) -> None:
    activities = [make_activity(grade=8.0), make_activity(subject_id="hist", grade=6.0)]
    report = grades_report([math_subject, history_subject], activities, 7.0)

    assert report["overall_average"] == pytest.approx(7.0)
    assert [s["subject_id"] for s in report["subjects"]] == ["math", "hist"]


def test_subject_grades_projected(math_subject, make_activity) -> None:
    graded = [make_activity(grade=8.0, weight=1), make_activity(grade=5.0, weight=3)]

    with_pending = subject_grades(math_subject, graded + [make_activity(grade=None, weight=2)])
    # keeping the current average on the remaining weight
    assert with_pending["projected"] == pytest.approx((23 + 5.75 * 2) / 6)

    assert subject_grades(math_subject, graded)["projected"] == pytest.approx(5.75)
    assert subject_grades(math_subject, [make_activity(grade=None)])["projected"] is None


def test_subject_grades_simulation(math_subject, make_activity) -> None:
    activities = [
        make_activity(grade=5.0, weight=1, deadline="2026-09-01"),
        make_activity(grade=8.0, weight=2, deadline="2026-10-01"),
    ]
    result = subject_grades(math_subject, activities, 7.0, simulated_grade=9.0)

    assert result["average"] == pytest.approx(7.0)
    assert result["simulated_average"] == pytest.approx(7.5)
    assert result["evolution"][-1] == {"name": "Sim", "activity_id": None, "grade": 9.0, "cumulative_average": 7.5}
    assert len(result["evolution"]) == 3

    plain = subject_grades(math_subject, activities, 7.0)
    assert plain["simulated_average"] is None
    assert [e["name"] for e in plain["evolution"]] == ["A1", "A2"]


def test_simulation_without_grades_yet(math_subject) -> None:
    result = subject_grades(math_subject, [], 7.0, simulated_grade=6.0)
    assert result["simulated_average"] == pytest.approx(6.0)
    assert result["status"] == "no-grades"


def test_grades_report_simulates_per_subject(math_subject, history_subject, make_activity) -> None:
    activities = [make_activity(grade=8.0), make_activity(subject_id="hist", grade=6.0)]
    report = grades_report([math_subject, history_subject], activities, 7.0, simulated={"math": 10.0})

    math, hist = report["subjects"]
    assert math["simulated_average"] == pytest.approx(9.0)
    assert hist["simulated_average"] is None
