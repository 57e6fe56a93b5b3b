"""
Academic Scoring Engine (Python Core)

This file contains ONLY the "brain" of the app.
It does math + logic. No I/O, no database, no printing inside the core functions.

The API (app.py) fetches nothing itself: callers send a snapshot of
subjects / activities / attendance and every function here recomputes
its result from scratch. Same inputs -> same outputs.

"No data" is always None, never 0. A subject with no grades yet is not
a subject with a zero average.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Dict, Optional, Tuple

from models import (
    Activity,
    AttendanceRecord,
    Schedule,
    Settings,
    Subject,
    DIFFICULTY_HIGH,
    DIFFICULTY_LOW,
    DIFFICULTY_MEDIUM,
    FRESHMAN,
    TYPE_EXAM,
    TYPE_SEMINAR,
)


GRADE_MIN = 0.0
GRADE_MAX = 10.0

# Assumed length of an attended class when the subject has no schedule
# entry for that weekday.
# TODO: product owner to confirm whether the weekday lookup should ever miss here
FALLBACK_CLASS_HOURS = 1.5


# ----------------------------
# HELPERS
# ----------------------------

def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _now(now: Optional[datetime]) -> datetime:
    # one clock: naive UTC, same as parsed aware timestamps
    return _naive(now) if now is not None else datetime.now(timezone.utc).replace(tzinfo=None)


def parse_when(value) -> Optional[datetime]:
    """
    Parse an ISO date ("2026-10-19") or datetime into a naive datetime.
    Returns None for anything unparseable. Never raises.
    """
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return _naive(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    except ValueError:
        return None


def in_range(value, start: datetime, end: datetime) -> bool:
    when = parse_when(value)
    if when is None:
        return False
    return start <= when <= end


def hours_until(deadline, now: datetime) -> Optional[float]:
    when = parse_when(deadline)
    if when is None:
        return None
    return (when - _naive(now)).total_seconds() / 3600.0


def week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 through Sunday 23:59:59.999999 of the week containing now."""
    now = _naive(now)
    start = datetime(now.year, now.month, now.day) - timedelta(days=now.weekday())
    end = start + timedelta(days=7) - timedelta(microseconds=1)
    return start, end


def schedule_day(d) -> int:
    """Weekday with Sunday=0, the convention schedules are stored in."""
    return (d.weekday() + 1) % 7


def _clock_hours(hhmm: str) -> Optional[float]:
    try:
        h, m = hhmm.split(":")[:2]
        return int(h) + int(m) / 60.0
    except (AttributeError, ValueError):
        return None


def schedule_hours(s: Schedule) -> float:
    start = _clock_hours(s.start_time)
    end = _clock_hours(s.end_time)
    if start is None or end is None:
        return 0.0
    return end - start


def _grade(a: Activity) -> float:
    return clamp(float(a.grade), GRADE_MIN, GRADE_MAX)


def _weight(a: Activity) -> float:
    return max(0.0, a.effective_weight)


def _graded(activities: List[Activity], subject_id: Optional[str] = None) -> List[Activity]:
    return [
        a for a in activities
        if a.grade is not None and (subject_id is None or a.subject_id == subject_id)
    ]


def _plain_average(activities: List[Activity]) -> Optional[float]:
    graded = _graded(activities)
    if not graded:
        return None
    return sum(_grade(a) for a in graded) / len(graded)


def _find_subject(subjects: List[Subject], subject_id: str) -> Optional[Subject]:
    for s in subjects:
        if s.id == subject_id:
            return s
    return None


# ----------------------------
# 1) GRADE AGGREGATOR
# ----------------------------

def grade_totals(activities: List[Activity], subject_id: str) -> Tuple[float, float]:
    """(weighted sum, total weight) over the graded activities of one subject."""
    graded = _graded(activities, subject_id)
    weighted_sum = sum(_grade(a) * _weight(a) for a in graded)
    total_weight = sum(_weight(a) for a in graded)
    return weighted_sum, total_weight


def weighted_average(activities: List[Activity], subject_id: str) -> Optional[float]:
    weighted_sum, total_weight = grade_totals(activities, subject_id)
    if total_weight <= 0:
        return None
    return weighted_sum / total_weight


def grade_needed(target: float, weighted_sum: float, total_weight: float,
                 next_weight: float = 1.0) -> Optional[float]:
    """
    Grade required on the next evaluation(s) of weight next_weight so the
    weighted average reaches target.

    None means the target is out of reach (would need more than 10).
    """
    if next_weight <= 0:
        return None
    needed = (target * (total_weight + next_weight) - weighted_sum) / next_weight
    if needed > GRADE_MAX:
        return None
    return max(0.0, needed)


def overall_average(activities: List[Activity], subjects: List[Subject]) -> Optional[float]:
    """Unweighted mean of the per-subject averages that exist."""
    averages = [weighted_average(activities, s.id) for s in subjects]
    averages = [avg for avg in averages if avg is not None]
    if not averages:
        return None
    return sum(averages) / len(averages)


def subject_grades(subject: Subject, activities: List[Activity], target_grade: float = 7.0,
                   simulated_grade: Optional[float] = None) -> Dict[str, object]:
    """
    Per-subject grade summary.

    projected: final grade if the remaining weight is scored at the current average.
    simulated_grade: optional what-if grade for one more weight-1 evaluation;
    it feeds simulated_average and a trailing "Sim" point on the evolution.
    """
    graded = _graded(activities, subject.id)
    # oldest first; bad deadlines sink to the end
    graded.sort(key=lambda a: (parse_when(a.deadline) is None, parse_when(a.deadline) or datetime.min))

    weighted_sum, total_weight = grade_totals(activities, subject.id)
    avg = weighted_sum / total_weight if total_weight > 0 else None

    needed_next = None
    if avg is not None and avg < target_grade:
        needed_next = grade_needed(target_grade, weighted_sum, total_weight, 1.0)

    pending = [a for a in activities if a.subject_id == subject.id and a.grade is None]
    pending_weight = sum(_weight(a) for a in pending)
    needed_remaining = None
    if pending_weight > 0:
        needed_remaining = grade_needed(target_grade, weighted_sum, total_weight, pending_weight)

    if avg is None:
        status = "no-grades"
    elif avg >= target_grade:
        status = "approved"
    elif needed_remaining is not None:
        status = "at-risk"
    else:
        status = "failing"

    evolution: List[Dict[str, object]] = []
    cum_weight = 0.0
    cum_sum = 0.0
    for i, a in enumerate(graded):
        cum_weight += _weight(a)
        cum_sum += _grade(a) * _weight(a)
        evolution.append({
            "name": f"A{i + 1}",
            "activity_id": a.id,
            "grade": _grade(a),
            "cumulative_average": round(cum_sum / cum_weight, 2) if cum_weight > 0 else None,
        })

    projected = None
    if avg is not None and pending_weight > 0:
        projected = (weighted_sum + avg * pending_weight) / (total_weight + pending_weight)
    elif avg is not None:
        projected = avg

    simulated_average = None
    if simulated_grade is not None:
        sim = clamp(float(simulated_grade), GRADE_MIN, GRADE_MAX)
        simulated_average = (weighted_sum + sim) / (total_weight + 1.0)
        evolution.append({
            "name": "Sim",
            "activity_id": None,
            "grade": sim,
            "cumulative_average": round(simulated_average, 2),
        })

    return {
        "subject_id": subject.id,
        "subject_name": subject.name,
        "graded_count": len(graded),
        "average": avg,
        "weighted_sum": weighted_sum,
        "total_weight": total_weight,
        "pending_weight": pending_weight,
        "needed_next": needed_next,
        "needed_remaining": needed_remaining,
        "projected": projected,
        "simulated_average": simulated_average,
        "status": status,
        "evolution": evolution,
    }


def grades_report(subjects: List[Subject], activities: List[Activity], target_grade: float = 7.0,
                  simulated: Optional[Dict[str, float]] = None) -> Dict[str, object]:
    simulated = simulated or {}
    return {
        "target_grade": target_grade,
        "overall_average": overall_average(activities, subjects),
        "subjects": [subject_grades(s, activities, target_grade, simulated.get(s.id)) for s in subjects],
    }


# ----------------------------
# 2) ATTENDANCE AGGREGATOR
# ----------------------------

def _presence_rate(records: List[AttendanceRecord]) -> Optional[float]:
    if not records:
        return None
    present = sum(1 for r in records if r.present)
    return 100.0 * present / len(records)


def attendance_rate(records: List[AttendanceRecord], subject_id: str) -> Optional[float]:
    return _presence_rate([r for r in records if r.subject_id == subject_id])


def overall_attendance_rate(records: List[AttendanceRecord]) -> Optional[float]:
    """Pooled across every record, not an average of per-subject rates."""
    return _presence_rate(records)


# ----------------------------
# 3) TASK COMPLETION
# ----------------------------

def is_overdue(a: Activity, now: Optional[datetime] = None) -> bool:
    if a.is_completed:
        return False
    when = parse_when(a.deadline)
    return when is not None and when < _now(now)


def task_completion(activities: List[Activity], now: Optional[datetime] = None) -> Dict[str, object]:
    now = _now(now)
    total = len(activities)
    completed = sum(1 for a in activities if a.is_completed)
    overdue = sum(1 for a in activities if is_overdue(a, now))

    if total == 0:
        return {
            "total": 0,
            "completed": 0,
            "pending": 0,
            "overdue": 0,
            "completion_rate": None,
            "overdue_penalty": 0.0,
            "task_score": None,
        }

    rate = 100.0 * completed / total
    penalty = 20.0 * overdue / total
    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "overdue": overdue,
        "completion_rate": rate,
        "overdue_penalty": penalty,
        "task_score": clamp(rate - penalty, 0.0, 100.0),
    }


# ----------------------------
# 4) COMPOSITE ACADEMIC SCORE
# ----------------------------

def score_label(total: int) -> str:
    if total >= 90:
        return "Excellent"
    if total >= 75:
        return "Very Good"
    if total >= 60:
        return "Good"
    if total >= 40:
        return "Regular"
    return "Critical"


def score_band(total: int) -> str:
    if total >= 75:
        return "positive"
    if total >= 50:
        return "neutral"
    return "negative"


def academic_score(activities: List[Activity], attendance: List[AttendanceRecord],
                   target_grade: float = 7.0, target_attendance: float = 75.0,
                   now: Optional[datetime] = None) -> Dict[str, object]:
    if not activities and not attendance:
        return {
            "total": 0,
            "label": "No data",
            "band": "none",
            "has_data": False,
            "breakdown": {"grade": None, "attendance": None, "tasks": None, "consistency": None},
        }

    avg_grade = _plain_average(activities)
    attendance_pct = overall_attendance_rate(attendance)
    tasks = task_completion(activities, now)

    grade_score = None if avg_grade is None else min(100.0, avg_grade / 10.0 * 100.0)
    attendance_score = None if attendance_pct is None else min(100.0, attendance_pct)
    task_score = tasks["task_score"]

    consistency = 50.0
    if avg_grade is not None:
        consistency += 25 if avg_grade >= target_grade else -15
    if attendance_pct is not None:
        consistency += 25 if attendance_pct >= target_attendance else -15
    consistency = clamp(consistency, 0.0, 100.0)

    # (weight, contribution); absent dimensions drop out of the denominator
    dimensions = [
        (0.30, grade_score),
        (0.25, attendance_score),
        (0.25, task_score),
        (0.20, consistency),
    ]
    present = [(w, v) for w, v in dimensions if v is not None]
    weight_sum = sum(w for w, _ in present)
    weighted = sum(w * v for w, v in present)
    total = round_half_up(weighted / weight_sum)

    def _rounded(v):
        return None if v is None else round_half_up(v)

    return {
        "total": total,
        "label": score_label(total),
        "band": score_band(total),
        "has_data": True,
        "breakdown": {
            "grade": _rounded(grade_score),
            "attendance": _rounded(attendance_score),
            "tasks": _rounded(task_score),
            "consistency": _rounded(consistency),
        },
    }


# ----------------------------
# 5) RISK CLASSIFIER
# ----------------------------

RISK_ORDER = {"danger": 0, "warning": 1, "safe": 2}


def risk_level(score: float) -> str:
    if score >= 50:
        return "danger"
    if score >= 20:
        return "warning"
    return "safe"


def subject_risk(subject: Subject, activities: List[Activity], attendance: List[AttendanceRecord],
                 target_grade: float = 7.0, target_attendance: float = 75.0,
                 now: Optional[datetime] = None) -> Dict[str, object]:
    now = _now(now)
    grade_avg = weighted_average(activities, subject.id)
    rate = attendance_rate(attendance, subject.id)
    overdue = sum(1 for a in activities if a.subject_id == subject.id and is_overdue(a, now))

    # (triggered, points, factor) evaluated in a fixed order
    rules: List[Tuple[bool, int, str]] = []
    if grade_avg is not None:
        rules.append((grade_avg < target_grade - 2, 40, f"critical average ({grade_avg:.1f})"))
        rules.append((target_grade - 2 <= grade_avg < target_grade, 20, f"below target ({grade_avg:.1f})"))
    if rate is not None:
        rules.append((rate < target_attendance - 10, 40, f"critical attendance ({rate:.0f}%)"))
        rules.append((target_attendance - 10 <= rate < target_attendance, 20, f"low attendance ({rate:.0f}%)"))
    noun = "task" if overdue == 1 else "tasks"
    rules.append((overdue >= 3, 30, f"{overdue} overdue {noun}"))
    rules.append((1 <= overdue < 3, 15, f"{overdue} overdue {noun}"))

    score = int(clamp(sum(points for hit, points, _ in rules if hit), 0, 100))

    return {
        "subject_id": subject.id,
        "subject_name": subject.name,
        "level": risk_level(score),
        "score": score,
        "factors": [factor for hit, _, factor in rules if hit],
        "grade_avg": grade_avg,
        "attendance_rate": rate,
        "overdue_tasks": overdue,
    }


def classify_risks(subjects: List[Subject], activities: List[Activity], attendance: List[AttendanceRecord],
                   target_grade: float = 7.0, target_attendance: float = 75.0,
                   now: Optional[datetime] = None) -> List[Dict[str, object]]:
    now = _now(now)
    risks = [subject_risk(s, activities, attendance, target_grade, target_attendance, now) for s in subjects]
    risks.sort(key=lambda r: RISK_ORDER[r["level"]])
    return risks


def overall_risk_level(risks: List[Dict[str, object]]) -> str:
    levels = {r["level"] for r in risks}
    if "danger" in levels:
        return "danger"
    if "warning" in levels:
        return "warning"
    return "safe"


def performance_summary(activities: List[Activity], attendance: List[AttendanceRecord],
                        now: Optional[datetime] = None) -> Dict[str, object]:
    """Whole-semester banner: green / yellow / red from coarse thresholds."""
    avg_grade = _plain_average(activities)
    rate = overall_attendance_rate(attendance)
    avg_attendance = None if rate is None else round_half_up(rate)
    tasks = task_completion(activities, now)
    tasks_percent = None if tasks["completion_rate"] is None else round_half_up(tasks["completion_rate"])

    level = "green"
    if avg_attendance is not None and avg_attendance < 75:
        level = "red"
    elif avg_attendance is not None and avg_attendance < 80:
        level = "yellow"
    if avg_grade is not None and avg_grade < 5:
        level = "red"
    elif avg_grade is not None and avg_grade < 6 and level != "red":
        level = "yellow"
    if tasks["overdue"] > 3:
        level = "red"
    elif tasks["overdue"] > 0 and level != "red":
        level = "yellow"

    return {
        "avg_grade": avg_grade,
        "avg_attendance": avg_attendance,
        "tasks_percent": tasks_percent,
        "completed_tasks": tasks["completed"],
        "total_tasks": tasks["total"],
        "overdue_tasks": tasks["overdue"],
        "risk_level": level,
    }


# ----------------------------
# 6) SMART PRIORITY
# ----------------------------

def deadline_score(hours_left: Optional[float]) -> int:
    if hours_left is None:
        return 5
    if hours_left < 0:
        return 100
    if hours_left <= 12:
        return 95
    if hours_left <= 24:
        return 85
    if hours_left <= 48:
        return 70
    if hours_left <= 72:
        return 55
    if hours_left <= 168:     # 7 days
        return 35
    if hours_left <= 336:     # 14 days
        return 20
    return 5


def type_multiplier(activity_type: str) -> float:
    if activity_type == TYPE_EXAM:
        return 1.5
    if activity_type == TYPE_SEMINAR:
        return 1.2
    return 1.0


def weight_score(a: Activity) -> float:
    return clamp(_weight(a) * type_multiplier(a.activity_type) * 25, 0.0, 100.0)


def difficulty_score(difficulty: Optional[str]) -> int:
    return {
        DIFFICULTY_HIGH: 85,
        DIFFICULTY_MEDIUM: 45,
        DIFFICULTY_LOW: 15,
    }.get(difficulty, 40)


def status_bonus(activity_type: str, academic_status: str) -> int:
    if academic_status != FRESHMAN:
        return 0
    if activity_type == TYPE_EXAM:
        return 12
    if activity_type == TYPE_SEMINAR:
        return 8
    return 5


def subject_risk_score(a: Activity, subjects: List[Subject], activities: List[Activity],
                       attendance: List[AttendanceRecord], now: Optional[datetime] = None) -> int:
    """Worst single signal for the activity's subject; signals never add up."""
    now = _now(now)
    subject = _find_subject(subjects, a.subject_id)
    risk = 30
    if subject is None:
        return risk

    avg = _plain_average([x for x in activities if x.subject_id == subject.id])
    if avg is not None:
        if avg < 5:
            risk = 90
        elif avg < 6:
            risk = 70
        elif avg < 7:
            risk = 50
        else:
            risk = 20

    rate = attendance_rate(attendance, subject.id)
    if rate is not None:
        if rate < 75:
            risk = max(risk, 80)
        elif rate < 85:
            risk = max(risk, 50)

    other_overdue = sum(
        1 for x in activities
        if x.subject_id == subject.id and x.id != a.id and is_overdue(x, now)
    )
    if other_overdue >= 2:
        risk = max(risk, 75)

    return risk


def priority_level(score: int) -> Tuple[str, str]:
    if score >= 75:
        return "critical", "Urgent"
    if score >= 50:
        return "high", "High"
    if score >= 25:
        return "medium", "Medium"
    return "low", "Low"


def smart_priority(a: Activity, subjects: List[Subject], activities: List[Activity],
                   attendance: List[AttendanceRecord], academic_status: str = FRESHMAN,
                   now: Optional[datetime] = None) -> Dict[str, object]:
    if a.is_completed:
        return {"score": 0, "label": "Completed", "reason": "already submitted", "level": "low"}

    now = _now(now)
    hours_left = hours_until(a.deadline, now)
    is_exam = a.activity_type == TYPE_EXAM
    is_seminar = a.activity_type == TYPE_SEMINAR

    d_score = deadline_score(hours_left)
    w_score = weight_score(a)
    r_score = subject_risk_score(a, subjects, activities, attendance, now)
    ai_score = difficulty_score(a.ai_difficulty)
    bonus = status_bonus(a.activity_type, academic_status)

    total = round_half_up(d_score * 0.30 + w_score * 0.20 + r_score * 0.25 + ai_score * 0.25 + bonus)
    total = int(clamp(total, 0, 100))
    level, label = priority_level(total)

    known = hours_left is not None
    reasons = [
        (known and hours_left < 0, "overdue"),
        (known and 0 <= hours_left <= 24, "deadline imminent"),
        (known and 24 < hours_left <= 48, "deadline soon"),
        (_weight(a) >= 3, "high weight"),
        (is_exam, "exam"),
        (r_score >= 70, "subject at risk"),
        (a.ai_difficulty == DIFFICULTY_HIGH, "difficult content"),
        (a.ai_difficulty == DIFFICULTY_LOW, "simple content"),
        (academic_status == FRESHMAN and (is_exam or is_seminar), "freshman"),
    ]
    triggered: List[str] = []
    for hit, text in reasons:
        if hit and text not in triggered:
            triggered.append(text)

    return {
        "score": total,
        "label": label,
        "reason": " · ".join(triggered) or "normal priority",
        "level": level,
    }


def rank_by_priority(activities: List[Activity], subjects: List[Subject], all_activities: List[Activity],
                     attendance: List[AttendanceRecord], academic_status: str = FRESHMAN,
                     now: Optional[datetime] = None) -> List[Dict[str, object]]:
    now = _now(now)
    ranked = [
        {"activity": a, "priority": smart_priority(a, subjects, all_activities, attendance, academic_status, now)}
        for a in activities
    ]
    # sort() is stable, ties keep input order
    ranked.sort(key=lambda x: x["priority"]["score"], reverse=True)
    return ranked


# ----------------------------
# 7) WEEKLY REPORT
# ----------------------------

def trend(diff: float) -> str:
    if diff > 0:
        return "up"
    if diff < 0:
        return "down"
    return "flat"


def _delta(current: float, previous: float, one_decimal: bool = False) -> Dict[str, object]:
    diff = current - previous
    if one_decimal:
        current = round_half_up(current * 10) / 10
        previous = round_half_up(previous * 10) / 10
        diff = round_half_up(diff * 10) / 10
    return {"current": current, "previous": previous, "diff": diff, "trend": trend(diff)}


def attended_hours(records: List[AttendanceRecord], subjects: List[Subject]) -> float:
    total = 0.0
    for r in records:
        if not r.present:
            continue
        subject = _find_subject(subjects, r.subject_id)
        when = parse_when(r.date)
        if subject is None or when is None:
            continue
        day = schedule_day(when)
        hours = sum(schedule_hours(s) for s in subject.schedules if s.day == day)
        total += hours or FALLBACK_CLASS_HOURS
    return total


def weekly_report(subjects: List[Subject], activities: List[Activity], attendance: List[AttendanceRecord],
                  now: Optional[datetime] = None) -> Dict[str, object]:
    now = _now(now)
    this_start, this_end = week_bounds(now)
    last_start, last_end = this_start - timedelta(weeks=1), this_end - timedelta(weeks=1)

    def completed_in(start, end):
        return sum(1 for a in activities if a.is_completed and in_range(a.deadline, start, end))

    att_this = [r for r in attendance if in_range(r.date, this_start, this_end)]
    att_last = [r for r in attendance if in_range(r.date, last_start, last_end)]

    hours_this = attended_hours(att_this, subjects)
    hours_last = attended_hours(att_last, subjects)

    return {
        "week_start": this_start.date().isoformat(),
        "week_end": this_end.date().isoformat(),
        "week_label": f"{this_start:%d/%m} - {this_end:%d/%m}",
        "tasks_completed": _delta(completed_in(this_start, this_end), completed_in(last_start, last_end)),
        "attendance_records": _delta(len(att_this), len(att_last)),
        "present": _delta(sum(1 for r in att_this if r.present), sum(1 for r in att_last if r.present)),
        "hours_attended": _delta(hours_this, hours_last, one_decimal=True),
        "avg_grade": _plain_average(activities),
        "pending_count": sum(1 for a in activities if not a.is_completed),
        "overdue_count": sum(1 for a in activities if is_overdue(a, now)),
    }


# ----------------------------
# 8) ALERTS + GOALS
# ----------------------------

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def schedule_conflicts(subjects: List[Subject]) -> List[Dict[str, object]]:
    """Pairs of weekly entries on the same day whose [start, end) ranges overlap."""
    entries = [(s, sch) for s in subjects for sch in s.schedules]
    conflicts: List[Dict[str, object]] = []
    for i in range(len(entries)):
        for j in range(i + 1, len(entries)):
            (sa, a), (sb, b) = entries[i], entries[j]
            if a.day != b.day:
                continue
            a_start, a_end = _clock_hours(a.start_time), _clock_hours(a.end_time)
            b_start, b_end = _clock_hours(b.start_time), _clock_hours(b.end_time)
            if None in (a_start, a_end, b_start, b_end):
                continue
            if a_start < b_end and b_start < a_end:
                conflicts.append({
                    "first_id": sa.id,
                    "first_name": sa.name,
                    "second_id": sb.id,
                    "second_name": sb.name,
                    "day": a.day,
                })
    return conflicts


def dashboard_alerts(subjects: List[Subject], activities: List[Activity], attendance: List[AttendanceRecord],
                     now: Optional[datetime] = None) -> List[Dict[str, object]]:
    now = _now(now)
    alerts: List[Dict[str, object]] = []

    overdue = [a for a in activities if is_overdue(a, now)]
    if overdue:
        n = len(overdue)
        description = ", ".join(a.title for a in overdue[:2])
        if n > 2:
            description += f" +{n - 2}"
        alerts.append({
            "id": "overdue",
            "title": f"{n} overdue task{'s' if n > 1 else ''}",
            "description": description,
            "severity": "high",
        })

    for s in subjects:
        records = [r for r in attendance if r.subject_id == s.id]
        if len(records) < 2:
            continue
        pct = round_half_up(_presence_rate(records))
        if pct < 75:
            alerts.append({
                "id": f"att-{s.id}",
                "title": f"Critical attendance: {s.name}",
                "description": f"Only {pct}% - at risk of failing for absences",
                "severity": "high",
            })

    grades_by_subject: Dict[str, List[float]] = {}
    for a in _graded(activities):
        grades_by_subject.setdefault(a.subject_id, []).append(_grade(a))
    for subject_id, grades in grades_by_subject.items():
        avg = sum(grades) / len(grades)
        subject = _find_subject(subjects, subject_id)
        if avg < 6 and subject is not None:
            alerts.append({
                "id": f"grade-{subject_id}",
                "title": f"Low grade: {subject.name}",
                "description": f"Average {avg:.1f} - below the recommended minimum",
                "severity": "high" if avg < 4 else "medium",
            })

    for c in schedule_conflicts(subjects):
        alerts.append({
            "id": f"conflict-{c['first_id']}-{c['second_id']}-{c['day']}",
            "title": "Schedule conflict",
            "description": f"{c['first_name']} and {c['second_name']} overlap",
            "severity": "medium",
        })

    alerts.sort(key=lambda x: SEVERITY_ORDER[x["severity"]])
    return alerts


def weekly_goals(subjects: List[Subject], activities: List[Activity], weekly_hours_goal: float = 20.0,
                 now: Optional[datetime] = None) -> Dict[str, object]:
    now = _now(now)
    total_hours = sum(schedule_hours(sch) for s in subjects for sch in s.schedules)

    goal_percent = None
    if weekly_hours_goal > 0:
        goal_percent = min(100, round_half_up(total_hours / weekly_hours_goal * 100))

    dow = schedule_day(now)
    days_until_friday = 5 - dow if dow <= 5 else 6

    progress = []
    for s in subjects:
        own = [a for a in activities if a.subject_id == s.id]
        if not own:
            continue
        completed = sum(1 for a in own if a.is_completed)
        progress.append({
            "subject_id": s.id,
            "subject_name": s.name,
            "completed": completed,
            "total": len(own),
            "percent": round_half_up(completed / len(own) * 100),
        })
    progress.sort(key=lambda x: x["percent"])

    return {
        "weekly_hours": total_hours,
        "weekly_hours_goal": weekly_hours_goal,
        "goal_percent": goal_percent,
        "days_until_friday": days_until_friday,
        "hours_left": days_until_friday * 24 + (23 - now.hour),
        "subjects": progress,
    }


# ----------------------------
# 9) GAMIFICATION (XP / levels / streak)
# ----------------------------

LEVEL_THRESHOLDS = [0, 100, 250, 500, 800, 1200, 1700, 2300, 3000, 4000, 5000]
LEVEL_TITLES = [
    "Freshman", "Student", "Diligent", "Dedicated", "Veteran",
    "Standout", "Excellence", "Master", "Legend", "Genius", "Transcendent",
]

# (id, title, metric, target, rarity)
ACHIEVEMENTS = [
    ("streak-3", "First Spark", "streak", 3, "bronze"),
    ("streak-7", "Week on Fire", "streak", 7, "silver"),
    ("streak-30", "Unstoppable", "streak", 30, "diamond"),
    ("tasks-5", "Productive", "completed", 5, "bronze"),
    ("tasks-20", "Task Machine", "completed", 20, "silver"),
    ("tasks-50", "Task Legend", "completed", 50, "gold"),
    ("notes-10", "Note Taker", "notes", 10, "bronze"),
    ("notes-50", "Scribe", "notes", 50, "silver"),
    ("grade-7", "Above Average", "avg_grade", 7, "silver"),
    ("grade-9", "Academic Excellence", "avg_grade", 9, "diamond"),
    ("attend-20", "Present!", "present", 20, "bronze"),
    ("attend-100", "Regular", "present", 100, "gold"),
    ("score-80", "High Performer", "score", 80, "gold"),
    ("score-95", "Perfection", "score", 95, "diamond"),
]

ACHIEVEMENT_CATEGORIES = {
    "streak": "streak",
    "completed": "tasks",
    "notes": "notes",
    "avg_grade": "grades",
    "present": "attendance",
    "score": "grades",
}


def experience_points(activities: List[Activity], attendance: List[AttendanceRecord],
                      score_total: int, notes_count: int = 0) -> int:
    completed = [a for a in activities if a.is_completed]
    xp = len(completed) * 10
    xp += sum(5 for a in completed if a.grade is not None and _grade(a) >= 7)
    xp += sum(3 for r in attendance if r.present)
    xp += notes_count * 2
    xp += int(math.floor(score_total * 2))
    return xp


def level_for(xp: int) -> Dict[str, object]:
    level = 0
    for i, threshold in enumerate(LEVEL_THRESHOLDS):
        if xp >= threshold:
            level = i
    current = LEVEL_THRESHOLDS[level]
    # past the last threshold every level is another 1000 XP wide
    nxt = LEVEL_THRESHOLDS[level + 1] if level + 1 < len(LEVEL_THRESHOLDS) else current + 1000
    xp_in_level = xp - current
    xp_for_next = nxt - current
    return {
        "level": level,
        "title": LEVEL_TITLES[level],
        "xp_in_level": xp_in_level,
        "xp_for_next": xp_for_next,
        "progress": min(100, round_half_up(xp_in_level / xp_for_next * 100)),
    }


def productivity_streak(activities: List[Activity], attendance: List[AttendanceRecord],
                        now: Optional[datetime] = None) -> int:
    """
    Consecutive productive days ending today or yesterday.
    A day is productive if the student was present in class or completed
    an activity on it (completion day is updated_at, falling back to deadline).
    """
    today = _now(now).date()
    days = set()
    for r in attendance:
        when = parse_when(r.date)
        if r.present and when is not None:
            days.add(when.date())
    for a in activities:
        when = parse_when(a.updated_at) or parse_when(a.deadline)
        if a.is_completed and when is not None:
            days.add(when.date())

    # completions dated in the future (deadline fallback) do not break the streak
    days = sorted((d for d in days if d <= today), reverse=True)
    if not days or days[0] < today - timedelta(days=1):
        return 0

    streak = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def gamification(activities: List[Activity], attendance: List[AttendanceRecord], score_total: int,
                 now: Optional[datetime] = None, notes_count: int = 0) -> Dict[str, object]:
    streak = productivity_streak(activities, attendance, now)
    xp = experience_points(activities, attendance, score_total, notes_count)
    avg_grade = _plain_average(activities)

    metrics = {
        "streak": streak,
        "completed": sum(1 for a in activities if a.is_completed),
        "notes": notes_count,
        "avg_grade": avg_grade,
        "present": sum(1 for r in attendance if r.present),
        "score": score_total,
    }

    achievements = []
    for aid, title, metric, target, rarity in ACHIEVEMENTS:
        value = metrics[metric]
        if metric == "avg_grade":
            # averages are shown as-is, never capped at the target
            current = 0 if value is None else round_half_up(value * 10) / 10
            unlocked = value is not None and value >= target
            progress = 0 if value is None else min(100.0, value / target * 100)
        else:
            current = min(value, target)
            unlocked = value >= target
            progress = min(100.0, value / target * 100)
        achievements.append({
            "id": aid,
            "title": title,
            "category": ACHIEVEMENT_CATEGORIES[metric],
            "rarity": rarity,
            "current": current,
            "target": target,
            "progress": progress,
            "unlocked": unlocked,
        })

    return {
        "xp": xp,
        "level": level_for(xp),
        "streak": streak,
        "achievements": achievements,
        "unlocked_count": sum(1 for x in achievements if x["unlocked"]),
    }


# ----------------------------
# 10) DASHBOARD SUMMARY
# ----------------------------

def dashboard_summary(subjects: List[Subject], activities: List[Activity], attendance: List[AttendanceRecord],
                      settings: Optional[Settings] = None, now: Optional[datetime] = None,
                      notes_count: int = 0) -> Dict[str, object]:
    settings = settings or Settings()
    now = _now(now)

    risks = classify_risks(subjects, activities, attendance,
                           settings.target_grade, settings.target_attendance, now)
    pending = [a for a in activities if not a.is_completed]
    score = academic_score(activities, attendance, settings.target_grade, settings.target_attendance, now)

    return {
        "score": score,
        "gamification": gamification(activities, attendance, score["total"], now, notes_count),
        "performance": performance_summary(activities, attendance, now),
        "risks": risks,
        "overall_risk": overall_risk_level(risks),
        "priorities": rank_by_priority(pending, subjects, activities, attendance, settings.academic_status, now),
        "grades": grades_report(subjects, activities, settings.target_grade),
        "weekly": weekly_report(subjects, activities, attendance, now),
        "alerts": dashboard_alerts(subjects, activities, attendance, now),
        "goals": weekly_goals(subjects, activities, settings.weekly_hours_goal, now),
    }
