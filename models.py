"""
Data models consumed by the scoring engine.

These are read-only snapshots of what the hosted database stores.
The engine never creates or mutates them, it only reads.

JSON coming from the frontend is camelCase, so every model has a
*_from_dict helper that accepts that shape.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional


# ----------------------------
# ENUM VALUES
# ----------------------------

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
ACTIVITY_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED)

TYPE_EXAM = "exam"
TYPE_ASSIGNMENT = "assignment"
TYPE_SEMINAR = "seminar"
TYPE_EXERCISE = "exercise"
ACTIVITY_TYPES = (TYPE_EXAM, TYPE_ASSIGNMENT, TYPE_SEMINAR, TYPE_EXERCISE)

DIFFICULTY_HIGH = "high"
DIFFICULTY_MEDIUM = "medium"
DIFFICULTY_LOW = "low"
DIFFICULTIES = (DIFFICULTY_HIGH, DIFFICULTY_MEDIUM, DIFFICULTY_LOW)

FRESHMAN = "freshman"
RETURNING_STUDENT = "returning-student"
ACADEMIC_STATUSES = (FRESHMAN, RETURNING_STUDENT)


# ----------------------------
# DATA MODELS
# ----------------------------

@dataclass
class Schedule:
    day: int                   # 0=Sunday ... 6=Saturday
    start_time: str            # "HH:MM"
    end_time: str              # "HH:MM"


@dataclass
class Subject:
    id: str
    name: str
    color: str = ""
    schedules: List[Schedule] = field(default_factory=list)
    workload: float = 0.0      # total course hours


@dataclass
class Activity:
    id: str
    subject_id: str
    deadline: str              # ISO date, parsed lazily by the engine
    status: str = STATUS_PENDING
    activity_type: str = TYPE_ASSIGNMENT
    title: str = ""
    grade: Optional[float] = None      # 0–10 or unset
    weight: Optional[float] = None     # defaults to 1 when unset
    ai_difficulty: Optional[str] = None
    updated_at: Optional[str] = None   # last status change, i.e. when it was completed

    @property
    def effective_weight(self) -> float:
        return 1.0 if self.weight is None else float(self.weight)

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED


@dataclass
class AttendanceRecord:
    subject_id: str
    date: str
    present: bool


@dataclass
class Settings:
    target_grade: float = 7.0
    target_attendance: float = 75.0
    weekly_hours_goal: float = 20.0
    academic_status: str = FRESHMAN


# ----------------------------
# JSON DECODING
# ----------------------------

def _pick(d: Dict[str, object], *keys: str, default=None):
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _required(d: Dict[str, object], *keys: str) -> str:
    value = _pick(d, *keys)
    if value is None or str(value).strip() == "":
        raise ValueError(f"missing required field '{keys[0]}'")
    return str(value)


def _choice(value, allowed, name: str, default=None):
    if value is None or value == "":
        return default
    value = str(value)
    if value not in allowed:
        raise ValueError(f"invalid {name} '{value}' (expected one of {', '.join(allowed)})")
    return value


def _optional_float(value, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid {name} '{value}'")


def _optional_str(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def schedule_from_dict(d: Dict[str, object]) -> Schedule:
    day = int(_pick(d, "day", default=0))
    if not 0 <= day <= 6:
        raise ValueError(f"invalid schedule day {day}")
    return Schedule(
        day=day,
        start_time=str(_pick(d, "startTime", "start_time", default="")),
        end_time=str(_pick(d, "endTime", "end_time", default="")),
    )


def subject_from_dict(d: Dict[str, object]) -> Subject:
    return Subject(
        id=_required(d, "id"),
        name=str(_pick(d, "name", default="")),
        color=str(_pick(d, "color", default="")),
        schedules=[schedule_from_dict(s) for s in (_pick(d, "schedules", default=[]) or [])],
        workload=float(_pick(d, "workload", default=0.0)),
    )


def activity_from_dict(d: Dict[str, object]) -> Activity:
    return Activity(
        id=_required(d, "id"),
        subject_id=str(_pick(d, "subjectId", "subject_id", default="")),
        deadline=str(_pick(d, "deadline", default="")),
        status=_choice(_pick(d, "status"), ACTIVITY_STATUSES, "status", STATUS_PENDING),
        activity_type=_choice(_pick(d, "activityType", "activity_type"), ACTIVITY_TYPES,
                              "activity type", TYPE_ASSIGNMENT),
        title=str(_pick(d, "title", default="")),
        grade=_optional_float(_pick(d, "grade"), "grade"),
        weight=_optional_float(_pick(d, "weight"), "weight"),
        ai_difficulty=_choice(_pick(d, "aiDifficulty", "ai_difficulty"), DIFFICULTIES, "difficulty"),
        updated_at=_optional_str(_pick(d, "updatedAt", "updated_at")),
    )


TRUE_STRINGS = ("true", "1", "yes")
FALSE_STRINGS = ("false", "0", "no")


def _flag(value, name: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ValueError(f"invalid {name} '{value}' (expected true or false)")


def attendance_from_dict(d: Dict[str, object]) -> AttendanceRecord:
    return AttendanceRecord(
        subject_id=_required(d, "subjectId", "subject_id"),
        date=str(_pick(d, "date", default="")),
        present=_flag(_pick(d, "present"), "present"),
    )


def settings_from_dict(d: Optional[Dict[str, object]], defaults: Optional[Settings] = None) -> Settings:
    base = defaults or Settings()
    d = d or {}
    target_grade = _optional_float(_pick(d, "targetGrade", "target_grade"), "target grade")
    target_attendance = _optional_float(_pick(d, "targetAttendance", "target_attendance"), "target attendance")
    hours_goal = _optional_float(_pick(d, "weeklyHoursGoal", "weekly_hours_goal"), "weekly hours goal")
    return Settings(
        target_grade=base.target_grade if target_grade is None else target_grade,
        target_attendance=base.target_attendance if target_attendance is None else target_attendance,
        weekly_hours_goal=base.weekly_hours_goal if hours_goal is None else hours_goal,
        academic_status=_choice(_pick(d, "academicStatus", "academic_status"), ACADEMIC_STATUSES,
                                "academic status", base.academic_status),
    )
