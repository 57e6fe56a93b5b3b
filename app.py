# app.py
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager, jwt_required
import os

from config import Config
from difficulty import DifficultyClassifier, fallback_analysis
from engine import (
    academic_score,
    classify_risks,
    dashboard_alerts,
    dashboard_summary,
    gamification,
    grades_report,
    overall_risk_level,
    parse_when,
    performance_summary,
    rank_by_priority,
    weekly_goals,
    weekly_report,
)
from models import (
    Activity,
    Settings,
    activity_from_dict,
    attendance_from_dict,
    settings_from_dict,
    subject_from_dict,
)

app = Flask(__name__)
app.config.from_object(Config)

# Tokens come from the hosted auth provider, this API only verifies them
jwt = JWTManager(app)

CORS(
    app,
    resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}},
    allow_headers=["Content-Type", "Authorization"],
    methods=["GET", "POST", "OPTIONS"],
)

_classifier = None


class PayloadError(ValueError):
    pass


# ----------------------------
# Helpers
# ----------------------------

def get_classifier() -> DifficultyClassifier:
    global _classifier
    if _classifier is None:
        _classifier = DifficultyClassifier.from_config(app.config)
    return _classifier


def _default_settings() -> Settings:
    return Settings(
        target_grade=float(app.config["DEFAULT_TARGET_GRADE"]),
        target_attendance=float(app.config["DEFAULT_TARGET_ATTENDANCE"]),
        weekly_hours_goal=float(app.config["DEFAULT_WEEKLY_HOURS_GOAL"]),
    )


def _decode_list(body: dict, key: str, decoder):
    items = body.get(key) or []
    if not isinstance(items, list):
        raise PayloadError(f"{key} must be a list")
    out = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise PayloadError(f"{key}[{i}] must be an object")
        try:
            out.append(decoder(item))
        except (ValueError, TypeError) as e:
            raise PayloadError(f"{key}[{i}]: {e}")
    return out


def _simulated_grades(body: dict) -> dict:
    """What-if grades keyed by subject id, e.g. {"math": 8.5}."""
    raw = body.get("simulatedGrades") or {}
    if not isinstance(raw, dict):
        raise PayloadError("simulatedGrades must be an object")
    out = {}
    for subject_id, grade in raw.items():
        if isinstance(grade, bool) or not isinstance(grade, (int, float)):
            raise PayloadError(f"simulatedGrades.{subject_id} must be a number")
        out[str(subject_id)] = float(grade)
    return out


def _notes_count(body: dict) -> int:
    count = body.get("notesCount", 0) or 0
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise PayloadError("notesCount must be a non-negative integer")
    return count


def _snapshot():
    """Decode the subjects / activities / attendance snapshot sent by the client."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise PayloadError("JSON object body required")

    try:
        settings = settings_from_dict(body.get("settings"), _default_settings())
    except (ValueError, TypeError) as e:
        raise PayloadError(f"settings: {e}")

    now = None
    if body.get("now"):
        now = parse_when(body["now"])
        if now is None:
            raise PayloadError("now must be an ISO date or datetime")

    return {
        "subjects": _decode_list(body, "subjects", subject_from_dict),
        "activities": _decode_list(body, "activities", activity_from_dict),
        "attendance": _decode_list(body, "attendance", attendance_from_dict),
        "settings": settings,
        "now": now,
        "simulated": _simulated_grades(body),
        "notes_count": _notes_count(body),
    }


def activity_to_dict(a: Activity) -> dict:
    # camelCase for the frontend, same shape it sent
    return {
        "id": a.id,
        "subjectId": a.subject_id,
        "title": a.title,
        "deadline": a.deadline,
        "status": a.status,
        "activityType": a.activity_type,
        "grade": a.grade,
        "weight": a.weight,
        "aiDifficulty": a.ai_difficulty,
        "updatedAt": a.updated_at,
    }


def _ranked_json(ranked):
    return [{**activity_to_dict(x["activity"]), "smartPriority": x["priority"]} for x in ranked]


@app.errorhandler(PayloadError)
def bad_payload(e):
    app.logger.warning("rejected payload on %s: %s", request.path, e)
    return jsonify({"error": str(e)}), 400


# ----------------------------
# Health
# ----------------------------

@app.get("/health")
def health():
    return jsonify({"ok": True}), 200


# ----------------------------
# Scores
# ----------------------------

@app.post("/score")
@jwt_required()
def score():
    snap = _snapshot()
    s = snap["settings"]
    result = academic_score(snap["activities"], snap["attendance"],
                            s.target_grade, s.target_attendance, snap["now"])
    return jsonify(result), 200


@app.post("/performance")
@jwt_required()
def performance():
    snap = _snapshot()
    return jsonify(performance_summary(snap["activities"], snap["attendance"], snap["now"])), 200


@app.post("/risk")
@jwt_required()
def risk():
    snap = _snapshot()
    s = snap["settings"]
    risks = classify_risks(snap["subjects"], snap["activities"], snap["attendance"],
                           s.target_grade, s.target_attendance, snap["now"])
    return jsonify({"overall_level": overall_risk_level(risks), "subjects": risks}), 200


@app.post("/priority")
@jwt_required()
def priority():
    snap = _snapshot()
    ranked = rank_by_priority(snap["activities"], snap["subjects"], snap["activities"],
                              snap["attendance"], snap["settings"].academic_status, snap["now"])
    return jsonify(_ranked_json(ranked)), 200


@app.post("/grades")
@jwt_required()
def grades():
    snap = _snapshot()
    return jsonify(grades_report(snap["subjects"], snap["activities"], snap["settings"].target_grade,
                                 snap["simulated"])), 200


@app.post("/weekly-report")
@jwt_required()
def weekly():
    snap = _snapshot()
    return jsonify(weekly_report(snap["subjects"], snap["activities"], snap["attendance"], snap["now"])), 200


@app.post("/alerts")
@jwt_required()
def alerts():
    snap = _snapshot()
    return jsonify(dashboard_alerts(snap["subjects"], snap["activities"], snap["attendance"], snap["now"])), 200


@app.post("/goals")
@jwt_required()
def goals():
    snap = _snapshot()
    return jsonify(weekly_goals(snap["subjects"], snap["activities"],
                                snap["settings"].weekly_hours_goal, snap["now"])), 200


@app.post("/gamification")
@jwt_required()
def gamification_stats():
    snap = _snapshot()
    s = snap["settings"]
    score = academic_score(snap["activities"], snap["attendance"],
                           s.target_grade, s.target_attendance, snap["now"])
    return jsonify(gamification(snap["activities"], snap["attendance"], score["total"],
                                snap["now"], snap["notes_count"])), 200


@app.post("/dashboard")
@jwt_required()
def dashboard():
    snap = _snapshot()
    summary = dashboard_summary(snap["subjects"], snap["activities"], snap["attendance"],
                                snap["settings"], snap["now"], snap["notes_count"])
    summary["priorities"] = _ranked_json(summary["priorities"])
    return jsonify(summary), 200


# ----------------------------
# Difficulty hint (external classifier)
# ----------------------------

@app.post("/difficulty")
@jwt_required()
def difficulty():
    body = request.get_json(silent=True) or {}
    if not isinstance(body.get("activity"), dict):
        raise PayloadError("activity object required")
    try:
        activity = activity_from_dict(body["activity"])
    except (ValueError, TypeError) as e:
        raise PayloadError(f"activity: {e}")

    try:
        classifier = get_classifier()
    except RuntimeError as e:
        app.logger.warning("difficulty classifier not configured: %s", e)
        return jsonify(fallback_analysis()), 200

    return jsonify(classifier.classify(activity, str(body.get("subjectName") or ""))), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "5000"))
    app.run(host="0.0.0.0", port=port)
