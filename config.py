import os


class Config:
    """
    Central configuration for the UniFlow engine API.

    Uses environment variables in production,
    and safe fallbacks locally.
    """

    # Tokens are issued by the hosted auth provider; we only verify them.
    # In production this MUST be the provider's JWT secret
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_DECODE_AUDIENCE = os.environ.get("JWT_DECODE_AUDIENCE") or None

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Profile defaults when the caller sends no settings
    DEFAULT_TARGET_GRADE = float(os.environ.get("DEFAULT_TARGET_GRADE", "7.0"))
    DEFAULT_TARGET_ATTENDANCE = float(os.environ.get("DEFAULT_TARGET_ATTENDANCE", "75"))
    DEFAULT_WEEKLY_HOURS_GOAL = float(os.environ.get("DEFAULT_WEEKLY_HOURS_GOAL", "20"))

    # External difficulty classifier (OpenAI-compatible gateway)
    DIFFICULTY_API_KEY = os.environ.get("DIFFICULTY_API_KEY", "")
    DIFFICULTY_BASE_URL = os.environ.get("DIFFICULTY_BASE_URL") or None
    DIFFICULTY_MODEL = os.environ.get("DIFFICULTY_MODEL", "gpt-4o-mini")
