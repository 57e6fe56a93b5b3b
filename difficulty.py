"""
Client for the external AI difficulty classifier.

The classifier looks at an activity (title, type, subject, deadline, weight)
and answers with a difficulty hint. The hint is optional: when the call
fails for any reason we hand back a fallback with difficulty=None, and the
priority ranker uses its neutral default for it.
"""
from __future__ import annotations

import json
import logging
import typing as t

from openai import OpenAI, OpenAIError

from models import Activity, DIFFICULTIES

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an academic assistant that rates how hard university activities are.

Reply with ONLY valid JSON (no markdown, no backticks) shaped like:
{
  "difficulty": "high" | "medium" | "low",
  "priority": "high" | "medium" | "low",
  "reason": "one short sentence"
}

Guidelines:
- Exams are usually harder than exercises
- Seminars need significant preparation
- Subjects such as calculus, physics, chemistry, programming and statistics are harder
- Assignments with a high weight in the grade are more critical
- Use the subject name to infer complexity
- Short deadline + high difficulty = high priority"""

FALLBACK_REASON = "automatic analysis unavailable"


def fallback_analysis() -> dict[str, t.Any]:
    return {"difficulty": None, "priority": None, "reason": FALLBACK_REASON}


def _level(value: t.Any) -> t.Optional[str]:
    if isinstance(value, str) and value.strip().lower() in DIFFICULTIES:
        return value.strip().lower()
    return None


def parse_analysis(content: str) -> dict[str, t.Any]:
    """Parse the model's reply, tolerating a ```json fenced block.

    :param content: Raw message content returned by the model.
    :return: Dict with normalized difficulty, priority and reason.
    :raises ValueError: If the content is not a JSON object.
    """
    text = (content or "").strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("classifier reply is not a JSON object")

    return {
        "difficulty": _level(data.get("difficulty")),
        "priority": _level(data.get("priority")),
        "reason": str(data.get("reason") or ""),
    }


def build_user_prompt(activity: Activity, subject_name: str = "") -> str:
    return "\n".join([
        f'Activity: "{activity.title}"',
        f"Type: {activity.activity_type}",
        f"Subject: {subject_name or 'not provided'}",
        f"Deadline: {activity.deadline}",
        f"Weight: {activity.effective_weight:g}",
    ])


class DifficultyClassifier:
    """Thin wrapper around an OpenAI-compatible chat completions endpoint."""

    def __init__(self, client: t.Any, model: str) -> None:
        self.client = client
        self.model = model

    @classmethod
    def from_config(cls, config: t.Mapping[str, t.Any]) -> "DifficultyClassifier":
        api_key = config.get("DIFFICULTY_API_KEY")
        if not api_key:
            raise RuntimeError("DIFFICULTY_API_KEY is not set.")
        client = OpenAI(api_key=api_key, base_url=config.get("DIFFICULTY_BASE_URL"))
        return cls(client, config.get("DIFFICULTY_MODEL", "gpt-4o-mini"))

    def classify(self, activity: Activity, subject_name: str = "") -> dict[str, t.Any]:
        """Ask the classifier for a difficulty hint.

        :param activity: The activity to rate.
        :param subject_name: Name of the owning subject, if known.
        :return: Analysis dict; difficulty is None when the call failed.
        """
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(activity, subject_name)},
                ],
            )
            content = completion.choices[0].message.content or ""
            return parse_analysis(content)
        except (OpenAIError, ValueError, IndexError, AttributeError) as e:
            logger.warning("difficulty classifier unavailable for activity %s: %s", activity.id, e)
            return fallback_analysis()
