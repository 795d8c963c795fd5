"""Hour estimates for imported tasks that arrive without one."""

from __future__ import annotations

import math
import re
from typing import Mapping, Sequence

TASK_HOURS = {
    "reading": 1.5,
    "assignment": 3,
    "quiz": 2.5,
    "exam": 8,
    "midterm": 10,
    "final": 12,
    "project": 10,
    "study": 2,
    "break": 0.25,
    "lecture": 1.5,
    "lab": 4,
    "tutorial": 1,
    "discussion": 1,
    "video": 1,
    "presentation": 3,
    "activity": 0.5,
    "admin": 0.25,
}
DEFAULT_HOURS = 3
MINIMUM_HOURS = 0.5

_QUESTION_COUNT = re.compile(r"\((\d+)\s*(questions|points)\)")


def base_hours(task_type: str) -> float:
    return TASK_HOURS.get(task_type, DEFAULT_HOURS)


def _quiz_hours(question_count: int) -> float:
    if question_count <= 10:
        return 1
    if question_count <= 25:
        return 1.5
    if question_count <= 50:
        return 2
    return 2.5


def estimate_task_hours(
    task_type: str,
    title: str = "",
    points: float = 0,
    submission_types: Sequence[str] = (),
    default_hours_per_type: Mapping[str, float] | None = None,
) -> float:
    """
    Estimate study hours for a task.

    A positive per-type override from the user always wins. Otherwise the base
    hours for the type are adjusted by title keywords, quiz question counts,
    LMS submission types and the point value, then rounded to the nearest half
    hour (never below half an hour).
    """
    override = (default_hours_per_type or {}).get(task_type)
    if override and override > 0:
        return float(override)

    hours = base_hours(task_type)
    lowered = (title or "").lower()

    if "one-minute" in lowered or "1-minute" in lowered:
        return MINIMUM_HOURS
    if "quick" in lowered or "short" in lowered:
        hours *= 0.5

    if task_type == "quiz":
        match = _QUESTION_COUNT.search(lowered)
        if match:
            return _quiz_hours(int(match.group(1)))

    if task_type == "exam":
        if "midterm" in lowered:
            return 8
        if "final" in lowered:
            return 10

    if submission_types:
        if "online_quiz" in submission_types:
            return 2.5
        if "discussion_topic" in submission_types:
            return 0.5
        if "online_upload" in submission_types and task_type == "assignment":
            return 3
        if "external_tool" in submission_types:
            return 2

    if points and points > 0:
        if points >= 100:
            hours *= 1.5
        elif points >= 50:
            hours *= 1.2
        elif points <= 10:
            hours *= 0.5

    # Half-up rounding to the nearest half hour
    return max(MINIMUM_HOURS, math.floor(hours * 2 + 0.5) / 2)
