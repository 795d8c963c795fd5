from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

from studyplanner.models.task import TaskType
from studyplanner.schemas.task import ScheduleTask

PRIORITY_WEIGHTS = {
    "urgency": 0.4,
    "priority": 0.3,
    "difficulty": 0.2,
    "type": 0.1,
}

TYPE_PRIORITY = {
    TaskType.EXAM: 100,
    TaskType.QUIZ: 90,
    TaskType.PROJECT: 80,
    TaskType.ASSIGNMENT: 70,
    TaskType.READING: 50,
    TaskType.STUDY: 40,
    TaskType.BREAK: 10,
}

TYPE_ENERGY_REQUIREMENT = {
    TaskType.EXAM: 90,
    TaskType.QUIZ: 80,
    TaskType.PROJECT: 75,
    TaskType.ASSIGNMENT: 70,
    TaskType.READING: 50,
    TaskType.STUDY: 60,
    TaskType.BREAK: 10,
}


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """Full days from ``earlier`` to ``later``, truncated toward zero."""
    return math.trunc((later - earlier).total_seconds() / 86400)


def urgency_score(days_until_due: int) -> float:
    if days_until_due > 14:
        return 20
    if days_until_due > 7:
        return 40
    if days_until_due > 3:
        return 60
    if days_until_due > 1:
        return 80
    if days_until_due == 1:
        return 95
    return 100


def priority_of(task: ScheduleTask, as_of: datetime) -> float:
    """Ordering score (0-100) from urgency, caller priority, difficulty and type."""
    urgency = urgency_score(whole_days_between(task.due_date, as_of))
    type_score = TYPE_PRIORITY.get(task.type, 50)

    score = (
        urgency * PRIORITY_WEIGHTS["urgency"]
        + task.priority * PRIORITY_WEIGHTS["priority"]
        + task.difficulty * PRIORITY_WEIGHTS["difficulty"]
        + type_score * PRIORITY_WEIGHTS["type"]
    )
    return min(100.0, max(0.0, score))


def sort_by_priority(tasks: Sequence[ScheduleTask], as_of: datetime) -> list[ScheduleTask]:
    # sorted() is stable, so equal scores keep the caller's order
    return sorted(tasks, key=lambda task: priority_of(task, as_of), reverse=True)


def required_energy(task: ScheduleTask) -> float:
    base = TYPE_ENERGY_REQUIREMENT.get(task.type, 60)
    return min(100.0, base + task.difficulty * 0.3)
