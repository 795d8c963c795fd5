from datetime import datetime, timedelta

import pytest

from studyplanner.models.task import TaskType
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.priority import (
    priority_of,
    required_energy,
    sort_by_priority,
    urgency_score,
    whole_days_between,
)

NOW = datetime(2024, 3, 4, 8, 0)


def _task(task_id: str, **overrides) -> ScheduleTask:
    data = {
        "id": task_id,
        "title": f"Task {task_id}",
        "type": TaskType.ASSIGNMENT,
        "due_date": NOW + timedelta(days=5),
        "estimated_duration": 60,
    }
    data.update(overrides)
    return ScheduleTask(**data)


@pytest.mark.parametrize(
    ("days", "expected"),
    [(20, 20), (10, 40), (5, 60), (2, 80), (1, 95), (0, 100), (-3, 100)],
)
def test_urgency_steps(days, expected):
    assert urgency_score(days) == expected


def test_whole_days_truncates_partial_days():
    assert whole_days_between(NOW + timedelta(days=1, hours=22), NOW) == 1
    assert whole_days_between(NOW + timedelta(hours=23), NOW) == 0
    assert whole_days_between(NOW - timedelta(hours=30), NOW) == -1


def test_priority_combines_weighted_factors():
    exam = _task(
        "exam",
        type=TaskType.EXAM,
        due_date=NOW + timedelta(days=1, hours=2),
        priority=50,
        difficulty=50,
    )

    # 95 * 0.4 + 50 * 0.3 + 50 * 0.2 + 100 * 0.1
    assert priority_of(exam, NOW) == pytest.approx(73)


def test_sort_puts_urgent_exam_before_relaxed_reading():
    reading = _task("reading", type=TaskType.READING, due_date=NOW + timedelta(days=20))
    exam = _task("exam", type=TaskType.EXAM, due_date=NOW + timedelta(days=1))

    ordered = sort_by_priority([reading, exam], NOW)

    assert [task.id for task in ordered] == ["exam", "reading"]


def test_sort_keeps_input_order_for_equal_scores():
    first = _task("a")
    second = _task("b")

    assert [task.id for task in sort_by_priority([first, second], NOW)] == ["a", "b"]
    assert [task.id for task in sort_by_priority([second, first], NOW)] == ["b", "a"]


def test_required_energy_grows_with_difficulty_and_caps_at_100():
    assert required_energy(_task("r", type=TaskType.READING, difficulty=0)) == pytest.approx(50)
    assert required_energy(_task("a", difficulty=50)) == pytest.approx(85)
    assert required_energy(_task("e", type=TaskType.EXAM, difficulty=50)) == pytest.approx(100)
