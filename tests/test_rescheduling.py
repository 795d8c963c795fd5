from datetime import datetime, timedelta

import pytest

from studyplanner.models.task import TaskType
from studyplanner.schemas.preferences import SchedulerConfig, SleepSchedule
from studyplanner.schemas.schedule import StudyBlock, TimeSlot
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.rescheduling import find_underscheduled, reschedule
from studyplanner.services.scheduling import generate_schedule
from studyplanner.services.slots import SessionLimits

NOW = datetime(2024, 3, 4, 8, 0)  # Monday
LIMITS = SessionLimits(buffer=10, min_session=25, preferred=50, max_session=60)


def _task(task_id: str, **overrides) -> ScheduleTask:
    data = {
        "id": task_id,
        "title": f"Task {task_id}",
        "type": TaskType.ASSIGNMENT,
        "due_date": NOW + timedelta(days=4),
        "estimated_duration": 150,
    }
    data.update(overrides)
    return ScheduleTask(**data)


def _block(task: ScheduleTask, start: datetime, minutes: int = 50) -> StudyBlock:
    return StudyBlock(
        id=f"block-{task.id}-{start:%Y%m%d%H%M}",
        task_id=task.id,
        task_title=task.title,
        task_type=task.type,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        energy_required=70,
        is_optimal=True,
        confidence=75,
    )


def _overlaps(a: StudyBlock, b: StudyBlock) -> bool:
    return a.start_time < b.end_time and b.start_time < a.end_time


def test_completed_task_blocks_are_removed_and_others_kept():
    essay = _task("essay", estimated_duration=150)
    quiz = _task("quiz", type=TaskType.QUIZ, estimated_duration=100, due_date=NOW + timedelta(days=3))
    initial = generate_schedule([essay, quiz], NOW, NOW + timedelta(days=4), now=NOW).blocks
    assert {block.task_id for block in initial} == {"essay", "quiz"}

    result = reschedule(["quiz"], [essay], initial, now=NOW)

    assert all(block.task_id != "quiz" for block in result)
    kept = [block for block in initial if block.task_id == "essay"]
    for block in kept:
        assert block in result
    assert len(result) == len(kept)


def test_underscheduled_task_gets_only_its_shortfall():
    essay = _task("essay", estimated_duration=150)
    kept = _block(essay, datetime(2024, 3, 4, 16, 0))

    result = reschedule([], [essay], [kept], now=NOW)

    essay_blocks = [block for block in result if block.task_id == "essay"]
    assert kept in essay_blocks
    assert sum(block.duration_minutes for block in essay_blocks) == pytest.approx(150)
    assert result == sorted(result, key=lambda block: block.start_time)
    for i, block in enumerate(result):
        assert block.start_time >= NOW or block == kept
        assert block.end_time <= essay.due_date
        for other in result[i + 1:]:
            assert not _overlaps(block, other)


def test_new_blocks_avoid_busy_time():
    essay = _task("essay", estimated_duration=100)
    busy = [TimeSlot(start=NOW, end=NOW + timedelta(days=1))]

    result = reschedule([], [essay], [], busy, now=NOW)

    assert sum(block.duration_minutes for block in result) == pytest.approx(100)
    for block in result:
        assert block.start_time >= NOW + timedelta(days=1)


def test_atomic_task_with_a_kept_block_is_left_alone():
    exam = _task("exam", type=TaskType.EXAM, can_split=False, estimated_duration=120)
    kept = _block(exam, datetime(2024, 3, 5, 10, 0), minutes=90)

    assert reschedule([], [exam], [kept], now=NOW) == [kept]


def test_shortfall_below_one_session_is_ignored():
    essay = _task("essay", estimated_duration=110)
    blocks = [
        _block(essay, datetime(2024, 3, 4, 16, 0)),
        _block(essay, datetime(2024, 3, 5, 16, 0)),
    ]

    pending = find_underscheduled([essay], blocks, now=NOW, horizon_end=NOW + timedelta(days=60), limits=LIMITS)

    assert pending == []


def test_find_underscheduled_skips_done_overdue_and_excluded_tasks():
    tasks = [
        _task("done", completed=True),
        _task("late", due_date=NOW - timedelta(hours=1)),
        _task("gone"),
        _task("open", estimated_duration=80),
    ]

    pending = find_underscheduled(
        tasks,
        [],
        now=NOW,
        horizon_end=NOW + timedelta(days=60),
        limits=LIMITS,
        excluded={"gone"},
    )

    assert [(item.task.id, item.remaining_minutes) for item in pending] == [("open", 80)]


def test_nothing_to_do_returns_kept_blocks_sorted():
    essay = _task("essay", estimated_duration=100)
    later = _block(essay, datetime(2024, 3, 6, 16, 0))
    earlier = _block(essay, datetime(2024, 3, 5, 16, 0))

    assert reschedule([], [essay], [later, earlier], now=NOW) == [earlier, later]


def test_kept_blocks_use_up_the_day_capacity():
    config = SchedulerConfig(
        sleep_schedule=SleepSchedule(wake_time=9, bedtime=21),
        capacity_limit_percent=0.1,
    )
    lecture_notes = _task("notes", estimated_duration=50, due_date=NOW + timedelta(days=20))
    kept = _block(lecture_notes, datetime(2024, 3, 4, 9, 30))
    essay = _task("essay", estimated_duration=50)

    result = reschedule([], [essay], [kept], config=config, now=NOW)

    added = [block for block in result if block.task_id == "essay"]
    assert len(added) == 1
    assert added[0].start_time.date() == datetime(2024, 3, 5).date()


def test_tasks_due_after_the_horizon_are_not_refilled():
    essay = _task("essay", estimated_duration=100, due_date=NOW + timedelta(days=5))
    reading = _task("reading", type=TaskType.READING, estimated_duration=50,
                    due_date=NOW + timedelta(hours=20))

    result = reschedule([], [essay, reading], [], now=NOW, horizon_days=1)

    assert {block.task_id for block in result} == {"reading"}
    assert all(block.end_time <= NOW + timedelta(days=1) for block in result)
