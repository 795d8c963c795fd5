from datetime import date, datetime, timezone

import pytest

from studyplanner.models.task import TaskType
from studyplanner.models.time_block import BlockType
from studyplanner.schemas.preferences import StudyDays
from studyplanner.schemas.schedule import StudyBlock
from studyplanner.services.conversion import (
    build_scheduler_config,
    energy_model_for,
    from_time_block,
    parse_hour,
    to_busy_intervals,
    to_local_naive,
    to_schedule_task,
    to_time_block_fields,
)


def test_task_record_with_defaults_and_aliases():
    record = {
        "id": 7,
        "title": "Midterm prep",
        "type": "midterm",
        "dueDate": "2024-03-06T17:00:00",
        "estimatedHours": 2,
        "priority": "high",
        "difficulty": 150,
        "canSplit": False,
    }

    task = to_schedule_task(record)

    assert task.id == "7"
    assert task.type == TaskType.EXAM
    assert task.due_date == datetime(2024, 3, 6, 17, 0)
    assert task.estimated_duration == 120
    assert task.priority == 50
    assert task.difficulty == 100
    assert task.can_split is False
    assert task.minimum_block_size == 25
    assert task.completed is False


def test_unknown_type_and_completed_status():
    task = to_schedule_task(
        {"id": "a", "title": "Thing", "type": "mystery", "due_date": datetime(2024, 3, 6), "status": "completed"}
    )

    assert task.type == TaskType.ASSIGNMENT
    assert task.completed is True


def test_per_type_hours_override_wins():
    record = {"id": 1, "title": "Chapter 4", "type": "reading", "due_date": datetime(2024, 3, 6), "estimated_hours": 1}

    task = to_schedule_task(record, default_hours_per_type={"reading": 3})

    assert task.estimated_duration == 180


def test_missing_hours_fall_back_to_estimate():
    record = {"id": 1, "title": "Chapter 4", "type": "reading", "due_date": datetime(2024, 3, 6)}

    assert to_schedule_task(record).estimated_duration == 90


def test_zero_hours_become_one_minute():
    record = {"id": 1, "title": "Check-in", "type": "study", "due_date": datetime(2024, 3, 6), "estimated_hours": 0}

    assert to_schedule_task(record).estimated_duration == 1


def test_missing_due_date_is_rejected():
    with pytest.raises(ValueError):
        to_schedule_task({"id": 1, "title": "No date", "due_date": "whenever"})


def test_timestamps_become_naive_local_time():
    assert to_local_naive("2024-03-06T15:00:00Z") == datetime(2024, 3, 6, 15, 0)
    assert to_local_naive("2024-03-06T15:00:00+02:00", timezone.utc) == datetime(2024, 3, 6, 13, 0)
    assert to_local_naive(date(2024, 3, 6)) == datetime(2024, 3, 6, 23, 59)
    assert to_local_naive("not a date") is None
    assert to_local_naive(None) is None


def test_date_only_due_string_means_end_of_day():
    task = to_schedule_task({"id": 3, "title": "Essay", "due_date": "2024-03-05"})

    assert task.due_date == datetime(2024, 3, 5, 23, 59)
    assert to_local_naive(" 2024-03-05 ") == to_local_naive(date(2024, 3, 5))
    assert to_local_naive("2024-13-45") is None


def test_busy_intervals_drop_malformed_records():
    records = [
        {"title": "Lecture", "start_time": "2024-03-04T10:00:00", "end_time": "2024-03-04T12:00:00"},
        {"title": "No end", "start_time": "2024-03-04T13:00:00"},
        {"title": "Backwards", "start": datetime(2024, 3, 4, 15), "end": datetime(2024, 3, 4, 14)},
        None,
    ]

    intervals = to_busy_intervals(records)

    assert [(i.start, i.end) for i in intervals] == [
        (datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 12))
    ]


@pytest.mark.parametrize(
    ("value", "expected"),
    [("09:30", 9), (14, 14), ("25:00", 7), ("", 7), (None, 7)],
)
def test_parse_hour(value, expected):
    assert parse_hour(value, 7) == expected


def test_scheduler_config_from_preferences():
    config = build_scheduler_config(
        {
            "study_start": "09:00",
            "study_end": "21:30",
            "preferred_study_times": {"afternoon": True, "unknown": True},
            "study_days": {"wednesday": False},
            "allow_weekend_study": False,
            "capacity_limit_percent": 0.6,
            "buffer_minutes": 5,
            "default_hours_per_type": {"exam": 6, "bad": "lots"},
        }
    )

    assert config.sleep_schedule.wake_time == 9
    assert config.sleep_schedule.bedtime == 21
    assert config.preferred_study_times.afternoon is True
    assert config.preferred_study_times.morning is False
    assert config.study_days == StudyDays(wednesday=False)
    assert config.allow_weekend_study is False
    assert config.capacity_limit_percent == pytest.approx(0.6)
    assert config.buffer_time == 5
    assert config.default_hours_per_type == {"exam": 6}


def test_scheduler_config_repairs_inverted_window():
    config = build_scheduler_config({"study_start": "22:00", "study_end": "06:00"})

    assert (config.sleep_schedule.wake_time, config.sleep_schedule.bedtime) == (22, 24)
    assert config.preferred_study_times is None
    assert config.study_days is None
    assert config.allow_weekend_study is True


def test_energy_model_from_stored_patterns():
    model = energy_model_for({"energy_patterns": [{"hour": 8, "energy_level": 99}]})

    assert model.energy_at(8, 1).energy_level == pytest.approx(99)
    assert energy_model_for({}).overrides == {}


def _study_block(task_id: str, task_type: TaskType) -> StudyBlock:
    return StudyBlock(
        id=f"block-{task_id}-202403041600",
        task_id=task_id,
        task_title="Work",
        task_type=task_type,
        start_time=datetime(2024, 3, 4, 16, 0),
        end_time=datetime(2024, 3, 4, 16, 50),
        energy_required=85,
        is_optimal=False,
        confidence=72.5,
    )


@pytest.mark.parametrize(
    ("task_type", "block_type"),
    [
        (TaskType.EXAM, BlockType.REVIEW),
        (TaskType.READING, BlockType.STUDY),
        (TaskType.ASSIGNMENT, BlockType.WORK),
        (TaskType.PROJECT, BlockType.WORK),
    ],
)
def test_time_block_fields_map_block_type(task_type, block_type):
    fields = to_time_block_fields(_study_block("12", task_type))

    assert fields["block_type"] == block_type.value
    assert fields["task_id"] == 12
    assert fields["is_manual"] is False
    assert fields["confidence"] == pytest.approx(72.5)


def test_time_block_fields_keep_non_numeric_task_ids_out():
    assert to_time_block_fields(_study_block("abc", TaskType.STUDY))["task_id"] is None


def test_from_time_block_round_trips_stored_rows():
    record = to_time_block_fields(_study_block("12", TaskType.EXAM))
    tasks = {
        "12": to_schedule_task({"id": 12, "title": "Final", "type": "exam", "due_date": datetime(2024, 3, 8)})
    }

    block = from_time_block(record, tasks)

    assert block == _study_block("12", TaskType.EXAM).copy(update={"task_title": "Final"})
    assert from_time_block({**record, "end_time": record["start_time"]}, tasks) is None
    assert from_time_block({**record, "task_id": None}, tasks) is None
