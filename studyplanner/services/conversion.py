"""
Translation between application records and scheduler entities.

Records may be mappings (JSON payloads, fixtures) or attribute objects (ORM
rows). Missing and malformed values get the defaults the scheduler expects
instead of raising, except for a task without a usable due date.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time
from typing import Any, Iterable, Mapping
from zoneinfo import ZoneInfo

from studyplanner.models.task import TaskStatus, TaskType
from studyplanner.models.time_block import BlockType
from studyplanner.schemas.preferences import (
    PreferredStudyTimes,
    SchedulerConfig,
    SessionDuration,
    SleepSchedule,
    StudyDays,
)
from studyplanner.schemas.schedule import StudyBlock, TimeSlot
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.energy import EnergyModel
from studyplanner.services.slots import day_window_hours
from studyplanner.services.task_hours import estimate_task_hours

logger = logging.getLogger(__name__)

TYPE_ALIASES = {
    "midterm": TaskType.EXAM,
    "final": TaskType.EXAM,
    "test": TaskType.EXAM,
    "homework": TaskType.ASSIGNMENT,
}

BLOCK_TYPE_BY_TASK_TYPE = {
    TaskType.EXAM: BlockType.REVIEW,
    TaskType.READING: BlockType.STUDY,
}

DEFAULT_PRIORITY = 50
DEFAULT_DIFFICULTY = 50
DEFAULT_MINIMUM_BLOCK = 25


def _field(record: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name)
        else:
            value = getattr(record, name, None)
        if value is not None:
            return value
    return default


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _score(value: Any, default: float) -> float:
    number = _number(value)
    if number is None:
        return default
    return min(100.0, max(0.0, number))


def to_local_naive(value: Any, tz: ZoneInfo | None = None) -> datetime | None:
    """
    Parse a timestamp into the naive local wall-clock time the scheduler uses.

    Aware values are converted to ``tz`` (when given) before dropping tzinfo.
    A bare date means the end of that day.
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:  # "YYYY-MM-DD"
                value = date.fromisoformat(text)
            else:
                value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            if tz is not None:
                value = value.astimezone(tz)
            value = value.replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time(hour=23, minute=59))
    return None


def task_type_of(raw: Any) -> TaskType:
    if isinstance(raw, TaskType):
        return raw
    name = str(raw or "").strip().lower()
    if name in TYPE_ALIASES:
        return TYPE_ALIASES[name]
    try:
        return TaskType(name)
    except ValueError:
        return TaskType.ASSIGNMENT


def estimated_minutes(
    record: Any, default_hours_per_type: Mapping[str, float] | None = None
) -> float:
    raw_type = str(_field(record, "type", default="assignment")).strip().lower()
    override = _number((default_hours_per_type or {}).get(raw_type))
    if override is not None and override > 0:
        hours = override
    else:
        hours = _number(_field(record, "estimated_hours", "estimatedHours"))
        if hours is None:
            minutes = _number(_field(record, "estimated_duration", "estimatedDuration"))
            hours = minutes / 60 if minutes is not None else None
        if hours is None:
            hours = estimate_task_hours(
                raw_type,
                title=_field(record, "title", default=""),
                points=_number(_field(record, "points")) or 0,
                submission_types=_field(record, "submission_types", default=()),
            )
    # Guard against zero-length work
    return max(1.0, hours * 60)


def to_schedule_task(
    record: Any,
    *,
    default_hours_per_type: Mapping[str, float] | None = None,
    tz: ZoneInfo | None = None,
) -> ScheduleTask:
    raw_due = _field(record, "due_date", "dueDate")
    due_date = to_local_naive(raw_due, tz)
    if due_date is None:
        raise ValueError(f"Task {_field(record, 'id')!r} has no valid due date: {raw_due!r}")

    status = _field(record, "status")
    completed = _field(record, "completed") is True or str(status) == TaskStatus.COMPLETED.value
    course = _field(record, "course_id", "courseId")
    minimum_block = _number(_field(record, "minimum_block_size", "minimumBlockSize"))

    return ScheduleTask(
        id=str(_field(record, "id")),
        title=str(_field(record, "title", default="Untitled task")),
        course_id=str(course) if course is not None else None,
        type=task_type_of(_field(record, "type")),
        due_date=due_date,
        estimated_duration=estimated_minutes(record, default_hours_per_type),
        priority=_score(_field(record, "priority"), DEFAULT_PRIORITY),
        difficulty=_score(_field(record, "difficulty"), DEFAULT_DIFFICULTY),
        completed=completed,
        can_split=_field(record, "can_split", "canSplit") is not False,
        minimum_block_size=minimum_block if minimum_block and minimum_block > 0 else DEFAULT_MINIMUM_BLOCK,
    )


def to_busy_intervals(records: Iterable[Any], tz: ZoneInfo | None = None) -> list[TimeSlot]:
    intervals: list[TimeSlot] = []
    for record in records:
        if record is None:
            continue
        start = to_local_naive(_field(record, "start", "start_time", "startTime"), tz)
        end = to_local_naive(_field(record, "end", "end_time", "endTime"), tz)
        if start is None or end is None or end <= start:
            logger.warning(f"Dropping malformed busy interval {_field(record, 'id', 'title')!r}: {start} - {end}")
            continue
        intervals.append(TimeSlot(start=start, end=end))
    return intervals


def parse_hour(value: Any, fallback: int) -> int:
    """Hour from an int or an "HH:MM" string; anything outside 0-23 is the fallback."""
    if isinstance(value, str):
        value = value.split(":")[0]
    number = _number(value)
    if number is None:
        return fallback
    hour = int(number)
    return hour if 0 <= hour <= 23 else fallback


def _flags(model: type, raw: Any) -> Any:
    if raw is None:
        return None
    if isinstance(raw, model):
        return raw
    if isinstance(raw, Mapping):
        return model(**{key: bool(value) for key, value in raw.items() if key in model.__fields__})
    return None


def build_scheduler_config(preferences: Any) -> SchedulerConfig:
    """SchedulerConfig from stored preferences (a User row or a mapping)."""
    wake = parse_hour(_field(preferences, "study_start", "wake_time"), 7)
    bed = parse_hour(_field(preferences, "study_end", "bedtime"), 23)
    wake, bed = day_window_hours(wake, bed)

    session = SessionDuration(
        min=_number(_field(preferences, "session_min_minutes")) or 25,
        max=_number(_field(preferences, "session_max_minutes")) or 90,
        preferred=_number(_field(preferences, "session_preferred_minutes")) or 50,
    )
    capacity = _number(_field(preferences, "capacity_limit_percent"))
    buffer = _number(_field(preferences, "buffer_minutes", "buffer_time"))
    overrides = _field(preferences, "default_hours_per_type", default={}) or {}

    return SchedulerConfig(
        session_duration=session,
        buffer_time=buffer if buffer is not None else 10,
        sleep_schedule=SleepSchedule(wake_time=wake, bedtime=bed),
        preferred_study_times=_flags(PreferredStudyTimes, _field(preferences, "preferred_study_times")),
        study_days=_flags(StudyDays, _field(preferences, "study_days")),
        allow_weekend_study=_field(preferences, "allow_weekend_study", default=True) is not False,
        capacity_limit_percent=capacity if capacity is not None else 1.0,
        default_hours_per_type={
            key: hours for key, hours in overrides.items() if _number(hours) is not None
        },
    )


def energy_model_for(preferences: Any) -> EnergyModel:
    patterns = _field(preferences, "energy_patterns", default=[]) or []
    return EnergyModel.from_patterns(patterns)


def block_type_for(task_type: TaskType) -> BlockType:
    return BLOCK_TYPE_BY_TASK_TYPE.get(task_type, BlockType.WORK)


def to_time_block_fields(block: StudyBlock) -> dict[str, Any]:
    """Column values for persisting a scheduler block as a time block."""
    return {
        "id": block.id,
        "task_id": int(block.task_id) if block.task_id.isdigit() else None,
        "start_time": block.start_time,
        "end_time": block.end_time,
        "block_type": block_type_for(block.task_type).value,
        "is_manual": False,
        "completed": False,
        "energy_required": block.energy_required,
        "is_optimal": block.is_optimal,
        "confidence": block.confidence,
    }


def from_time_block(record: Any, tasks_by_id: Mapping[str, ScheduleTask]) -> StudyBlock | None:
    """StudyBlock for a stored time block; None if it has no owning task or bad times."""
    task_id = _field(record, "task_id", "taskId")
    start = to_local_naive(_field(record, "start_time", "startTime"))
    end = to_local_naive(_field(record, "end_time", "endTime"))
    if task_id is None or start is None or end is None or end <= start:
        return None
    task = tasks_by_id.get(str(task_id))
    return StudyBlock(
        id=str(_field(record, "id")),
        task_id=str(task_id),
        task_title=task.title if task else "",
        task_type=task.type if task else TaskType.ASSIGNMENT,
        start_time=start,
        end_time=end,
        energy_required=_number(_field(record, "energy_required", "energyRequired")) or 0,
        is_optimal=bool(_field(record, "is_optimal", "isOptimal", default=False)),
        confidence=_number(_field(record, "confidence")) or 0,
    )
