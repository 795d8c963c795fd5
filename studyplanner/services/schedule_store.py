"""Run the scheduler against a user's stored tasks and persist the blocks."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session

from studyplanner.core.config import Settings, get_settings
from studyplanner.models.calendar_event import CalendarEvent
from studyplanner.models.task import Task, TaskStatus
from studyplanner.models.time_block import TimeBlock
from studyplanner.models.user import User
from studyplanner.schemas.energy import EnergyPattern
from studyplanner.schemas.schedule import ScheduleResult, StudyBlock, TimeSlot
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.conversion import (
    build_scheduler_config,
    energy_model_for,
    from_time_block,
    to_busy_intervals,
    to_schedule_task,
    to_time_block_fields,
)
from studyplanner.services.rescheduling import reschedule
from studyplanner.services.scheduling import generate_schedule

logger = logging.getLogger(__name__)


def _load_schedule_tasks(db: Session, user: User) -> tuple[dict[str, ScheduleTask], dict[str, Task]]:
    rows: list[Task] = db.query(Task).filter(Task.user_id == user.id).all()
    overrides = user.default_hours_per_type or {}
    converted: dict[str, ScheduleTask] = {}
    by_id: dict[str, Task] = {}
    for row in rows:
        try:
            task = to_schedule_task(row, default_hours_per_type=overrides)
        except ValueError as e:
            logger.warning(f"Skipping task {row.id} for user {user.id}: {e}")
            continue
        converted[task.id] = task
        by_id[task.id] = row
    return converted, by_id


def _busy_intervals(db: Session, user: User) -> list[TimeSlot]:
    events = db.query(CalendarEvent).filter(CalendarEvent.user_id == user.id).all()
    manual = (
        db.query(TimeBlock)
        .filter(TimeBlock.user_id == user.id, TimeBlock.is_manual.is_(True))
        .all()
    )
    return to_busy_intervals([*events, *manual])


def _replace_generated_blocks(db: Session, user: User, blocks: list[StudyBlock]) -> None:
    stale = (
        db.query(TimeBlock)
        .filter(TimeBlock.user_id == user.id, TimeBlock.is_manual.is_(False))
        .all()
    )
    for row in stale:
        db.delete(row)
    # Kept blocks are re-inserted under the same ids
    db.flush()
    for block in blocks:
        db.add(TimeBlock(user_id=user.id, **to_time_block_fields(block)))


def generate_smart_schedule(
    db: Session,
    user: User,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    reference: datetime | None = None,
    settings: Settings | None = None,
) -> ScheduleResult:
    """
    Regenerate every non-manual block for ``user``.

    The horizon defaults to today through the latest open due date (or the
    configured number of days when nothing is open). Overdue tasks are marked
    as such and left unscheduled.
    """
    settings = settings or get_settings()
    now = reference or datetime.now()
    tasks, rows = _load_schedule_tasks(db, user)
    open_tasks = [task for task in tasks.values() if not task.completed]

    start = start or datetime.combine(now.date(), time.min)
    if end is None:
        latest_due = max((task.due_date for task in open_tasks), default=None)
        end = latest_due or start + timedelta(days=settings.schedule_horizon_days)

    result = generate_schedule(
        open_tasks,
        start,
        end,
        _busy_intervals(db, user),
        build_scheduler_config(user),
        now=now,
        energy=energy_model_for(user),
        seed=settings.tie_break_seed,
        max_blocks_per_day=settings.max_blocks_per_day,
    )

    for task_id in result.overdue_task_ids:
        row = rows[task_id]
        if row.status != TaskStatus.OVERDUE.value:
            row.status = TaskStatus.OVERDUE.value

    _replace_generated_blocks(db, user, result.blocks)
    db.commit()
    logger.info(
        f"Smart schedule for user {user.id}: {len(result.blocks)} blocks, "
        f"{len(result.warnings.unscheduled_task_ids)} unscheduled"
    )
    return result


def complete_task(
    db: Session,
    user: User,
    task_id: int,
    *,
    reference: datetime | None = None,
    skip_reschedule: bool = False,
    settings: Settings | None = None,
) -> list[StudyBlock]:
    """Mark a task completed and refill the time its blocks no longer need."""
    settings = settings or get_settings()
    now = reference or datetime.now()
    row = db.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
    if row is None:
        raise LookupError(f"Task {task_id} not found for user {user.id}")

    row.status = TaskStatus.COMPLETED.value
    row.completed_at = now
    db.flush()

    tasks, _ = _load_schedule_tasks(db, user)
    stored = (
        db.query(TimeBlock)
        .filter(TimeBlock.user_id == user.id, TimeBlock.is_manual.is_(False))
        .all()
    )
    existing = [block for block in (from_time_block(b, tasks) for b in stored) if block]

    if skip_reschedule:
        db.commit()
        return sorted(existing, key=lambda block: block.start_time)

    blocks = reschedule(
        [str(task_id)],
        [task for task in tasks.values() if not task.completed],
        existing,
        _busy_intervals(db, user),
        build_scheduler_config(user),
        now=now,
        energy=energy_model_for(user),
        horizon_days=settings.reschedule_horizon_days,
        seed=settings.tie_break_seed,
        max_blocks_per_day=settings.max_blocks_per_day,
    )
    # Rows of other tasks stay as stored (completed flags, created_at)
    for stored_row in stored:
        if stored_row.task_id == row.id:
            db.delete(stored_row)
    db.flush()
    kept_ids = {block.id for block in existing if block.task_id != str(row.id)}
    added = [block for block in blocks if block.id not in kept_ids]
    for block in added:
        db.add(TimeBlock(user_id=user.id, **to_time_block_fields(block)))
    db.commit()
    logger.info(
        f"Completed task {row.id} for user {user.id}: kept {len(blocks) - len(added)} blocks, "
        f"added {len(added)}"
    )
    return blocks


def update_energy_pattern(
    db: Session, user: User, hour: int, energy_level: float
) -> list[EnergyPattern]:
    """Store a per-hour energy override used by later scheduling runs."""
    pattern = EnergyPattern(hour=hour, energy_level=energy_level, productivity=energy_level * 0.9)
    patterns = [p for p in (user.energy_patterns or []) if p.get("hour") != hour]
    patterns.append(pattern.dict())
    patterns.sort(key=lambda p: p["hour"])
    # Reassign so SQLAlchemy sees the JSON column change
    user.energy_patterns = patterns
    db.commit()
    return [EnergyPattern(**p) for p in patterns]
