from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

from studyplanner.schemas.preferences import SchedulerConfig
from studyplanner.schemas.schedule import (
    ScheduleResult,
    ScheduleWarnings,
    StudyBlock,
    TimeSlot,
    UnscheduledTaskDetail,
)
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.energy import EnergyModel
from studyplanner.services.priority import priority_of
from studyplanner.services.scoring import best_slot_for, task_min_session
from studyplanner.services.slots import (
    SessionLimits,
    capacity_minutes,
    day_window,
    free_slots,
    session_limits,
)

logger = logging.getLogger(__name__)

MAX_BLOCKS_PER_DAY = 8
# Remainders at or below this many minutes are rounding noise, not shortfalls
UNSCHEDULED_TOLERANCE_MINUTES = 1
WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(order=True)
class PendingTask:
    sort_index: float = field(init=False, repr=False, compare=True)
    priority: float = field(compare=False)
    task: ScheduleTask = field(compare=False)
    remaining_minutes: float = field(compare=False)
    satisfied: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        self.sort_index = -self.priority  # invert for descending sort


def is_day_allowed(day: date, config: SchedulerConfig) -> bool:
    weekday = day.weekday()
    if weekday >= 5 and not config.allow_weekend_study:
        return False
    if config.study_days is None:
        return True
    return bool(getattr(config.study_days, WEEKDAY_NAMES[weekday]))


def effective_minutes(task: ScheduleTask, limits: SessionLimits) -> float:
    """Minutes the run should place: positive needs below one session round up to one."""
    if task.estimated_duration <= 0:
        return 0
    return max(task.estimated_duration, task_min_session(task, limits))


def prepare_pending(
    tasks: Iterable[ScheduleTask],
    horizon_end: datetime,
    now: datetime,
    limits: SessionLimits,
) -> tuple[list[PendingTask], list[str]]:
    """Priority-ordered work list plus the ids of overdue tasks."""
    pending: list[PendingTask] = []
    overdue: list[str] = []
    for task in tasks:
        if task.completed:
            continue
        if task.due_date < now:
            logger.warning(f"Task {task.id} '{task.title}' is overdue (due {task.due_date:%Y-%m-%d %H:%M}); not scheduling")
            overdue.append(task.id)
            continue
        if task.due_date > horizon_end:
            continue
        minutes = effective_minutes(task, limits)
        pending.append(
            PendingTask(
                priority=priority_of(task, now),
                task=task,
                remaining_minutes=minutes,
                satisfied=minutes <= 0,
            )
        )
    pending.sort()
    return pending, overdue


def fill_day(
    day: date,
    pending: Sequence[PendingTask],
    busy: Sequence[TimeSlot],
    placed: list[StudyBlock],
    *,
    config: SchedulerConfig,
    limits: SessionLimits,
    energy: EnergyModel,
    rng: random.Random,
    not_before: datetime,
    max_blocks: int = MAX_BLOCKS_PER_DAY,
    minutes_used: float = 0,
) -> list[StudyBlock]:
    """
    Place blocks on one day until capacity is reached or nothing fits.

    Each round recomputes the free slots and places the first task, in
    priority order, that yields a block within the remaining capacity.
    ``placed`` is extended in place so later days see today's blocks.
    """
    window_start, window_end = day_window(day, config)
    window_start = max(window_start, not_before)
    if window_start >= window_end:
        return []

    capacity = capacity_minutes(config)
    placed_today: list[StudyBlock] = []

    while len(placed_today) < max_blocks and minutes_used < capacity:
        slots = free_slots(window_start, window_end, [*busy, *placed], limits)
        if not slots:
            logger.debug(f"{day}: no free slots left")
            break

        placed_block: StudyBlock | None = None
        for item in pending:
            if item.satisfied:
                continue
            block = best_slot_for(
                item.task,
                slots,
                placed,
                remaining=item.remaining_minutes,
                limits=limits,
                energy=energy,
                prefs=config.preferred_study_times,
                rng=rng,
                not_before=not_before,
            )
            if block is None:
                continue
            duration = block.duration_minutes
            if minutes_used + duration > capacity:
                logger.debug(
                    f"{day}: '{item.task.title}' would exceed capacity "
                    f"({minutes_used + duration:.0f}/{capacity:.0f}min)"
                )
                continue

            placed.append(block)
            placed_today.append(block)
            minutes_used += duration
            if item.task.can_split:
                item.remaining_minutes -= duration
            else:
                item.remaining_minutes = 0
            if item.remaining_minutes <= 0:
                item.remaining_minutes = 0
                item.satisfied = True
            logger.info(
                f"Scheduled '{item.task.title}' {block.start_time:%a %b %d %H:%M}-"
                f"{block.end_time:%H:%M} ({duration:.0f}min)"
            )
            placed_block = block
            break

        if placed_block is None:
            logger.debug(f"{day}: no more tasks fit in remaining slots")
            break

    if minutes_used >= capacity:
        logger.debug(f"{day}: capacity limit reached ({capacity:.0f}min)")
    return placed_today


def build_warnings(pending: Iterable[PendingTask]) -> ScheduleWarnings:
    details = [
        UnscheduledTaskDetail(
            task_id=item.task.id,
            title=item.task.title,
            remaining_minutes=item.remaining_minutes,
            due_date=item.task.due_date,
        )
        for item in pending
        if item.remaining_minutes > UNSCHEDULED_TOLERANCE_MINUTES
    ]
    task_ids = [detail.task_id for detail in details]
    message = ""
    if task_ids:
        message = (
            f"{len(task_ids)} tasks could not be fully scheduled. "
            "Adjust your study window or preferences to fit the required hours."
        )
    return ScheduleWarnings(unscheduled_task_ids=task_ids, message=message, details=details)


def generate_schedule(
    tasks: Sequence[ScheduleTask],
    start: datetime,
    end: datetime,
    busy: Iterable[TimeSlot] = (),
    config: SchedulerConfig | None = None,
    *,
    now: datetime,
    energy: EnergyModel | None = None,
    existing_blocks: Sequence[StudyBlock] = (),
    seed: int = 0,
    max_blocks_per_day: int = MAX_BLOCKS_PER_DAY,
) -> ScheduleResult:
    """
    Place study blocks for ``tasks`` on the days in [start, end).

    ``busy`` holds calendar events and pinned blocks; ``existing_blocks`` are
    blocks from earlier runs that must stay where they are. Neither appears in
    the returned block list. Ties between equally scored placements are broken
    with ``random.Random(seed)``.
    """
    config = config or SchedulerConfig()
    energy = energy or EnergyModel()
    limits = session_limits(config)
    rng = random.Random(seed)

    pending, overdue = prepare_pending(tasks, end, now, limits)
    busy_slots = list(busy)
    placed: list[StudyBlock] = list(existing_blocks)
    blocks: list[StudyBlock] = []
    logger.info(
        f"Generating schedule {start:%b %d}-{end:%b %d}: {len(pending)} tasks, "
        f"{len(busy_slots)} busy intervals, {len(overdue)} overdue"
    )

    not_before = max(start, now)
    day = start.date()
    days_processed = 0
    while datetime.combine(day, time.min) < end:
        if all(item.satisfied for item in pending):
            break
        if not is_day_allowed(day, config):
            logger.debug(f"Skipping {day:%a %b %d} (not a study day)")
            day += timedelta(days=1)
            continue
        days_processed += 1
        blocks.extend(
            fill_day(
                day,
                pending,
                busy_slots,
                placed,
                config=config,
                limits=limits,
                energy=energy,
                rng=rng,
                not_before=not_before,
                max_blocks=max_blocks_per_day,
            )
        )
        day += timedelta(days=1)

    blocks.sort(key=lambda block: block.start_time)
    warnings = build_warnings(pending)
    logger.info(
        f"Schedule generated: {len(blocks)} blocks over {days_processed} days, "
        f"{len(warnings.unscheduled_task_ids)} tasks not fully scheduled"
    )
    return ScheduleResult(
        generated_at=now,
        blocks=blocks,
        warnings=warnings,
        overdue_task_ids=overdue,
    )
