"""Refill freed study time after tasks are completed, without moving kept blocks."""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Iterable, Sequence

from studyplanner.schemas.preferences import SchedulerConfig
from studyplanner.schemas.schedule import StudyBlock, TimeSlot
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.energy import EnergyModel
from studyplanner.services.priority import priority_of
from studyplanner.services.scheduling import (
    MAX_BLOCKS_PER_DAY,
    PendingTask,
    effective_minutes,
    fill_day,
    is_day_allowed,
)
from studyplanner.services.scoring import task_min_session
from studyplanner.services.slots import SessionLimits, session_limits

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 60


def _minutes_by_task(blocks: Iterable[StudyBlock]) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for block in blocks:
        totals[block.task_id] += block.duration_minutes
    return totals


def find_underscheduled(
    tasks: Iterable[ScheduleTask],
    retained: Sequence[StudyBlock],
    *,
    now: datetime,
    horizon_end: datetime,
    limits: SessionLimits,
    excluded: set[str] | frozenset[str] = frozenset(),
) -> list[PendingTask]:
    """Tasks whose kept blocks fall short of their estimate, with the shortfall."""
    placed_minutes = _minutes_by_task(retained)
    pending: list[PendingTask] = []
    for task in tasks:
        if task.completed or task.id in excluded:
            continue
        if task.due_date < now or task.due_date > horizon_end:
            continue
        already = placed_minutes.get(task.id, 0.0)
        if already >= task.estimated_duration:
            continue

        if not task.can_split:
            if already > 0:
                continue
            need = effective_minutes(task, limits)
        else:
            need = task.estimated_duration - already
            if need < task_min_session(task, limits):
                if already > 0:
                    # Shortfall smaller than one session; leave it
                    continue
                need = effective_minutes(task, limits)
        if need <= 0:
            continue
        pending.append(PendingTask(priority=priority_of(task, now), task=task, remaining_minutes=need))
    pending.sort()
    return pending


def reschedule(
    completed_task_ids: Iterable[str],
    remaining_tasks: Sequence[ScheduleTask],
    existing_blocks: Sequence[StudyBlock],
    busy: Iterable[TimeSlot] = (),
    config: SchedulerConfig | None = None,
    *,
    now: datetime,
    energy: EnergyModel | None = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    seed: int = 0,
    max_blocks_per_day: int = MAX_BLOCKS_PER_DAY,
) -> list[StudyBlock]:
    """
    Drop the blocks of completed tasks and fill only what is still missing.

    Blocks of other tasks are returned unchanged. New blocks are placed between
    ``now`` and ``now + horizon_days`` for tasks whose kept blocks no longer
    cover their estimate.
    """
    config = config or SchedulerConfig()
    energy = energy or EnergyModel()
    limits = session_limits(config)
    completed = set(completed_task_ids)

    retained = [block for block in existing_blocks if block.task_id not in completed]
    logger.info(
        f"Incremental reschedule: {len(completed)} completed, kept {len(retained)} blocks, "
        f"removed {len(existing_blocks) - len(retained)}"
    )

    horizon_end = now + timedelta(days=horizon_days)
    pending = find_underscheduled(
        remaining_tasks,
        retained,
        now=now,
        horizon_end=horizon_end,
        limits=limits,
        excluded=completed,
    )
    if not pending:
        logger.info("No tasks need rescheduling")
        return sorted(retained, key=lambda block: block.start_time)

    busy_slots = list(busy)
    placed: list[StudyBlock] = list(retained)
    rng = random.Random(seed)
    new_blocks: list[StudyBlock] = []

    day = now.date()
    while datetime.combine(day, time.min) < horizon_end:
        if all(item.satisfied for item in pending):
            break
        if is_day_allowed(day, config):
            already_used = sum(
                block.duration_minutes
                for block in retained
                if block.start_time.date() == day
            )
            new_blocks.extend(
                fill_day(
                    day,
                    pending,
                    busy_slots,
                    placed,
                    config=config,
                    limits=limits,
                    energy=energy,
                    rng=rng,
                    not_before=now,
                    max_blocks=max_blocks_per_day,
                    minutes_used=already_used,
                )
            )
        day += timedelta(days=1)

    logger.info(
        f"Incremental reschedule placed {len(new_blocks)} new blocks "
        f"({len(retained) + len(new_blocks)} total)"
    )
    return sorted([*retained, *new_blocks], key=lambda block: block.start_time)
