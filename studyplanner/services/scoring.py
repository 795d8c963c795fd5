"""
Multi-factor placement of one task into a day's free slots.

Every free slot is probed at several start times (the earliest buffered start,
then half-hour clock boundaries). Each probe is scored on seven weighted
factors and the best probe across all slots becomes the StudyBlock.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from studyplanner.models.task import TaskType
from studyplanner.schemas.preferences import PreferredStudyTimes
from studyplanner.schemas.schedule import StudyBlock, TimeSlot
from studyplanner.schemas.task import ScheduleTask
from studyplanner.services.energy import EnergyModel
from studyplanner.services.priority import required_energy, whole_days_between
from studyplanner.services.slots import SessionLimits

logger = logging.getLogger(__name__)

SCORE_WEIGHTS = {
    "energy": 0.23,
    "deadline": 0.18,
    "preference": 0.18,
    "task_type": 0.12,
    "clustering": 0.09,
    "variety": 0.10,
    "daily_spread": 0.10,
}

PREFERENCE_WINDOWS = {
    "morning": (6, 12),
    "afternoon": (12, 17),
    "evening": (17, 21),
    "night": (21, 24),
}

CANDIDATE_STEP_MINUTES = 30
CLUSTER_WINDOW = timedelta(hours=2)
TIE_POOL_SIZE = 3
SCORE_EPSILON = 1e-9


@dataclass
class Candidate:
    start: datetime
    end: datetime
    score: float
    energy_level: float
    breakdown: dict[str, float] = field(default_factory=dict)


def task_min_session(task: ScheduleTask, limits: SessionLimits) -> float:
    return max(limits.min_session, task.minimum_block_size or 0)


def deadline_score(task: ScheduleTask, start: datetime) -> float:
    hours_until_due = (task.due_date - start).total_seconds() / 3600
    if task.type in (TaskType.EXAM, TaskType.QUIZ):
        if hours_until_due < 24:
            return 20
        if hours_until_due < 48:
            return 60
        return 100
    if hours_until_due < 6:
        return 30
    if hours_until_due < 24:
        return 70
    return 100


def preference_score(start: datetime, prefs: PreferredStudyTimes | None) -> float:
    if prefs is None or not prefs.any_selected():
        return 50
    for name, (first_hour, last_hour) in PREFERENCE_WINDOWS.items():
        if getattr(prefs, name) and first_hour <= start.hour < last_hour:
            return 100
    return 20


def task_type_score(task_type: TaskType, hour: int) -> float:
    """Time-of-day affinity: exams in the late morning, reading in the evening."""
    if task_type in (TaskType.EXAM, TaskType.QUIZ):
        if 9 <= hour < 12:
            return 60
        if 12 <= hour < 15:
            return 40
        if hour >= 15:
            return 20
    if task_type == TaskType.READING:
        if 17 <= hour < 21:
            return 40
        if 14 <= hour < 17:
            return 30
        if 9 <= hour < 12:
            return 20
    if task_type == TaskType.PROJECT:
        if 10 <= hour < 17:
            return 40
        if 17 <= hour < 20:
            return 30
        if hour >= 20:
            return 10
    if task_type == TaskType.ASSIGNMENT:
        if 9 <= hour < 21:
            return 30
        return 15
    return 20


def clustering_score(start: datetime, placed: Sequence[StudyBlock]) -> float:
    nearby = sum(1 for block in placed if abs(start - block.start_time) < CLUSTER_WINDOW)
    return max(0, 100 - nearby * 15)


def variety_score(task: ScheduleTask, hour: int, placed: Sequence[StudyBlock]) -> float:
    task_blocks = [block for block in placed if block.task_id == task.id]
    if not task_blocks:
        return 50
    same_hour = sum(1 for block in task_blocks if block.start_time.hour == hour)
    return max(0, 50 - same_hour * 10)


def _blocks_same_day(task: ScheduleTask, moment: datetime, placed: Sequence[StudyBlock]) -> int:
    return sum(
        1
        for block in placed
        if block.task_id == task.id and block.start_time.date() == moment.date()
    )


def daily_spread_score(task: ScheduleTask, start: datetime, placed: Sequence[StudyBlock]) -> float:
    same_day = _blocks_same_day(task, start, placed)
    if same_day == 0:
        return 100
    days_until_due = max(0, whole_days_between(task.due_date, start))
    if days_until_due <= 1:
        return 60
    return max(10, 100 - same_day * 60)


def block_minutes(
    task: ScheduleTask,
    remaining: float,
    slot_minutes: float,
    limits: SessionLimits,
) -> float | None:
    """Length of the block this slot could host for the task, or None."""
    min_len = task_min_session(task, limits)
    available = slot_minutes - limits.buffer * 2

    if not task.can_split:
        duration = max(remaining, min_len)
        return duration if duration <= available else None

    if available < min_len:
        return None
    duration = min(remaining, limits.preferred, available, limits.max_session)
    duration = min(available, max(duration, min_len))

    leftover = remaining - duration
    if 0 < leftover < min_len:
        # A remainder shorter than one session could never be placed later
        if remaining <= min(available, max(limits.max_session, min_len)):
            duration = remaining
        elif remaining - min_len >= min_len:
            duration = min(duration, remaining - min_len)
        else:
            return None
    return duration


def _candidate_starts(
    slot: TimeSlot, buffer: float, not_before: datetime | None
) -> list[datetime]:
    earliest = slot.start + timedelta(minutes=buffer)
    if not_before is not None and not_before > earliest:
        earliest = not_before
    # Round up to whole minutes, then walk half-hour clock boundaries
    if earliest.second or earliest.microsecond:
        earliest = earliest.replace(second=0, microsecond=0) + timedelta(minutes=1)
    starts = [earliest]
    minutes_past = (earliest.hour * 60 + earliest.minute) % CANDIDATE_STEP_MINUTES
    aligned = earliest + timedelta(minutes=(CANDIDATE_STEP_MINUTES - minutes_past) % CANDIDATE_STEP_MINUTES)
    if aligned == earliest:
        aligned += timedelta(minutes=CANDIDATE_STEP_MINUTES)
    while aligned < slot.end:
        starts.append(aligned)
        aligned += timedelta(minutes=CANDIDATE_STEP_MINUTES)
    return starts


def score_candidate(
    task: ScheduleTask,
    start: datetime,
    placed: Sequence[StudyBlock],
    *,
    needed_energy: float,
    energy: EnergyModel,
    prefs: PreferredStudyTimes | None,
) -> tuple[float, float, dict[str, float]]:
    ambient = energy.energy_for(start)
    breakdown = {
        "energy": 100 - abs(needed_energy - ambient.energy_level),
        "deadline": deadline_score(task, start),
        "preference": preference_score(start, prefs),
        "task_type": task_type_score(task.type, start.hour),
        "clustering": clustering_score(start, placed),
        "variety": variety_score(task, start.hour, placed),
        "daily_spread": daily_spread_score(task, start, placed),
    }
    total = sum(breakdown[name] * weight for name, weight in SCORE_WEIGHTS.items())
    return total, ambient.energy_level, breakdown


def best_slot_for(
    task: ScheduleTask,
    slots: Sequence[TimeSlot],
    placed: Sequence[StudyBlock],
    *,
    remaining: float,
    limits: SessionLimits,
    energy: EnergyModel,
    prefs: PreferredStudyTimes | None = None,
    rng: random.Random | None = None,
    not_before: datetime | None = None,
) -> StudyBlock | None:
    """
    Best placement of ``task`` across ``slots`` or None if no slot can host it.

    ``remaining`` is the task's unplaced need in minutes. ``placed`` holds every
    block already placed (any task) and feeds the spacing heuristics.
    """
    if remaining <= 0:
        return None

    needed_energy = required_energy(task)
    min_len = task_min_session(task, limits)
    candidates: list[Candidate] = []

    for slot in slots:
        slot_minutes = slot.duration_minutes
        if slot_minutes <= 0:
            continue
        if slot_minutes < min(remaining, min_len) + limits.buffer:
            continue

        duration = block_minutes(task, remaining, slot_minutes, limits)
        if duration is None or duration <= 0:
            continue
        length = timedelta(minutes=duration)
        if length <= timedelta(0):
            continue

        same_day = _blocks_same_day(task, slot.start, placed)
        days_until_due = max(0, whole_days_between(task.due_date, slot.start))
        if same_day >= 1 and days_until_due > 1:
            continue
        if same_day >= 2 and days_until_due > 0:
            continue

        for start in _candidate_starts(slot, limits.buffer, not_before):
            end = start + length
            if end + timedelta(minutes=limits.buffer) > slot.end:
                break
            if end > task.due_date:
                break
            score, ambient, breakdown = score_candidate(
                task,
                start,
                placed,
                needed_energy=needed_energy,
                energy=energy,
                prefs=prefs,
            )
            candidates.append(
                Candidate(start=start, end=end, score=score, energy_level=ambient, breakdown=breakdown)
            )

    if not candidates:
        return None

    top_score = max(candidate.score for candidate in candidates)
    tied = [c for c in candidates if top_score - c.score < SCORE_EPSILON][:TIE_POOL_SIZE]
    chosen = tied[0] if len(tied) == 1 or rng is None else rng.choice(tied)
    logger.debug(
        f"Best slot for {task.id}: {chosen.start:%a %H:%M}-{chosen.end:%H:%M} "
        f"score={chosen.score:.1f} ({len(candidates)} probes, {len(tied)} tied) "
        + " ".join(f"{name}={value:.0f}" for name, value in chosen.breakdown.items())
    )

    return StudyBlock(
        id=f"block-{task.id}-{chosen.start:%Y%m%d%H%M}",
        task_id=task.id,
        task_title=task.title,
        task_type=task.type,
        start_time=chosen.start,
        end_time=chosen.end,
        energy_required=needed_energy,
        is_optimal=chosen.energy_level >= needed_energy,
        confidence=chosen.score,
    )
