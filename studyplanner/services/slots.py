from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable

from studyplanner.schemas.preferences import SchedulerConfig
from studyplanner.schemas.schedule import TimeSlot

logger = logging.getLogger(__name__)

HARD_MIN_SESSION = 15  # never emit blocks shorter than this
HARD_SESSION_CAP = 60  # upper bound for one splittable session
DEFAULT_BUFFER = 10
DEFAULT_MIN_SESSION = 25
DEFAULT_PREFERRED_SESSION = 50
DEFAULT_WAKE_HOUR = 7
DEFAULT_BEDTIME_HOUR = 23


@dataclass(frozen=True)
class SessionLimits:
    buffer: float
    min_session: float
    preferred: float
    max_session: float


def _finite(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def session_limits(config: SchedulerConfig) -> SessionLimits:
    """Session bounds with persisted zero/NaN values replaced by safe defaults."""
    buffer = max(0.0, _finite(config.buffer_time, DEFAULT_BUFFER))
    min_session = max(
        HARD_MIN_SESSION,
        _finite(config.session_duration.min, DEFAULT_MIN_SESSION),
    )
    preferred = max(
        min_session,
        _finite(config.session_duration.preferred, DEFAULT_PREFERRED_SESSION),
    )
    max_session = max(
        min_session,
        min(HARD_SESSION_CAP, _finite(config.session_duration.max, HARD_SESSION_CAP)),
    )
    return SessionLimits(
        buffer=buffer,
        min_session=min_session,
        preferred=preferred,
        max_session=max_session,
    )


def day_window_hours(wake: Any, bedtime: Any) -> tuple[int, int]:
    """Return a usable (wake, bedtime) pair; bedtime may be 24 (midnight)."""
    wake_hour = int(_finite(wake, DEFAULT_WAKE_HOUR))
    if not 0 <= wake_hour <= 23:
        wake_hour = DEFAULT_WAKE_HOUR
    bed_hour = int(_finite(bedtime, DEFAULT_BEDTIME_HOUR))
    if not 0 <= bed_hour <= 24:
        bed_hour = DEFAULT_BEDTIME_HOUR
    if bed_hour <= wake_hour:
        bed_hour = min(24, wake_hour + 8)
    return wake_hour, bed_hour


def capacity_fraction(config: SchedulerConfig) -> float:
    fraction = _finite(config.capacity_limit_percent, 1.0)
    if not 0 <= fraction <= 1:
        return 1.0
    return fraction


def capacity_minutes(config: SchedulerConfig) -> float:
    wake, bed = day_window_hours(config.sleep_schedule.wake_time, config.sleep_schedule.bedtime)
    return (bed - wake) * 60 * capacity_fraction(config)


def day_window(day: date, config: SchedulerConfig) -> tuple[datetime, datetime]:
    wake, bed = day_window_hours(config.sleep_schedule.wake_time, config.sleep_schedule.bedtime)
    midnight = datetime.combine(day, time.min)
    return midnight + timedelta(hours=wake), midnight + timedelta(hours=bed)


def _as_interval(entry: Any) -> tuple[datetime, datetime] | None:
    if entry is None:
        return None
    if isinstance(entry, dict):
        start, end = entry.get("start"), entry.get("end")
    else:
        start = getattr(entry, "start", None) or getattr(entry, "start_time", None)
        end = getattr(entry, "end", None) or getattr(entry, "end_time", None)
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        return None
    if end <= start:
        return None
    return start, end


def free_slots(
    day_start: datetime,
    day_end: datetime,
    busy: Iterable[Any],
    limits: SessionLimits,
) -> list[TimeSlot]:
    """
    Free intervals of the window [day_start, day_end) around the busy entries.

    Busy entries may be TimeSlots, StudyBlocks or {start, end} dicts. Entries
    with missing or inverted timestamps are dropped. A gap is returned only if
    it can hold the smallest session plus its buffer.
    """
    clamped: list[tuple[datetime, datetime]] = []
    dropped = 0
    for entry in busy:
        interval = _as_interval(entry)
        if interval is None:
            dropped += 1
            continue
        start, end = interval
        if end <= day_start or start >= day_end:
            continue
        clamped.append((max(start, day_start), min(end, day_end)))
    if dropped:
        logger.debug(f"Dropped {dropped} malformed busy interval(s)")

    clamped.sort(key=lambda interval: interval[0])
    min_gap = timedelta(minutes=limits.min_session + limits.buffer)

    available: list[TimeSlot] = []
    cursor = day_start
    for start, end in clamped:
        if cursor < start and start - cursor >= min_gap:
            available.append(TimeSlot(start=cursor, end=start))
        if end > cursor:
            cursor = end
    if cursor < day_end and day_end - cursor >= min_gap:
        available.append(TimeSlot(start=cursor, end=day_end))

    logger.debug(
        f"Free slots {day_start:%Y-%m-%d %H:%M}-{day_end:%H:%M}: "
        f"{len(available)} from {len(clamped)} busy"
    )
    return available
