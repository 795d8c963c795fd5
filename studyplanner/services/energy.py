"""Circadian energy model used to match demanding tasks to high-energy hours."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping

from studyplanner.schemas.energy import EnergyPattern

BASE_ENERGY_BY_HOUR = {
    0: 10, 1: 5, 2: 5, 3: 5, 4: 5, 5: 10, 6: 20,
    7: 40, 8: 60, 9: 80, 10: 90, 11: 85, 12: 70,
    13: 60, 14: 65, 15: 75, 16: 80, 17: 75, 18: 65,
    19: 70, 20: 65, 21: 50, 22: 30, 23: 15,
}

# 0 = Sunday. Lowest right after the weekend, peaking Friday.
DAY_MULTIPLIER = {
    0: 0.85,
    1: 0.80,
    2: 0.90,
    3: 0.95,
    4: 1.00,
    5: 1.05,
    6: 0.90,
}

PRODUCTIVITY_RATIO = 0.9


def sunday_based_weekday(moment: datetime) -> int:
    """Python counts Monday as 0; the energy tables count Sunday as 0."""
    return (moment.weekday() + 1) % 7


class EnergyModel:
    """
    Energy/productivity lookup for an hour of a given weekday.

    Overrides replace the computed level for an hour on every day of the week.
    The model never changes after construction; use ``with_overrides`` to
    derive a personalised copy.
    """

    def __init__(self, overrides: Mapping[int, float] | None = None) -> None:
        self._overrides: dict[int, float] = dict(overrides or {})

    @classmethod
    def from_patterns(cls, patterns: Iterable[EnergyPattern | dict] | None) -> EnergyModel:
        return cls().with_overrides(patterns or [])

    @property
    def overrides(self) -> dict[int, float]:
        return dict(self._overrides)

    def with_overrides(self, patterns: Iterable[EnergyPattern | dict]) -> EnergyModel:
        merged = dict(self._overrides)
        for pattern in patterns:
            if isinstance(pattern, dict):
                pattern = EnergyPattern(**pattern)
            merged[pattern.hour] = pattern.energy_level
        return EnergyModel(merged)

    def energy_at(self, hour: int, day_of_week: int) -> EnergyPattern:
        if hour in self._overrides:
            level = self._overrides[hour]
        else:
            base = BASE_ENERGY_BY_HOUR.get(hour, BASE_ENERGY_BY_HOUR[0])
            level = base * DAY_MULTIPLIER.get(day_of_week, 1.0)
        level = min(100.0, max(0.0, level))
        return EnergyPattern(
            hour=hour if 0 <= hour <= 23 else 0,
            energy_level=level,
            productivity=level * PRODUCTIVITY_RATIO,
        )

    def energy_for(self, moment: datetime) -> EnergyPattern:
        return self.energy_at(moment.hour, sunday_based_weekday(moment))
