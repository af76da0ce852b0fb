"""Static hour tables describing when audiences are most and least active."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable

HOURS_PER_DAY: Final[int] = 24


class ScheduleTableError(ValueError):
    """Raised when a set of hour tables cannot describe a sane posting day."""


@dataclass(frozen=True, slots=True)
class ScheduleTables:
    """Immutable peak and low-engagement hour tables.

    The weekday peak table is kept in ascending order because the engine scans
    it left to right for both the next slot and the nearest-peak tie-break.
    """

    weekday_peak_hours: tuple[int, ...]
    weekend_peak_hours: frozenset[int]
    low_engagement_hours: frozenset[int]

    def __post_init__(self) -> None:
        weekday = tuple(sorted(set(_checked_hours("weekday_peak_hours", self.weekday_peak_hours))))
        weekend = frozenset(_checked_hours("weekend_peak_hours", self.weekend_peak_hours))
        low = frozenset(_checked_hours("low_engagement_hours", self.low_engagement_hours))

        if not weekday:
            raise ScheduleTableError("weekday_peak_hours must contain at least one hour")
        if not weekend:
            raise ScheduleTableError("weekend_peak_hours must contain at least one hour")
        for name, peaks in (("weekday_peak_hours", weekday), ("weekend_peak_hours", weekend)):
            overlap = low.intersection(peaks)
            if overlap:
                raise ScheduleTableError(
                    f"low_engagement_hours overlaps {name}: {sorted(overlap)}"
                )

        object.__setattr__(self, "weekday_peak_hours", weekday)
        object.__setattr__(self, "weekend_peak_hours", weekend)
        object.__setattr__(self, "low_engagement_hours", low)

    def is_low_engagement(self, hour: int) -> bool:
        return hour in self.low_engagement_hours

    def is_peak(self, hour: int, *, weekend: bool) -> bool:
        peaks = self.weekend_peak_hours if weekend else self.weekday_peak_hours
        return hour in peaks

    def peak_hours_for(self, weekend: bool) -> tuple[int, ...]:
        """Return the ascending peak hours for a weekday or weekend."""
        if weekend:
            return tuple(sorted(self.weekend_peak_hours))
        return self.weekday_peak_hours


def _checked_hours(name: str, hours: Iterable[int]) -> list[int]:
    checked: list[int] = []
    for hour in hours:
        if isinstance(hour, bool) or not isinstance(hour, int):
            raise ScheduleTableError(f"{name} must contain integers, got {hour!r}")
        if not 0 <= hour < HOURS_PER_DAY:
            raise ScheduleTableError(f"{name} contains out-of-range hour {hour}")
        checked.append(hour)
    return checked


DEFAULT_WEEKDAY_PEAK_HOURS: Final[tuple[int, ...]] = (9, 10, 12, 13, 14, 15, 19, 20, 21)
DEFAULT_WEEKEND_PEAK_HOURS: Final[tuple[int, ...]] = (10, 11, 12, 13, 14, 15, 20, 21)
DEFAULT_LOW_ENGAGEMENT_HOURS: Final[tuple[int, ...]] = (0, 1, 2, 3, 4, 5, 22, 23)

DEFAULT_SCHEDULE_TABLES: Final[ScheduleTables] = ScheduleTables(
    weekday_peak_hours=DEFAULT_WEEKDAY_PEAK_HOURS,
    weekend_peak_hours=frozenset(DEFAULT_WEEKEND_PEAK_HOURS),
    low_engagement_hours=frozenset(DEFAULT_LOW_ENGAGEMENT_HOURS),
)
