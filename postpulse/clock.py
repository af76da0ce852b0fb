"""Wall-clock snapshots consumed by the posting-time engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKEND_DAYS: frozenset[int] = frozenset({0, 6})


@dataclass(frozen=True, slots=True)
class TimeSnapshot:
    """Hour, weekday and minute read from a single instant.

    ``day_of_week`` counts from Sunday (0) to Saturday (6).
    """

    hour: int
    day_of_week: int
    minute: int
    instant: datetime

    @classmethod
    def from_datetime(cls, moment: datetime) -> "TimeSnapshot":
        return cls(
            hour=moment.hour,
            day_of_week=(moment.weekday() + 1) % 7,
            minute=moment.minute,
            instant=moment,
        )

    @property
    def is_weekend(self) -> bool:
        return self.day_of_week in WEEKEND_DAYS


def now(tz: tzinfo | None = None) -> TimeSnapshot:
    """Read the system clock once and return its snapshot."""
    moment = datetime.now(tz) if tz is not None else datetime.now()
    return TimeSnapshot.from_datetime(moment)


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Map an IANA zone name to ``tzinfo``; ``None`` keeps host-local time."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name}") from exc
