"""Posting-time recommendation engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Final

from ..clock import TimeSnapshot
from ..tables import DEFAULT_SCHEDULE_TABLES, ScheduleTables

logger = logging.getLogger(__name__)

DEFAULT_TIME_FORMAT: Final[str] = "%I:%M %p"
CONFIDENCE_PENALTY_PER_HOUR: Final[int] = 15
LATE_MINUTE_THRESHOLD: Final[int] = 45

RISK_LOW_AUDIENCE = "Very low active user base during these hours"
RISK_REDUCED_VISIBILITY = "Reduced visibility in users' feeds"
RISK_WEEKEND_PATTERN = "Weekend posting patterns differ from weekdays"
RISK_HOUR_BOUNDARY = "Approaching the next hour - engagement patterns may shift"
ADVICE_WEEKEND_TIMING = "Consider different timing for weekend posts"
ADVICE_NEXT_HOUR = "Consider waiting for the start of the next hour"


class Engagement(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Verdict, score and advice produced by one engine invocation."""

    is_good_time: bool
    confidence: int
    reason: str
    next_best_time: str
    next_best_at: datetime
    current_engagement: Engagement
    risks: tuple[str, ...]
    recommendations: tuple[str, ...]

    def as_payload(self) -> dict[str, Any]:
        """Return the display payload keyed the way dashboard widgets expect."""
        return {
            "isGoodTime": self.is_good_time,
            "confidence": self.confidence,
            "reason": self.reason,
            "nextBestTime": self.next_best_time,
            "currentEngagement": self.current_engagement.value,
            "risks": list(self.risks),
            "recommendations": list(self.recommendations),
        }


def next_peak_hour(hour: int, peaks: tuple[int, ...]) -> int:
    """Return the first peak strictly after ``hour``, wrapping to the first."""
    for peak in peaks:
        if peak > hour:
            return peak
    return peaks[0]


def next_best_moment(snapshot: TimeSnapshot, peaks: tuple[int, ...]) -> datetime:
    target = snapshot.instant.replace(
        hour=next_peak_hour(snapshot.hour, peaks), minute=0, second=0, microsecond=0
    )
    if target <= snapshot.instant:
        target += timedelta(days=1)
    return target


def nearest_peak_distance(hour: int, peaks: tuple[int, ...]) -> int:
    # Ties keep the earlier (smaller) peak.
    closest = peaks[0]
    for peak in peaks[1:]:
        if abs(peak - hour) < abs(closest - hour):
            closest = peak
    return abs(closest - hour)


def confidence_for_distance(distance: int) -> int:
    return min(100, max(0, 100 - distance * CONFIDENCE_PENALTY_PER_HOUR))


def _reason(*, is_peak: bool, is_low: bool, is_weekend: bool) -> str:
    if is_peak:
        suffix = " for weekends" if is_weekend else ""
        return f"Current time aligns with peak engagement hours{suffix}"
    level = "very low" if is_low else "moderate"
    suffix = " during weekends" if is_weekend else ""
    return f"Current time shows {level} engagement levels{suffix}"


def analyze(
    snapshot: TimeSnapshot,
    tables: ScheduleTables = DEFAULT_SCHEDULE_TABLES,
    *,
    time_format: str = DEFAULT_TIME_FORMAT,
    weekend_aware_targets: bool = False,
) -> AnalysisResult:
    """Classify ``snapshot`` against ``tables``.

    The next slot and the confidence distance are measured against the weekday
    peak table even on weekends, while the peak verdict itself switches to the
    weekend table. Pass ``weekend_aware_targets=True`` to measure weekends
    against the weekend table instead.
    """
    is_weekend = snapshot.is_weekend
    hour = snapshot.hour
    is_low = tables.is_low_engagement(hour)
    is_peak = tables.is_peak(hour, weekend=is_weekend)

    target_peaks = tables.peak_hours_for(is_weekend and weekend_aware_targets)
    next_best_at = next_best_moment(snapshot, target_peaks)
    next_best_time = next_best_at.strftime(time_format)
    confidence = confidence_for_distance(nearest_peak_distance(hour, target_peaks))

    risks: list[str] = []
    recommendations: list[str] = []
    if is_low:
        risks.append(RISK_LOW_AUDIENCE)
        risks.append(RISK_REDUCED_VISIBILITY)
        recommendations.append(f"Wait until {next_best_time} for better engagement")
    if is_weekend and hour not in tables.weekend_peak_hours:
        risks.append(RISK_WEEKEND_PATTERN)
        recommendations.append(ADVICE_WEEKEND_TIMING)
    if snapshot.minute >= LATE_MINUTE_THRESHOLD:
        risks.append(RISK_HOUR_BOUNDARY)
        recommendations.append(ADVICE_NEXT_HOUR)

    if is_low:
        engagement = Engagement.LOW
    elif is_peak:
        engagement = Engagement.HIGH
    else:
        engagement = Engagement.MODERATE

    return AnalysisResult(
        is_good_time=is_peak and not is_low,
        confidence=confidence,
        reason=_reason(is_peak=is_peak, is_low=is_low, is_weekend=is_weekend),
        next_best_time=next_best_time,
        next_best_at=next_best_at,
        current_engagement=engagement,
        risks=tuple(risks),
        recommendations=tuple(recommendations),
    )


class RecommendationEngine:
    """Engine bound to one set of tables and formatting options."""

    def __init__(
        self,
        tables: ScheduleTables = DEFAULT_SCHEDULE_TABLES,
        *,
        time_format: str = DEFAULT_TIME_FORMAT,
        weekend_aware_targets: bool = False,
    ) -> None:
        self.tables = tables
        self.time_format = time_format
        self.weekend_aware_targets = weekend_aware_targets

    def analyze(self, snapshot: TimeSnapshot) -> AnalysisResult:
        result = analyze(
            snapshot,
            self.tables,
            time_format=self.time_format,
            weekend_aware_targets=self.weekend_aware_targets,
        )
        logger.debug(
            "Analysed %02d:%02d (day %d): good=%s confidence=%d next=%s",
            snapshot.hour,
            snapshot.minute,
            snapshot.day_of_week,
            result.is_good_time,
            result.confidence,
            result.next_best_time,
        )
        return result
