"""Tests for the posting-time recommendation engine."""

from datetime import datetime, timedelta

import pytest

from conftest import MONDAY, SATURDAY, SUNDAY, snapshot_at
from postpulse.services.timing import (
    ADVICE_NEXT_HOUR,
    ADVICE_WEEKEND_TIMING,
    RISK_HOUR_BOUNDARY,
    RISK_LOW_AUDIENCE,
    RISK_REDUCED_VISIBILITY,
    RISK_WEEKEND_PATTERN,
    Engagement,
    RecommendationEngine,
    analyze,
    confidence_for_distance,
    nearest_peak_distance,
    next_peak_hour,
)
from postpulse.tables import DEFAULT_SCHEDULE_TABLES, ScheduleTables

HHMM = "%H:%M"


class TestScenarios:
    """Worked examples for typical posting moments."""

    def test_weekday_peak_hour(self):
        """Monday 10:00 is a peak hour with no risks."""
        result = analyze(snapshot_at(MONDAY, 10), time_format=HHMM)
        assert result.is_good_time is True
        assert result.confidence == 100
        assert result.current_engagement is Engagement.HIGH
        assert result.risks == ()
        assert result.recommendations == ()
        assert result.reason == "Current time aligns with peak engagement hours"
        assert result.next_best_at == MONDAY.replace(hour=12)

    def test_weekday_small_hours(self):
        """Monday 02:00 is low engagement and points at 09:00 the same day."""
        result = analyze(snapshot_at(MONDAY, 2), time_format=HHMM)
        assert result.is_good_time is False
        assert result.confidence == 0
        assert result.current_engagement is Engagement.LOW
        assert result.risks == (RISK_LOW_AUDIENCE, RISK_REDUCED_VISIBILITY)
        assert result.recommendations == ("Wait until 09:00 for better engagement",)
        assert result.next_best_at == MONDAY.replace(hour=9)
        assert result.next_best_time == "09:00"
        assert result.reason == "Current time shows very low engagement levels"

    def test_saturday_late_afternoon(self):
        """Saturday 16:50 is moderate, off the weekend peaks and near the hour boundary."""
        result = analyze(snapshot_at(SATURDAY, 16, 50), time_format=HHMM)
        assert result.is_good_time is False
        assert result.current_engagement is Engagement.MODERATE
        assert result.confidence == 85
        assert result.risks == (RISK_WEEKEND_PATTERN, RISK_HOUR_BOUNDARY)
        assert result.recommendations == (ADVICE_WEEKEND_TIMING, ADVICE_NEXT_HOUR)
        assert not any(item.startswith("Wait until") for item in result.recommendations)
        assert result.reason == "Current time shows moderate engagement levels during weekends"
        assert result.next_best_at == SATURDAY.replace(hour=19)

    def test_late_night_wraps_to_next_day(self):
        """Monday 23:00 wraps to the first peak hour on Tuesday."""
        result = analyze(snapshot_at(MONDAY, 23), time_format=HHMM)
        assert result.current_engagement is Engagement.LOW
        assert result.confidence == 70
        assert result.next_best_at == (MONDAY + timedelta(days=1)).replace(hour=9)
        assert result.next_best_at.date() > MONDAY.date()
        assert result.recommendations == ("Wait until 09:00 for better engagement",)

    def test_weekend_peak_reason(self):
        """Sunday 11:00 is a weekend peak even though 11 is not a weekday peak."""
        result = analyze(snapshot_at(SUNDAY, 11), time_format=HHMM)
        assert result.is_good_time is True
        assert result.current_engagement is Engagement.HIGH
        assert result.reason == "Current time aligns with peak engagement hours for weekends"
        assert result.risks == ()

    def test_weekday_hour_off_peak_is_moderate(self):
        """Monday 17:00 sits between two peaks."""
        result = analyze(snapshot_at(MONDAY, 17))
        assert result.current_engagement is Engagement.MODERATE
        assert result.confidence == 70
        assert result.reason == "Current time shows moderate engagement levels"

    def test_all_three_risk_groups_fire_in_order(self):
        """Saturday 23:50 collects low-engagement, weekend and boundary risks."""
        result = analyze(snapshot_at(SATURDAY, 23, 50), time_format=HHMM)
        assert result.risks == (
            RISK_LOW_AUDIENCE,
            RISK_REDUCED_VISIBILITY,
            RISK_WEEKEND_PATTERN,
            RISK_HOUR_BOUNDARY,
        )
        assert result.recommendations == (
            "Wait until 09:00 for better engagement",
            ADVICE_WEEKEND_TIMING,
            ADVICE_NEXT_HOUR,
        )
        assert result.reason == "Current time shows very low engagement levels during weekends"


class TestMinuteBoundary:
    """The approaching-hour warning starts at minute 45."""

    def test_minute_44_has_no_warning(self):
        result = analyze(snapshot_at(MONDAY, 10, 44))
        assert RISK_HOUR_BOUNDARY not in result.risks

    def test_minute_45_warns(self):
        result = analyze(snapshot_at(MONDAY, 10, 45))
        assert result.risks == (RISK_HOUR_BOUNDARY,)
        assert result.recommendations == (ADVICE_NEXT_HOUR,)
        assert result.is_good_time is True


class TestNextBestTime:
    """Next recommended slot selection."""

    def test_next_peak_hour_is_strictly_greater(self):
        assert next_peak_hour(9, (9, 10, 12)) == 10

    def test_next_peak_hour_wraps(self):
        assert next_peak_hour(21, (9, 10, 21)) == 9

    def test_last_peak_hour_rolls_to_tomorrow(self):
        """Monday 21:30 points at 09:00 Tuesday."""
        result = analyze(snapshot_at(MONDAY, 21, 30))
        assert result.next_best_at == datetime(2026, 10, 20, 9, 0)

    def test_candidate_equal_to_now_moves_a_day(self):
        """A single-peak table evaluated exactly on the peak recommends tomorrow."""
        tables = ScheduleTables((9,), frozenset({10}), frozenset({0}))
        result = analyze(snapshot_at(MONDAY, 9), tables)
        assert result.next_best_at == datetime(2026, 10, 20, 9, 0)

    @pytest.mark.parametrize("day", [MONDAY, SATURDAY, SUNDAY])
    def test_always_strictly_in_the_future(self, day):
        for hour in range(24):
            for minute in (0, 30, 59):
                snapshot = snapshot_at(day, hour, minute, 59)
                result = analyze(snapshot)
                assert result.next_best_at > snapshot.instant
                assert result.next_best_at - snapshot.instant <= timedelta(days=1)

    def test_default_format_is_two_digit_clock(self):
        result = analyze(snapshot_at(MONDAY, 2))
        assert result.next_best_time == result.next_best_at.strftime("%I:%M %p")
        assert result.next_best_time.startswith("09:00")


class TestConfidence:
    """Distance-based confidence score."""

    def test_non_increasing_and_floors_at_zero(self):
        scores = [confidence_for_distance(distance) for distance in range(24)]
        assert scores == sorted(scores, reverse=True)
        assert scores[:7] == [100, 85, 70, 55, 40, 25, 10]
        assert all(score == 0 for score in scores[7:])

    def test_always_within_bounds(self):
        for day in (MONDAY, SATURDAY):
            for hour in range(24):
                assert 0 <= analyze(snapshot_at(day, hour)).confidence <= 100

    def test_distance_at_equidistant_hour(self):
        """An hour midway between two peaks is one gap away from either."""
        assert nearest_peak_distance(11, (10, 12)) == 1
        assert nearest_peak_distance(17, (15, 19)) == 2

    def test_weekend_uses_weekday_table_by_default(self):
        """Saturday 18:00 is measured against weekday peak 19."""
        result = analyze(snapshot_at(SATURDAY, 18))
        assert result.confidence == 85
        assert result.next_best_at == SATURDAY.replace(hour=19)


class TestWeekendAwareTargets:
    """Opt-in variant measuring weekends against the weekend table."""

    def test_weekend_targets_switch_tables(self):
        result = analyze(snapshot_at(SATURDAY, 18), weekend_aware_targets=True)
        assert result.confidence == 70
        assert result.next_best_at == SATURDAY.replace(hour=20)

    def test_weekday_is_unchanged(self):
        default = analyze(snapshot_at(MONDAY, 18))
        aware = analyze(snapshot_at(MONDAY, 18), weekend_aware_targets=True)
        assert default == aware

    def test_classification_is_unchanged(self):
        default = analyze(snapshot_at(SUNDAY, 16, 50))
        aware = analyze(snapshot_at(SUNDAY, 16, 50), weekend_aware_targets=True)
        assert default.is_good_time == aware.is_good_time
        assert default.current_engagement == aware.current_engagement
        assert default.risks == aware.risks


class TestInvariants:
    """Properties that hold for every moment of the week."""

    @pytest.mark.parametrize("day", [MONDAY, SATURDAY])
    def test_good_time_matches_peak_and_not_low(self, day):
        tables = DEFAULT_SCHEDULE_TABLES
        weekend = day is SATURDAY
        for hour in range(24):
            result = analyze(snapshot_at(day, hour), tables)
            is_peak = tables.is_peak(hour, weekend=weekend)
            is_low = tables.is_low_engagement(hour)
            assert result.is_good_time == (is_peak and not is_low)

    def test_deterministic(self):
        snapshot = snapshot_at(SATURDAY, 16, 50)
        assert analyze(snapshot) == analyze(snapshot)

    def test_engine_matches_function(self):
        engine = RecommendationEngine(time_format=HHMM, weekend_aware_targets=True)
        snapshot = snapshot_at(SUNDAY, 7, 15)
        assert engine.analyze(snapshot) == analyze(snapshot, time_format=HHMM, weekend_aware_targets=True)

    def test_substituted_tables(self):
        """Alternate tables change the verdict."""
        tables = ScheduleTables((6, 7), frozenset({6}), frozenset({2}))
        result = analyze(snapshot_at(MONDAY, 7), tables)
        assert result.is_good_time is True
        assert result.confidence == 100
        assert result.next_best_at == datetime(2026, 10, 20, 6, 0)


class TestPayload:
    """Display payload for dashboard widgets."""

    def test_payload_keys_and_values(self):
        result = analyze(snapshot_at(SATURDAY, 16, 50), time_format=HHMM)
        payload = result.as_payload()
        assert payload == {
            "isGoodTime": False,
            "confidence": 85,
            "reason": "Current time shows moderate engagement levels during weekends",
            "nextBestTime": "19:00",
            "currentEngagement": "Moderate",
            "risks": [RISK_WEEKEND_PATTERN, RISK_HOUR_BOUNDARY],
            "recommendations": [ADVICE_WEEKEND_TIMING, ADVICE_NEXT_HOUR],
        }
