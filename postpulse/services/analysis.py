"""Delayed, on-demand invocation of the posting-time engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..clock import TimeSnapshot, now
from ..config import AppConfig
from .timing import AnalysisResult, RecommendationEngine

logger = logging.getLogger(__name__)

Clock = Callable[[], TimeSnapshot]
ResultCallback = Callable[[AnalysisResult], None]


class AnalysisShell:
    """Runs the engine after a cosmetic pause and hands the result to the display.

    Each request reads the clock once after its own pause. Overlapping requests
    are neither serialised nor deduplicated; callers drop stale results.
    """

    def __init__(
        self,
        engine: RecommendationEngine,
        *,
        delay_seconds: float = 1.0,
        clock: Clock = now,
        on_complete: Optional[ResultCallback] = None,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        self.engine = engine
        self.delay_seconds = delay_seconds
        self._clock = clock
        self._on_complete = on_complete

    async def request_analysis(self) -> AnalysisResult:
        logger.debug("Analysis requested; waiting %.2fs", self.delay_seconds)
        await asyncio.sleep(self.delay_seconds)
        return self.analyze_now()

    def analyze_now(self) -> AnalysisResult:
        """Run the engine immediately against the current clock."""
        result = self.engine.analyze(self._clock())
        logger.info(
            "Posting window analysed: good=%s engagement=%s confidence=%d next=%s",
            result.is_good_time,
            result.current_engagement.value,
            result.confidence,
            result.next_best_time,
        )
        if self._on_complete is not None:
            self._on_complete(result)
        return result


def build_shell(config: AppConfig, on_complete: Optional[ResultCallback] = None) -> AnalysisShell:
    """Wire tables, engine and clock from configuration."""
    engine = RecommendationEngine(
        config.schedule_tables(),
        time_format=config.time_format,
        weekend_aware_targets=config.weekend_aware_targets,
    )
    tz = config.tzinfo()
    return AnalysisShell(
        engine,
        delay_seconds=config.analysis_delay_seconds,
        clock=lambda: now(tz),
        on_complete=on_complete,
    )


async def request_analysis(config: AppConfig) -> AnalysisResult:
    return await build_shell(config).request_analysis()
