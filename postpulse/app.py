"""Top-level application controller for the posting-time advisor."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import threading
from types import FrameType
from typing import Any, Callable, Optional

from .config import AppConfig, load_config
from .logging_utils import configure_logging
from .scheduler import SchedulerManager
from .services.analysis import AnalysisShell, build_shell
from .services.timing import AnalysisResult

logger = logging.getLogger(__name__)

BEST_TIME_JOB_ID = "best_time_window"


def _log_event(level: int, event: str, **fields: Any) -> None:
    """Emit structured log events with consistent metadata."""
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, separators=(",", ":")))


class PostingAdvisor:
    """Coordinates on-demand and scheduled posting-window analyses."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        on_result: Optional[Callable[[AnalysisResult], None]] = None,
        setup_logging: bool = True,
    ) -> None:
        self.config = config or load_config()
        if setup_logging:
            self.config.ensure_runtime_directories()
            configure_logging(self.config)
        self._on_result = on_result
        self.last_result: AnalysisResult | None = None
        self.analyses_run = 0
        self.shell: AnalysisShell = build_shell(self.config, on_complete=self._deliver)
        self.scheduler = SchedulerManager(self.config.tzinfo())
        self._stop_event = threading.Event()
        self._lifecycle_lock = threading.Lock()
        self._is_running = False
        self._signals_installed = False
        self._jobs_configured = False
        _log_event(logging.INFO, "advisor.initialized", environment=self.config.environment)

    def _deliver(self, result: AnalysisResult) -> None:
        """Remember the latest verdict and pass it on to the display callback."""
        self.last_result = result
        self.analyses_run += 1
        if self._on_result is not None:
            self._on_result(result)

    def analyze_once(self, *, delay: bool = True) -> AnalysisResult:
        """Run a single analysis, including the cosmetic pause unless disabled."""
        if not delay:
            return self.shell.analyze_now()
        return asyncio.run(self.shell.request_analysis())

    def _configure_jobs(self) -> None:
        """Register the hourly re-analysis with the background scheduler."""
        if self._jobs_configured:
            return
        try:
            self.scheduler.add_recurring_job(
                self.shell.analyze_now,
                trigger="cron",
                id=BEST_TIME_JOB_ID,
                minute=self.config.best_time_cron_minute,
            )
        except Exception as exc:
            _log_event(logging.CRITICAL, "advisor.job_registration_failed", job_id=BEST_TIME_JOB_ID, error=str(exc))
            raise RuntimeError(f"Failed to register job {BEST_TIME_JOB_ID}") from exc
        self._jobs_configured = True
        _log_event(
            logging.DEBUG,
            "advisor.job_registered",
            job_id=BEST_TIME_JOB_ID,
            minute=self.config.best_time_cron_minute,
        )

    def _install_signal_handlers(self) -> None:
        """Attach SIGTERM/SIGINT handlers when running on the main thread."""
        if self._signals_installed:
            return
        if threading.current_thread() is not threading.main_thread():
            _log_event(logging.WARNING, "advisor.signal_handlers_skipped", reason="not_main_thread")
            return

        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)
        self._signals_installed = True
        _log_event(logging.INFO, "advisor.signal_handlers_installed")

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        _log_event(logging.WARNING, "advisor.signal_received", signal=signum)
        self.stop()

    def start(self) -> None:
        """Analyse now, start the hourly schedule and block until stopped."""
        with self._lifecycle_lock:
            if self._is_running:
                _log_event(logging.INFO, "advisor.start_ignored", reason="already_running")
                return
            self._is_running = True
            self._stop_event.clear()

        self._install_signal_handlers()
        self._configure_jobs()
        _log_event(logging.INFO, "advisor.starting", minute=self.config.best_time_cron_minute)

        try:
            self.scheduler.run_job(BEST_TIME_JOB_ID, self.shell.analyze_now)
            self.scheduler.start()
            _log_event(logging.INFO, "advisor.started", **self.verdict_fields())
            self._stop_event.wait()
        except Exception as exc:
            _log_event(logging.CRITICAL, "advisor.start_failed", error=str(exc))
            raise
        finally:
            self._shutdown_resources()

    def _shutdown_resources(self) -> None:
        try:
            self.scheduler.shutdown()
            _log_event(logging.INFO, "advisor.scheduler_shutdown", analyses=self.analyses_run)
        except Exception as exc:
            _log_event(logging.ERROR, "advisor.scheduler_shutdown_failed", error=str(exc))
        finally:
            with self._lifecycle_lock:
                self._is_running = False
        self._stop_event.clear()

    def stop(self) -> None:
        """Signal the watch loop to stop."""
        with self._lifecycle_lock:
            if not self._is_running:
                _log_event(logging.INFO, "advisor.stop_ignored", reason="not_running")
                return
            if self._stop_event.is_set():
                _log_event(logging.DEBUG, "advisor.stop_redundant")
                return
            self._stop_event.set()
            _log_event(logging.WARNING, "advisor.stop_requested", analyses=self.analyses_run)

    def verdict_fields(self) -> dict[str, Any]:
        """Summarise the latest analysis for structured log events."""
        result = self.last_result
        if result is None:
            return {}
        return {
            "good_time": result.is_good_time,
            "confidence": result.confidence,
            "engagement": result.current_engagement.value,
            "next_best_time": result.next_best_time,
        }

    @property
    def is_running(self) -> bool:
        with self._lifecycle_lock:
            return self._is_running

    def health_snapshot(self) -> dict[str, Any]:
        """Return current health metadata for CLI calls."""
        snapshot = self.scheduler.snapshot()
        return {
            "environment": self.config.environment,
            "scheduler": {
                "total_jobs": snapshot.total_jobs,
                "running": snapshot.running,
                "next_runs": snapshot.next_runs,
                "failures": dict(self.scheduler.failures),
            },
            "analyses": self.analyses_run,
            "last_analysis": self.last_result.as_payload() if self.last_result else None,
        }
