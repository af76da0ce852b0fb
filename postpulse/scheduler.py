"""Scheduler management for recurring posting-window analyses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import STATE_RUNNING
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


JobCallable = Callable[[], None]


@dataclass(frozen=True, slots=True)
class SchedulerSnapshot:
    """Snapshot of job registrations and high-level runtime state."""

    total_jobs: int
    running: bool
    next_runs: dict[str, str | None]


class SchedulerManager:
    """Wrap APScheduler with structured logging and failure counting."""

    def __init__(self, tz: object | None = None) -> None:
        scheduler_kwargs: dict[str, object] = {}
        if tz is not None:
            scheduler_kwargs["timezone"] = tz
        self.scheduler = BackgroundScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 90,
            },
            **scheduler_kwargs,
        )
        self.failures: dict[str, int] = {}

    def start(self) -> None:
        self.scheduler.start()
        logger.info("Scheduler started with %d jobs", len(self.scheduler.get_jobs()))

    def shutdown(self) -> None:
        if self.scheduler.state != STATE_RUNNING:
            return
        self.scheduler.shutdown(wait=True)
        logger.info("Scheduler shutdown complete.")

    def add_recurring_job(
        self,
        func: JobCallable,
        *,
        trigger: str,
        id: str,
        **trigger_kwargs,
    ) -> None:
        trigger_kwargs.setdefault("timezone", self.scheduler.timezone)
        if trigger == "interval":
            trig = IntervalTrigger(**trigger_kwargs)
        elif trigger == "cron":
            trig = CronTrigger(**trigger_kwargs)
        else:
            raise ValueError(f"Unsupported trigger type: {trigger}")

        def wrapped_job() -> None:
            self.run_job(id, func)

        # Pending jobs only honour replace_existing once the scheduler starts.
        if self.scheduler.get_job(id) is not None:
            self.scheduler.remove_job(id)
        self.scheduler.add_job(
            wrapped_job,
            trig,
            id=id,
            replace_existing=True,
            max_instances=1,
        )
        logger.info("Registered job %s with trigger %s", id, trigger)

    def run_job(self, job_id: str, func: JobCallable) -> bool:
        """Run ``func`` once with timing; failures are logged and counted."""
        start_time = datetime.now(timezone.utc)
        try:
            logger.debug("Running job %s", job_id)
            func()
        except Exception:
            duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            logger.exception("Job %s failed after %.2fms", job_id, duration_ms)
            self.failures[job_id] = self.failures.get(job_id, 0) + 1
            return False
        duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
        logger.debug("Job %s completed in %.2fms", job_id, duration_ms)
        return True

    def snapshot(self) -> SchedulerSnapshot:
        """Return a snapshot of scheduler state for external health checks."""
        jobs = self.scheduler.get_jobs()
        next_runs = {
            job.id: _next_run_iso(job) for job in jobs
        }
        running = self.scheduler.state == STATE_RUNNING
        return SchedulerSnapshot(total_jobs=len(jobs), running=running, next_runs=next_runs)


def _next_run_iso(job) -> str | None:
    # Pending jobs (scheduler not started) carry no next_run_time attribute yet.
    next_run = getattr(job, "next_run_time", None)
    return next_run.isoformat() if next_run else None
