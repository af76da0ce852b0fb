"""Entry point for the posting-time advisor."""

from __future__ import annotations

import argparse
import json
import logging
import os
import socket
import threading
import time
import uuid
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Final, Sequence

from postpulse.app import PostingAdvisor
from postpulse.config import load_config
from postpulse.services.timing import AnalysisResult

LOGGER = logging.getLogger(__name__)
_RUN_GUARD: Final[threading.Lock] = threading.Lock()
_IS_RUNNING = False


@dataclass(frozen=True, slots=True)
class RunContext:
    """Captures immutable metadata for a single advisor invocation."""

    trace_id: str
    instance_id: str
    wall_clock_ns: int
    monotonic_ns: int

    @property
    def started_at_iso(self) -> str:
        """Return the ISO8601 timestamp (UTC) for when the run began."""
        seconds = self.wall_clock_ns / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _build_run_context() -> RunContext:
    trace_id = os.getenv("POSTPULSE_TRACE_ID") or uuid.uuid4().hex
    instance_id = os.getenv("POSTPULSE_INSTANCE_ID") or socket.gethostname()
    return RunContext(
        trace_id=trace_id,
        instance_id=instance_id,
        wall_clock_ns=time.time_ns(),
        monotonic_ns=time.perf_counter_ns(),
    )


def _log_event(level: int, event: str, context: RunContext, **fields: Any) -> None:
    """Emit structured JSON logs with consistent tracing metadata."""
    payload: dict[str, Any] = {
        "event": event,
        "trace_id": context.trace_id,
        "instance_id": context.instance_id,
        "started_at": context.started_at_iso,
        **fields,
    }
    LOGGER.log(level, json.dumps(payload, default=str, separators=(",", ":")))


def _emit_metric(name: str, value: float, unit: str, context: RunContext, **labels: Any) -> None:
    metric_fields = {"metric_name": name, "value": value, "unit": unit, **labels}
    _log_event(logging.INFO, "metric", context, **metric_fields)


def _acquire_run_guard() -> bool:
    """Enforce a single advisor run per process."""
    global _IS_RUNNING
    with _RUN_GUARD:
        if _IS_RUNNING:
            return False
        _IS_RUNNING = True
        return True


def _release_run_guard() -> None:
    global _IS_RUNNING
    with _RUN_GUARD:
        _IS_RUNNING = False


def _stop_app(app: PostingAdvisor, context: RunContext, reason: str) -> None:
    _log_event(logging.WARNING, "advisor.stop_requested", context, reason=reason, analyses=app.analyses_run)
    with suppress(Exception):
        app.stop()


def render_card(result: AnalysisResult) -> str:
    """Render an analysis as plain text for the terminal."""
    headline = "Good time to post!" if result.is_good_time else "Not recommended"
    lines = [
        headline,
        f"  {result.reason}",
        f"  Confidence:         {result.confidence}%",
        f"  Next best time:     {result.next_best_time}",
        f"  Current engagement: {result.current_engagement.value}",
    ]
    if not result.is_good_time:
        if result.risks:
            lines.append("Potential risks:")
            lines.extend(f"  • {risk}" for risk in result.risks)
        if result.recommendations:
            lines.append("Recommendations:")
            lines.extend(f"  • {item}" for item in result.recommendations)
    return "\n".join(lines)


def result_printer(as_json: bool, *, compact: bool = False) -> Callable[[AnalysisResult], None]:
    """Return the stdout display callback for analysis results."""

    def _print(result: AnalysisResult) -> None:
        if as_json:
            indent = None if compact else 2
            print(json.dumps(result.as_payload(), indent=indent), flush=True)
        else:
            print(render_card(result), flush=True)

    return _print


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Check whether now is a good time to publish a post")
    p.add_argument("--json", action="store_true", help="Print the analysis payload as JSON")
    p.add_argument("--watch", action="store_true", help="Re-analyse every hour until interrupted")
    p.add_argument("--no-delay", action="store_true", help="Skip the pause before analysing")
    p.add_argument("--env-file", type=Path, help="Alternate .env file to load")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    """Bootstrap, observe, and run the posting-time advisor."""
    args = build_parser().parse_args(argv)
    context = _build_run_context()
    if not _acquire_run_guard():
        _log_event(logging.INFO, "advisor.already_running", context, detail="duplicate_main_invocation")
        return 1

    app: PostingAdvisor | None = None
    bootstrap_start_ns = time.perf_counter_ns()

    try:
        _log_event(logging.INFO, "advisor.bootstrap_start", context)
        config = load_config(args.env_file) if args.env_file else None
        app = PostingAdvisor(config, on_result=result_printer(args.json, compact=args.watch))
        bootstrap_ms = (time.perf_counter_ns() - bootstrap_start_ns) / 1_000_000
        _emit_metric("bootstrap_duration_ms", bootstrap_ms, "milliseconds", context)

        run_start_ns = time.perf_counter_ns()
        if args.watch:
            app.start()
        else:
            app.analyze_once(delay=not args.no_delay)
        runtime_ms = (time.perf_counter_ns() - run_start_ns) / 1_000_000
        _emit_metric("run_duration_ms", runtime_ms, "milliseconds", context)
        _log_event(
            logging.INFO,
            "advisor.run_completed",
            context,
            duration_ms=round(runtime_ms, 2),
            mode="watch" if args.watch else "once",
            analyses=app.analyses_run,
            **app.verdict_fields(),
        )
    except KeyboardInterrupt:
        if app is not None:
            _stop_app(app, context, reason="keyboard_interrupt")
        _log_event(logging.WARNING, "advisor.interrupted", context, signal="SIGINT")
    except Exception as exc:
        if app is not None:
            _stop_app(app, context, reason="unhandled_exception")
        error_fields = {"error_type": type(exc).__name__, "error_message": str(exc)}
        _emit_metric("run_failure", 1.0, "count", context, **error_fields)
        _log_event(logging.CRITICAL, "advisor.run_failed", context, **error_fields)
        raise
    finally:
        _release_run_guard()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
