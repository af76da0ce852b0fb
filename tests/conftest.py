"""Shared fixtures for the posting-time advisor tests."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import pytest

from postpulse.clock import TimeSnapshot
from postpulse.config import AppConfig

# 2026-10-19 is a Monday; 2026-10-24 and 2026-10-25 are the following weekend.
MONDAY = datetime(2026, 10, 19)
SATURDAY = datetime(2026, 10, 24)
SUNDAY = datetime(2026, 10, 25)


def snapshot_at(day: datetime, hour: int, minute: int = 0, second: int = 0) -> TimeSnapshot:
    return TimeSnapshot.from_datetime(day.replace(hour=hour, minute=minute, second=second))


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AppConfig]:
    """Build an AppConfig that ignores .env files and logs under tmp_path."""

    def _make(**env: Any) -> AppConfig:
        env.setdefault("APP_LOG_PATH", str(tmp_path / "logs" / "postpulse.log"))
        return AppConfig(_env_file=None, **env)

    return _make


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
