"""Configuration loader for the posting-time advisor (Pydantic edition)."""

from __future__ import annotations

import logging
from datetime import tzinfo
from pathlib import Path
from typing import Annotated, Literal, Sequence

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .clock import resolve_timezone
from .tables import (
    DEFAULT_LOW_ENGAGEMENT_HOURS,
    DEFAULT_WEEKDAY_PEAK_HOURS,
    DEFAULT_WEEKEND_PEAK_HOURS,
    ScheduleTableError,
    ScheduleTables,
)

LOGGER = logging.getLogger(__name__)

HourList = Annotated[tuple[int, ...], NoDecode]


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded safely."""


class AppConfig(BaseSettings):
    """Strongly typed runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENVIRONMENT", "APP_ENV"),
    )
    log_path: Path = Field(
        default=Path("logs/postpulse.log"),
        validation_alias=AliasChoices("APP_LOG_PATH", "LOG_PATH"),
    )
    timezone: str | None = Field(default=None, validation_alias=AliasChoices("APP_TIMEZONE", "TZ_NAME"))

    # Analysis behaviour
    analysis_delay_seconds: float = Field(1.0, ge=0, validation_alias="APP_ANALYSIS_DELAY")
    time_format: str = Field("%I:%M %p", min_length=1, validation_alias="APP_TIME_FORMAT")
    weekend_aware_targets: bool = Field(False, validation_alias="APP_WEEKEND_AWARE_TARGETS")
    best_time_cron_minute: int = Field(5, ge=0, le=59, validation_alias="APP_BEST_TIME_MINUTE")

    # Hour tables
    weekday_peak_hours: HourList = Field(DEFAULT_WEEKDAY_PEAK_HOURS, validation_alias="APP_WEEKDAY_PEAK_HOURS")
    weekend_peak_hours: HourList = Field(DEFAULT_WEEKEND_PEAK_HOURS, validation_alias="APP_WEEKEND_PEAK_HOURS")
    low_engagement_hours: HourList = Field(
        DEFAULT_LOW_ENGAGEMENT_HOURS, validation_alias="APP_LOW_ENGAGEMENT_HOURS"
    )

    @field_validator("log_path", mode="after")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        expanded = value.expanduser()
        return expanded if expanded.is_absolute() else (Path.cwd() / expanded).resolve()

    @field_validator("weekday_peak_hours", "weekend_peak_hours", "low_engagement_hours", mode="before")
    @classmethod
    def _split_hours(cls, value: str | Sequence[int] | None) -> tuple[int, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(int(part) for part in value.replace("\n", ",").split(",") if part.strip())
        return tuple(value)

    @model_validator(mode="after")
    def _validate_tables(self) -> "AppConfig":
        try:
            self.schedule_tables()
        except ScheduleTableError as exc:
            raise ConfigError(f"Invalid hour tables: {exc}") from exc
        try:
            resolve_timezone(self.timezone)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        return self

    def schedule_tables(self) -> ScheduleTables:
        return ScheduleTables(
            weekday_peak_hours=self.weekday_peak_hours,
            weekend_peak_hours=frozenset(self.weekend_peak_hours),
            low_engagement_hours=frozenset(self.low_engagement_hours),
        )

    def tzinfo(self) -> tzinfo | None:
        return resolve_timezone(self.timezone)

    def ensure_runtime_directories(self) -> None:
        """Create directories required for runtime operation."""
        self.log_path.parent.mkdir(parents=True, exist_ok=True)


def load_config(env_path: Path | None = None) -> AppConfig:
    """Load configuration from .env/environment with validation."""
    load_kwargs: dict[str, str] = {}
    if env_path is not None:
        load_dotenv(env_path, override=False)
        load_kwargs["_env_file"] = str(env_path)
    else:
        load_dotenv(override=False)
    try:
        config = AppConfig(**load_kwargs)
    except ValidationError as exc:
        raise ConfigError("Invalid configuration") from exc

    config.ensure_runtime_directories()

    LOGGER.info(
        "AppConfig loaded",
        extra={
            "event": "config.loaded",
            "environment": config.environment,
            "paths": {"log": str(config.log_path)},
        },
    )
    return config
