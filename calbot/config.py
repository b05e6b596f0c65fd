"""
Tool: Configuration
Purpose: Load and validate calbot settings

Settings come from args/calbot.yaml (or the file named by CALBOT_CONFIG),
then environment variables override the values deployments usually change.
A .env file in the working directory is loaded first.

Environment:
    ICAL_URL               - Calendar feed URL (required)
    TELEGRAM_TOKEN         - Bot token from BotFather (required)
    TELEGRAM_CHAT_ID       - Destination chat id or @channel (required)
    TIMEZONE               - IANA zone name (default: Europe/Moscow)
    MORNING_SCHEDULE_TIME  - HH:MM for the daily agenda (default: 09:00)
    REMINDER_MINUTES       - Reminder lead time in minutes (default: 30)
    CALBOT_LOG_LEVEL       - Log level (default: INFO)
    CALBOT_LOG_FORMAT      - console | json (default: console)

Usage:
    from calbot.config import load_config

    config = load_config()
    print(config.schedule.reminder_minutes)
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from calbot import CONFIG_PATH
from calbot.errors import ConfigurationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# env var -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ICAL_URL": ("feed", "url"),
    "TELEGRAM_TOKEN": ("telegram", "token"),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id"),
    "TIMEZONE": ("schedule", "timezone"),
    "MORNING_SCHEDULE_TIME": ("schedule", "morning_time"),
    "REMINDER_MINUTES": ("schedule", "reminder_minutes"),
    "CALBOT_LOG_LEVEL": ("logging", "level"),
    "CALBOT_LOG_FORMAT": ("logging", "format"),
}


# =============================================================================
# Models
# =============================================================================


class FeedConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    url: str = Field(min_length=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    upcoming_days: int = Field(default=7, ge=1)

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://", "webcal://")):
            raise ValueError("feed url must start with http://, https:// or webcal://")
        return value


class TelegramConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    token: str = Field(min_length=1)
    chat_id: Union[int, str]

    @field_validator("chat_id", mode="before")
    @classmethod
    def _parse_chat_id(cls, value: Any) -> Any:
        # Numeric ids arrive as strings from the environment; @channel names stay strings
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("@"):
                return value
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"chat_id must be an integer or @channel, got {value!r}")
        return value


class ScheduleConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    timezone: str = Field(default="Europe/Moscow")
    morning_time: str = Field(default="09:00")
    reminder_minutes: int = Field(default=30, ge=1)
    reminder_tolerance_seconds: int = Field(default=30, ge=0)
    minute_interval_seconds: float = Field(default=60.0, gt=0)
    change_interval_seconds: float = Field(default=300.0, gt=0)
    stale_retention_hours: float = Field(default=24.0, gt=0)
    week_ahead_on_start: bool = Field(default=True)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {value!r}")
        return value

    @field_validator("morning_time")
    @classmethod
    def _check_morning_time(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"morning_time must be HH:MM, got {value!r}")
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    level: str = Field(default="INFO")
    format: str = Field(default="console", pattern="^(console|json)$")


class CalbotConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    feed: FeedConfig
    telegram: TelegramConfig
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def tz(self) -> ZoneInfo:
        return self.schedule.tz


# =============================================================================
# Loading
# =============================================================================


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return raw


def _apply_env(raw: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for section, values in raw.items():
        if values is not None and not isinstance(values, dict):
            raise ConfigurationError(f"Section '{section}' must be a mapping")
        merged[section] = dict(values or {})
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            merged.setdefault(section, {})[key] = value
    return merged


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def load_config(
    path: Path | str | None = None,
    environ: dict[str, str] | None = None,
    dotenv: bool = True,
) -> CalbotConfig:
    """
    Build the validated configuration.

    Args:
        path: YAML file; defaults to $CALBOT_CONFIG or args/calbot.yaml
        environ: Environment mapping (default: os.environ)
        dotenv: Load .env into os.environ first

    Returns:
        Frozen CalbotConfig

    Raises:
        ConfigurationError: on any missing or invalid value
    """
    if dotenv and environ is None:
        load_dotenv()
    env = dict(os.environ if environ is None else environ)

    if path is None:
        path = env.get("CALBOT_CONFIG") or CONFIG_PATH
    raw = _apply_env(_read_yaml(Path(path)), env)

    try:
        return CalbotConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {_describe(e)}") from e


__all__ = [
    "CalbotConfig",
    "ENV_OVERRIDES",
    "FeedConfig",
    "LoggingConfig",
    "ScheduleConfig",
    "TelegramConfig",
    "load_config",
]
