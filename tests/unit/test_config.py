"""Tests for calbot/config.py

Tests YAML loading, environment overrides and validation errors.
"""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from calbot.config import ScheduleConfig, load_config
from calbot.errors import ConfigurationError


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def required_env():
    return {
        "ICAL_URL": "https://calendar.example.com/team.ics",
        "TELEGRAM_TOKEN": "123:ABC",
        "TELEGRAM_CHAT_ID": "-1001234567890",
    }


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "calbot.yaml"
    path.write_text(
        "feed:\n"
        "  url: https://calendar.example.com/from-yaml.ics\n"
        "  upcoming_days: 14\n"
        "telegram:\n"
        "  token: yaml-token\n"
        "  chat_id: '@team_channel'\n"
        "schedule:\n"
        "  timezone: Europe/Berlin\n"
        "  reminder_minutes: 15\n"
    )
    return path


# ─────────────────────────────────────────────────────────────────────────────
# Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_from_environment_only(self, tmp_path, required_env):
        config = load_config(tmp_path / "missing.yaml", environ=required_env)

        assert config.feed.url == "https://calendar.example.com/team.ics"
        assert config.telegram.chat_id == -1001234567890
        assert config.schedule.timezone == "Europe/Moscow"
        assert config.schedule.morning_time == "09:00"
        assert config.schedule.reminder_minutes == 30
        assert config.feed.upcoming_days == 7
        assert config.tz == ZoneInfo("Europe/Moscow")

    def test_yaml_values(self, config_file):
        config = load_config(config_file, environ={})

        assert config.feed.upcoming_days == 14
        assert config.telegram.chat_id == "@team_channel"
        assert config.schedule.timezone == "Europe/Berlin"
        assert config.schedule.reminder_minutes == 15

    def test_environment_overrides_yaml(self, config_file, required_env):
        env = {**required_env, "REMINDER_MINUTES": "5", "MORNING_SCHEDULE_TIME": "08:30"}

        config = load_config(config_file, environ=env)

        assert config.feed.url == "https://calendar.example.com/team.ics"
        assert config.telegram.token == "123:ABC"
        assert config.schedule.reminder_minutes == 5
        assert config.schedule.morning_time == "08:30"
        # Untouched yaml values survive
        assert config.schedule.timezone == "Europe/Berlin"

    def test_config_path_from_environment(self, config_file):
        config = load_config(environ={"CALBOT_CONFIG": str(config_file)})

        assert config.telegram.token == "yaml-token"

    def test_missing_required_values(self, tmp_path):
        with pytest.raises(ConfigurationError, match="feed"):
            load_config(tmp_path / "missing.yaml", environ={})

    @pytest.mark.parametrize(
        "override",
        [
            {"MORNING_SCHEDULE_TIME": "9am"},
            {"MORNING_SCHEDULE_TIME": "24:00"},
            {"TIMEZONE": "Mars/Olympus"},
            {"REMINDER_MINUTES": "0"},
            {"TELEGRAM_CHAT_ID": "team"},
            {"ICAL_URL": "ftp://calendar.example.com/x.ics"},
        ],
    )
    def test_invalid_values(self, tmp_path, required_env, override):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml", environ={**required_env, **override})

    def test_malformed_yaml(self, tmp_path, required_env):
        path = tmp_path / "bad.yaml"
        path.write_text("feed: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(path, environ=required_env)

    def test_non_mapping_section(self, tmp_path, required_env):
        path = tmp_path / "bad.yaml"
        path.write_text("schedule: every minute\n")

        with pytest.raises(ConfigurationError, match="schedule"):
            load_config(path, environ=required_env)

    def test_unknown_keys_rejected(self, tmp_path, required_env):
        path = tmp_path / "typo.yaml"
        path.write_text("schedule:\n  reminder_minute: 10\n")

        with pytest.raises(ConfigurationError, match="reminder_minute"):
            load_config(path, environ=required_env)

    def test_config_is_immutable(self, tmp_path, required_env):
        config = load_config(tmp_path / "missing.yaml", environ=required_env)

        with pytest.raises(ValidationError):
            config.schedule.reminder_minutes = 10


def test_schedule_defaults():
    settings = ScheduleConfig()

    assert settings.reminder_tolerance_seconds == 30
    assert settings.minute_interval_seconds == 60
    assert settings.change_interval_seconds == 300
    assert settings.week_ahead_on_start is True
