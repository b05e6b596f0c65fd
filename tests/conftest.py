"""Shared test fixtures for calbot tests.

This module provides common fixtures used across all test modules:
- A fixed timezone and a controllable clock
- A CalendarEvent factory
- In-memory fakes for the event source and the notifier

Usage:
    def test_something(make_event, fake_source):
        fake_source.events = [make_event("a", minutes=30)]
        ...
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from calbot.calendar.models import CalendarEvent
from calbot.config import ScheduleConfig
from calbot.errors import DeliveryError, FetchError


# ─────────────────────────────────────────────────────────────────────────────
# Time Fixtures
# ─────────────────────────────────────────────────────────────────────────────

TZ = ZoneInfo("Europe/Moscow")

# A Tuesday, chosen so the day window never crosses a DST switch
BASE_TIME = datetime(2026, 3, 10, 8, 0, tzinfo=TZ)


class FakeClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def tz() -> ZoneInfo:
    return TZ


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE_TIME)


# ─────────────────────────────────────────────────────────────────────────────
# Event Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_event():
    """Factory for events relative to BASE_TIME.

    Usage:
        make_event("standup", minutes=30)               # starts 08:30
        make_event("lunch", start=some_dt, duration=60)
    """

    def _make(
        event_id: str,
        minutes: float = 60,
        title: str | None = None,
        start: datetime | None = None,
        duration: float | None = 30,
        **kwargs,
    ) -> CalendarEvent:
        if start is None:
            start = BASE_TIME + timedelta(minutes=minutes)
        end = start + timedelta(minutes=duration) if duration is not None else None
        return CalendarEvent.create(
            id=event_id,
            title=title or event_id.capitalize(),
            start=start,
            end=end,
            **kwargs,
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Fakes
# ─────────────────────────────────────────────────────────────────────────────


class FakeSource:
    """Event source returning a configurable list, filtered to the window."""

    def __init__(self):
        self.events: list[CalendarEvent] = []
        self.error: Exception | None = None
        self.calls: list[tuple[datetime, datetime]] = []

    async def fetch_events(self, window_start, window_end, tz=None):
        self.calls.append((window_start, window_end))
        if self.error is not None:
            raise self.error
        return sorted(
            (
                e
                for e in self.events
                if e.start < window_end and (e.end or e.start) >= window_start
            ),
            key=lambda e: e.start,
        )


class FakeNotifier:
    """Records every text it is asked to send."""

    def __init__(self):
        self.sent: list[str] = []
        self.fail = False

    async def send(self, text: str):
        if self.fail:
            raise DeliveryError("chat not found")
        self.sent.append(text)
        return True


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("Calendar feed returned status 503")


@pytest.fixture
def schedule_config() -> ScheduleConfig:
    return ScheduleConfig(
        timezone="Europe/Moscow",
        morning_time="09:00",
        reminder_minutes=30,
        week_ahead_on_start=False,
    )
