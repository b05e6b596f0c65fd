"""
Tool: Calendar Scheduler
Purpose: Poll the calendar feed and push agenda, reminders and change alerts

Runs forever once started:
1. Seeds the known-event map from the upcoming window (no notifications)
2. Sends a one-time week-ahead summary in the background
3. Drives two independent timers:
   - minute tick: morning schedule check + reminder check
   - change tick: change detection (new / moved / cancelled)

Each tick spawns its checks as separate tasks so a slow fetch never stalls
the timers. Overlapping runs of the same check are allowed; all tracker
reads and writes happen under one lock that is never held across a fetch
or a send.

Failures stay inside the check that hit them: a FetchError aborts that run
without touching the trackers, a DeliveryError is logged after the tracker
change was already committed, so nothing is ever resent.

Usage:
    scheduler = CalendarScheduler(feed, notifier, config.schedule)
    await scheduler.run()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Protocol

from calbot.automation.reminders import ReminderTracker
from calbot.automation.state import EventChange, EventStateTracker
from calbot.calendar.feed import day_window, upcoming_window
from calbot.calendar.models import CalendarEvent
from calbot.channels.formatter import (
    format_day_schedule,
    format_event_changed,
    format_reminder,
    format_week_ahead,
)
from calbot.config import ScheduleConfig
from calbot.errors import DeliveryError, FetchError
from calbot.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_UPCOMING_DAYS = 7


class EventSource(Protocol):
    async def fetch_events(
        self, window_start: datetime, window_end: datetime, tz: tzinfo | None = None
    ) -> list[CalendarEvent]: ...


class Notifier(Protocol):
    async def send(self, text: str) -> Any: ...


@dataclass
class SchedulerState:
    """Everything the checks share. Only touch the trackers while holding lock."""

    known_events: EventStateTracker = field(default_factory=EventStateTracker)
    reminders: ReminderTracker = field(default_factory=ReminderTracker)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    seeded: bool = False


class CalendarScheduler:
    """Owns the shared state and runs the periodic checks against it."""

    def __init__(
        self,
        source: EventSource,
        notifier: Notifier,
        settings: ScheduleConfig,
        upcoming_days: int = DEFAULT_UPCOMING_DAYS,
        clock: Callable[[], datetime] | None = None,
        state: SchedulerState | None = None,
    ):
        """
        Args:
            source: Event source (ICalFeedClient in production)
            notifier: Notification sink (TelegramNotifier in production)
            settings: Schedule section of the config
            upcoming_days: Length of the change-detection window
            clock: Returns the current aware time; defaults to now in settings.tz
            state: Pre-built state (tests share one across schedulers)
        """
        self.source = source
        self.notifier = notifier
        self.settings = settings
        self.tz = settings.tz
        self.upcoming_days = upcoming_days
        self.clock = clock or (lambda: datetime.now(self.tz))
        self.state = state or SchedulerState()

        self._tasks: set[asyncio.Task] = set()
        self._last_morning_date: date | None = None

    # ---- Startup ----

    async def seed(self) -> bool:
        """Load the upcoming window into the known map without notifying."""
        now = self.clock()
        try:
            events = await self.source.fetch_events(*upcoming_window(now, self.upcoming_days))
        except FetchError as e:
            logger.error("seed_failed", error=str(e))
            return False

        async with self.state.lock:
            count = self.state.known_events.seed(events)
            self.state.seeded = True
        logger.info("known_events_seeded", events=count, days=self.upcoming_days)
        return True

    async def send_week_ahead(self) -> None:
        """One-time summary of the upcoming window. Best effort, never retried."""
        now = self.clock()
        try:
            events = await self.source.fetch_events(*upcoming_window(now, self.upcoming_days))
        except FetchError as e:
            logger.error("week_ahead_fetch_failed", error=str(e))
            return
        await self._deliver(format_week_ahead(events), kind="week_ahead")

    # ---- Checks ----

    async def check_morning_schedule(self) -> None:
        """Send today's agenda when the wall clock reads the configured HH:MM."""
        now = self.clock()
        if now.strftime("%H:%M") != self.settings.morning_time:
            return
        if self._last_morning_date == now.date():
            return
        self._last_morning_date = now.date()

        logger.info("morning_schedule_due", date=now.date().isoformat())
        try:
            events = await self.source.fetch_events(*day_window(now))
        except FetchError as e:
            logger.error("morning_schedule_fetch_failed", error=str(e))
            return
        await self._deliver(format_day_schedule(events, now), kind="day_schedule")

    def reminder_window(self, now: datetime) -> tuple[datetime, datetime]:
        """Start-time range whose events are due for a reminder at now."""
        target = now + timedelta(minutes=self.settings.reminder_minutes)
        tolerance = timedelta(seconds=self.settings.reminder_tolerance_seconds)
        return target - tolerance, target + tolerance

    async def check_reminders(self) -> None:
        """Remind about events starting lead minutes from now, once per event."""
        now = self.clock()
        lead = self.settings.reminder_minutes
        window_start, window_end = self.reminder_window(now)
        try:
            events = await self.source.fetch_events(window_start, window_end)
        except FetchError as e:
            logger.error("reminder_fetch_failed", error=str(e))
            return

        for event in events:
            # The source returns overlapping events; only starts inside the window count
            if event.all_day or not (window_start <= event.start <= window_end):
                continue

            async with self.state.lock:
                first_time = self.state.reminders.mark(event.id, lead, event.start)
            if not first_time:
                continue

            logger.info("reminder_due", event_id=event.id, title=event.title, lead_minutes=lead)
            await self._deliver(format_reminder(event, lead), kind="reminder")

    async def check_changes(self) -> list[EventChange]:
        """Diff the upcoming window against the known map and alert on changes."""
        now = self.clock()
        try:
            events = await self.source.fetch_events(*upcoming_window(now, self.upcoming_days))
        except FetchError as e:
            logger.error("change_fetch_failed", error=str(e))
            return []

        retention = timedelta(hours=self.settings.stale_retention_hours)
        async with self.state.lock:
            if not self.state.seeded:
                # Startup seeding failed: treat this fetch as the baseline instead
                self.state.known_events.seed(events)
                self.state.seeded = True
                logger.info("known_events_seeded", events=len(events), late=True)
                return []

            changes = self.state.known_events.apply(events, now)
            pruned = self.state.known_events.prune(now - retention, keep={e.id for e in events})
            pruned += self.state.reminders.prune(now - retention)

        if pruned:
            logger.debug("stale_entries_pruned", count=pruned)

        for change in changes:
            logger.info(
                f"event_{change.kind.value}",
                event_id=change.event.id,
                title=change.event.title,
                start=change.event.start.isoformat(),
            )
            self._spawn(
                self._deliver(format_event_changed(change.event, change.kind), kind=change.kind.value),
                name=f"notify-{change.kind.value}",
            )
        return changes

    # ---- Delivery ----

    async def _deliver(self, text: str, kind: str) -> bool:
        try:
            await self.notifier.send(text)
        except DeliveryError as e:
            logger.error("delivery_failed", kind=kind, error=str(e))
            logger.debug("undelivered_text", kind=kind, text=text)
            return False
        return True

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Fire-and-forget task; the reference is held until it finishes."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("task_failed", task=task.get_name(), error=repr(exc))

    async def drain(self) -> None:
        """Wait for every in-flight check and notification task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ---- Main loop ----

    async def _tick(
        self,
        interval: float,
        checks: tuple[tuple[str, Callable[[], Awaitable[Any]]], ...],
    ) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            for name, check in checks:
                self._spawn(check(), name=name)

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                # Missed ticks (process was suspended) are dropped, not replayed
                skipped = int((now - next_tick) // interval) + 1
                next_tick += skipped * interval

    async def run(self) -> None:
        """Seed, announce, then tick forever. There is no stop method."""
        logger.info(
            "scheduler_started",
            morning_time=self.settings.morning_time,
            reminder_minutes=self.settings.reminder_minutes,
            timezone=self.settings.timezone,
        )

        await self.seed()

        if self.settings.week_ahead_on_start:
            self._spawn(self.send_week_ahead(), name="week-ahead")

        await asyncio.gather(
            self._tick(
                self.settings.minute_interval_seconds,
                (
                    ("morning-schedule", self.check_morning_schedule),
                    ("reminders", self.check_reminders),
                ),
            ),
            self._tick(
                self.settings.change_interval_seconds,
                (("changes", self.check_changes),),
            ),
        )


__all__ = ["CalendarScheduler", "EventSource", "Notifier", "SchedulerState"]
