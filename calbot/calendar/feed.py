"""
Tool: iCalendar Feed Client
Purpose: Fetch a remote .ics feed and return the events in a time window

Features:
- Async download via httpx (redirects followed, webcal:// accepted)
- Recurring series expanded with recurring_ical_events
- Each occurrence of a series gets its own identity
- Events without a title or UID are dropped
- Results sorted by start time

Usage:
    from calbot.calendar.feed import ICalFeedClient, upcoming_window

    async with ICalFeedClient(url, tz) as feed:
        start, end = upcoming_window(datetime.now(tz), days=7)
        events = await feed.fetch_events(start, end)

Dependencies:
    - httpx
    - icalendar
    - recurring-ical-events
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

import httpx
import recurring_ical_events
from icalendar import Calendar

from calbot.calendar.models import CalendarEvent
from calbot.errors import FetchError
from calbot.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


# =============================================================================
# Time windows
# =============================================================================


def day_window(now: datetime) -> tuple[datetime, datetime]:
    """Local midnight to the following midnight for the day containing now."""
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    end = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return start, end


def upcoming_window(now: datetime, days: int = 7) -> tuple[datetime, datetime]:
    """From now to now + days."""
    return now, now + timedelta(days=days)


def normalize_feed_url(url: str) -> str:
    if url.startswith("webcal://"):
        return "https://" + url[len("webcal://"):]
    return url


# =============================================================================
# Parsing
# =============================================================================


def _localize(value: date | datetime, tz: tzinfo) -> tuple[datetime, bool]:
    """Return (aware datetime in tz, is_all_day)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # Floating time: interpret in the configured zone
            value = value.replace(tzinfo=tz)
        return value.astimezone(tz), False
    return datetime.combine(value, time.min, tzinfo=tz), True


def _stamp(value: date | datetime) -> str:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return value.isoformat()


def recurring_uids(calendar: Calendar) -> set[str]:
    """UIDs of series masters (RRULE or RDATE) in the unexpanded feed."""
    uids = set()
    for component in calendar.walk("VEVENT"):
        if component.get("RRULE") is not None or component.get("RDATE") is not None:
            uids.add(_text(component, "UID"))
    return uids


def _identity(component: Any, uid: str, recurring: bool) -> str:
    # Single events keep the bare UID so a reschedule stays the same event
    if not recurring:
        return uid
    recurrence_id = component.get("RECURRENCE-ID")
    anchor = recurrence_id if recurrence_id is not None else component.get("DTSTART")
    return f"{uid}@{_stamp(anchor.dt)}"


def _text(component: Any, name: str) -> str:
    value = component.get(name)
    return str(value).strip() if value is not None else ""


def convert_component(
    component: Any, tz: tzinfo, recurring: bool = False
) -> CalendarEvent | None:
    """
    Convert one VEVENT occurrence; None when it is unusable.

    recurring marks occurrences of a series; they are keyed by their
    original occurrence time, everything else by UID alone.
    """
    uid = _text(component, "UID")
    title = _text(component, "SUMMARY")
    dtstart = component.get("DTSTART")
    if not uid or not title or dtstart is None:
        return None
    if _text(component, "STATUS").upper() == "CANCELLED":
        return None

    start, all_day = _localize(dtstart.dt, tz)

    end = None
    dtend = component.get("DTEND")
    duration = component.get("DURATION")
    if dtend is not None:
        end, _ = _localize(dtend.dt, tz)
    elif duration is not None:
        end = start + duration.dt

    updated = None
    last_modified = component.get("LAST-MODIFIED")
    if last_modified is not None:
        updated, _ = _localize(last_modified.dt, tz)

    return CalendarEvent.create(
        id=_identity(component, uid, recurring),
        title=title,
        start=start,
        end=end,
        location=_text(component, "LOCATION"),
        description=_text(component, "DESCRIPTION"),
        all_day=all_day,
        updated=updated,
    )


def parse_calendar(
    payload: bytes | str,
    window_start: datetime,
    window_end: datetime,
    tz: tzinfo,
) -> list[CalendarEvent]:
    """
    Parse an iCalendar document and return events overlapping the window.

    Raises:
        ValueError: the payload is not a valid calendar
    """
    calendar = Calendar.from_ical(payload)
    series = recurring_uids(calendar)
    occurrences = recurring_ical_events.of(
        calendar, keep_recurrence_attributes=True
    ).between(window_start, window_end)

    events = []
    for component in occurrences:
        event = convert_component(component, tz, recurring=_text(component, "UID") in series)
        if event is not None:
            events.append(event)

    events.sort(key=lambda e: e.start)
    return events


# =============================================================================
# Client
# =============================================================================


class ICalFeedClient:
    """
    Event source backed by a single iCalendar URL.

    The feed is downloaded on every call; nothing is cached between calls.
    """

    def __init__(
        self,
        url: str,
        tz: tzinfo,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            url: Feed URL (http, https or webcal)
            tz: Zone the returned events are expressed in
            timeout: Per-request timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
        """
        self.url = normalize_feed_url(url)
        self.tz = tz
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> ICalFeedClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _download(self) -> bytes:
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Calendar feed returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Calendar download failed: {e}") from e
        return response.content

    async def fetch_events(
        self,
        window_start: datetime,
        window_end: datetime,
        tz: tzinfo | None = None,
    ) -> list[CalendarEvent]:
        """
        Return events overlapping [window_start, window_end), ordered by start.

        Raises:
            FetchError: download or parse failure
        """
        zone = tz or self.tz
        payload = await self._download()
        try:
            events = await asyncio.to_thread(
                parse_calendar, payload, window_start, window_end, zone
            )
        except (ValueError, TypeError, KeyError) as e:
            raise FetchError(f"Cannot parse calendar feed: {e}") from e

        logger.debug(
            "feed_fetched",
            events=len(events),
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )
        return events


__all__ = [
    "ICalFeedClient",
    "convert_component",
    "day_window",
    "normalize_feed_url",
    "parse_calendar",
    "recurring_uids",
    "upcoming_window",
]
