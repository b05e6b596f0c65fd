"""
Telegram MarkdownV2 Formatter

Turns CalendarEvent data into the text of each notification kind:
- Day schedule (morning agenda)
- Reminder before a meeting
- Change alert (new / moved / cancelled)
- Week-ahead summary sent on startup

Every piece of user-provided text goes through escape_markdown so the
notifier can send with parse_mode=MarkdownV2 without further processing.

Usage:
    from calbot.channels.formatter import format_reminder

    text = format_reminder(event, minutes_before=30)
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from calbot.calendar.models import CalendarEvent, strip_html

# Characters reserved by Telegram MarkdownV2
MARKDOWN_V2_SPECIAL = "_*[]()~`>#+-=|{}.!\\"

DESCRIPTION_LIMIT = 300

CHANGE_NEW = "new"
CHANGE_MOVED = "moved"
CHANGE_CANCELLED = "cancelled"

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def escape_markdown(text: str) -> str:
    """Escape MarkdownV2 special characters."""
    return "".join("\\" + ch if ch in MARKDOWN_V2_SPECIAL else ch for ch in text)


def escape_url(url: str) -> str:
    """Escape a URL for use inside (...) of an inline link."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def long_date(moment: datetime) -> str:
    return f"{moment.day} {_MONTHS[moment.month - 1]} {moment.year}"


def weekday_name(moment: datetime) -> str:
    return _WEEKDAYS[moment.weekday()]


def _day_and_time(event: CalendarEvent) -> str:
    return f"{escape_markdown(event.start.strftime('%d.%m'))} at {event.start.strftime('%H:%M')}"


def format_links(event: CalendarEvent, indent: str = "   ") -> str:
    """Meeting link as an inline link, then the remaining description links."""
    lines = []
    if event.meeting_link:
        lines.append(f"{indent}📹 [Join meeting]({escape_url(event.meeting_link)})\n")
    for link in event.other_links():
        lines.append(f"{indent}🔗 {escape_markdown(link)}\n")
    return "".join(lines)


def _short_entry(number: int, event: CalendarEvent) -> str:
    entry = (
        f"{number}\\. *{escape_markdown(event.title)}* "
        f"\\({escape_markdown(event.time_range())}\\)\n"
    )
    return entry + format_links(event) + "\n"


def format_day_schedule(events: Sequence[CalendarEvent], now: datetime) -> str:
    """Morning agenda: every event of the day, numbered, in the given order."""
    date_str = escape_markdown(long_date(now))
    if not events:
        return f"📅 *{date_str}*\n\nNo meetings today 🎉"

    parts = [f"📅 *{date_str}* \\- today's schedule\n\n"]
    for number, event in enumerate(events, start=1):
        parts.append(_short_entry(number, event))
    parts.append(f"\n_Meetings today: {len(events)}_")
    return "".join(parts)


def _truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit] + "…"
    return text


def format_reminder(event: CalendarEvent, minutes_before: int) -> str:
    parts = [
        f"⏰ *In {minutes_before} minutes:* {escape_markdown(event.title)}\n\n",
        f"🕐 {escape_markdown(event.time_range().replace('–', ' – '))}\n",
    ]
    if event.location:
        parts.append(f"📍 {escape_markdown(event.location)}\n")

    parts.append(format_links(event))

    description = _truncate(strip_html(event.description))
    if description:
        parts.append(f"\n_{escape_markdown(description)}_\n")
    return "".join(parts)


def format_event_changed(event: CalendarEvent, kind: str) -> str:
    """
    Change alert for one event.

    Args:
        event: The event as fetched (for cancellations, the last known snapshot)
        kind: 'new', 'moved' or 'cancelled'; anything else renders as a generic change
    """
    title = escape_markdown(event.title)
    if kind == CHANGE_MOVED:
        head = f"🔄 *Meeting moved:* {title}\n📅 New time: *{_day_and_time(event)}*\n"
    elif kind == CHANGE_CANCELLED:
        head = f"❌ *Meeting cancelled:* {title}\n"
    elif kind == CHANGE_NEW:
        head = f"🆕 *New meeting:* {title}\n📅 {_day_and_time(event)}\n"
    else:
        head = f"✏️ *Meeting changed:* {title}\n📅 {_day_and_time(event)}\n"
    return head + format_links(event)


def format_week_ahead(events: Sequence[CalendarEvent]) -> str:
    """Startup summary of the upcoming window, grouped by day."""
    parts = ["🚀 *Bot started\\!*\n\n📆 *Plans for the week ahead:*\n\n"]
    if not events:
        parts.append("_No meetings_ 🎉")
        return "".join(parts)

    current_day = None
    for event in events:
        day = event.start.strftime("%d.%m")
        if day != current_day:
            current_day = day
            parts.append(
                f"📅 *{escape_markdown(weekday_name(event.start))}, {escape_markdown(day)}*\n"
            )
        parts.append(
            f"  • {escape_markdown(event.title)} \\({escape_markdown(event.time_range())}\\)\n"
        )
        if event.meeting_link:
            parts.append(f"    📹 [Join]({escape_url(event.meeting_link)})\n")
    parts.append(f"\n_Total meetings: {len(events)}_")
    return "".join(parts)


__all__ = [
    "CHANGE_CANCELLED",
    "CHANGE_MOVED",
    "CHANGE_NEW",
    "escape_markdown",
    "format_day_schedule",
    "format_event_changed",
    "format_links",
    "format_reminder",
    "format_week_ahead",
]
