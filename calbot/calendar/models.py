"""
Tool: Calendar Models
Purpose: Normalized calendar event and the text helpers used to build it

Usage:
    from calbot.calendar.models import CalendarEvent

    event = CalendarEvent.create(
        id="abc@google.com",
        title="Standup",
        start=start,
        end=end,
        description="Join: https://meet.google.com/xyz-abcd-efg",
    )
    event.meeting_link  # "https://meet.google.com/xyz-abcd-efg"
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse

# Hosts treated as video-conference links (suffix match)
MEETING_HOSTS = (
    "meet.google.com",
    "zoom.us",
    "teams.microsoft.com",
    "teams.live.com",
    "whereby.com",
    "meet.jit.si",
    "webex.com",
)

_WORD_SEPARATORS = re.compile(r'[\s<>"\\]+')
_TRAILING_PUNCTUATION = ".,;:!?)\"'"
_TAG = re.compile(r"<[^>]*>")


def _words(text: str) -> list[str]:
    return [w for w in _WORD_SEPARATORS.split(text) if w]


def trim_link(link: str) -> str:
    """Strip sentence punctuation that sticks to the end of a URL."""
    return link.rstrip(_TRAILING_PUNCTUATION)


def extract_links(text: str) -> tuple[str, ...]:
    """Return the http(s) URLs in text, deduplicated, in first-seen order."""
    if not text:
        return ()
    seen: dict[str, None] = {}
    for word in _words(text):
        if len(word) > 8 and word.startswith(("http://", "https://")):
            seen.setdefault(trim_link(word), None)
    return tuple(seen)


def _is_meeting_host(word: str) -> bool:
    candidate = word if "://" in word else f"https://{word}"
    try:
        host = (urlparse(candidate).hostname or "").lower()
    except ValueError:
        return False
    return any(host == h or host.endswith("." + h) for h in MEETING_HOSTS)


def find_meeting_link(*texts: str) -> str | None:
    """First video-conference URL found, searching texts in order."""
    for text in texts:
        for word in _words(text or ""):
            if _is_meeting_host(word):
                link = trim_link(word)
                return link if "://" in link else f"https://{link}"
    return None


def strip_html(text: str) -> str:
    """Drop tags and entities, collapse whitespace."""
    if not text:
        return ""
    plain = html.unescape(_TAG.sub(" ", text))
    return " ".join(plain.split())


@dataclass(frozen=True)
class CalendarEvent:
    """
    One calendar entry as seen in a single fetch.

    Two events with the same ``id`` are the same logical meeting; only
    ``start`` is compared when deciding whether a meeting moved.

    Attributes:
        id: Stable identity within the feed
        title: Display title (SUMMARY)
        start: Aware start time in the configured zone
        end: Aware end time, or None for point-in-time entries
        location: Free text location
        description: Free text (may contain HTML and links)
        all_day: True for DATE-valued entries
        updated: LAST-MODIFIED from the feed, if present
        meeting_link: First recognized video-conference URL
        links: All URLs from the description
    """

    id: str
    title: str
    start: datetime
    end: datetime | None = None
    location: str = ""
    description: str = ""
    all_day: bool = False
    updated: datetime | None = None
    meeting_link: str | None = None
    links: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        id: str,
        title: str,
        start: datetime,
        end: datetime | None = None,
        location: str = "",
        description: str = "",
        all_day: bool = False,
        updated: datetime | None = None,
    ) -> CalendarEvent:
        """Build an event, deriving meeting_link and links from the text fields."""
        return cls(
            id=id,
            title=title,
            start=start,
            end=end,
            location=location or "",
            description=description or "",
            all_day=all_day,
            updated=updated,
            meeting_link=find_meeting_link(description, location),
            links=extract_links(description),
        )

    def time_range(self) -> str:
        """'HH:MM' or 'HH:MM–HH:MM'."""
        text = self.start.strftime("%H:%M")
        if self.end is not None:
            text += "–" + self.end.strftime("%H:%M")
        return text

    def other_links(self) -> list[str]:
        """Description links other than the meeting link."""
        return [link for link in self.links if link != self.meeting_link]
