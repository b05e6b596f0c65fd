"""
Tool: Event State Tracker
Purpose: Diff successive calendar snapshots into new / moved / cancelled changes

The diff runs in two passes over one invocation:
1. Every fetched event is compared with the last known snapshot by id.
   Unknown ids are NEW; known ids whose start differs are MOVED. Any other
   field change is absorbed silently.
2. Every previously known id missing from the fetch whose start is still in
   the future is CANCELLED and dropped. Missing ids with a past start are
   assumed to have rolled out of the window and are left alone.

Usage:
    from calbot.automation.state import EventStateTracker

    tracker = EventStateTracker()
    tracker.seed(initial_events)
    for change in tracker.apply(fresh_events, now):
        print(change.kind, change.event.title)
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from calbot.calendar.models import CalendarEvent


class ChangeKind(str, Enum):
    NEW = "new"
    MOVED = "moved"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class EventChange:
    """One classified change; for CANCELLED, event is the last known snapshot."""

    kind: ChangeKind
    event: CalendarEvent


def diff_events(
    known: Mapping[str, CalendarEvent],
    fetched: Iterable[CalendarEvent],
    now: datetime,
) -> tuple[dict[str, CalendarEvent], list[EventChange]]:
    """
    Compare a fresh fetch against the known snapshots.

    Args:
        known: id -> last seen event (not modified)
        fetched: Events from the latest fetch
        now: Reference time for the cancelled-in-future test

    Returns:
        (updated snapshot map, changes with NEW/MOVED before CANCELLED)
    """
    updated = dict(known)
    changes: list[EventChange] = []
    fetched_ids: set[str] = set()

    for event in fetched:
        fetched_ids.add(event.id)
        previous = updated.get(event.id)
        updated[event.id] = event

        if previous is None:
            changes.append(EventChange(ChangeKind.NEW, event))
        elif previous.start != event.start:
            changes.append(EventChange(ChangeKind.MOVED, event))

    # Iterate known, not updated, which is mutated below
    for event_id, previous in known.items():
        if event_id in fetched_ids:
            continue
        if previous.start > now:
            changes.append(EventChange(ChangeKind.CANCELLED, previous))
            del updated[event_id]

    return updated, changes


class EventStateTracker:
    """Last observed snapshot of every known event, keyed by id."""

    def __init__(self) -> None:
        self._events: dict[str, CalendarEvent] = {}

    def seed(self, events: Iterable[CalendarEvent]) -> int:
        """Record events as known without classifying them. Returns the count."""
        count = 0
        for event in events:
            self._events[event.id] = event
            count += 1
        return count

    def apply(self, fetched: Iterable[CalendarEvent], now: datetime) -> list[EventChange]:
        """Diff a fresh fetch against the known map and replace the map."""
        self._events, changes = diff_events(self._events, fetched, now)
        return changes

    def prune(self, cutoff: datetime, keep: Collection[str] = ()) -> int:
        """
        Drop snapshots that started before cutoff, except ids in keep.

        Returns:
            Number of entries removed
        """
        stale = [
            event_id
            for event_id, event in self._events.items()
            if event.start < cutoff and event_id not in keep
        ]
        for event_id in stale:
            del self._events[event_id]
        return len(stale)

    def get(self, event_id: str) -> CalendarEvent | None:
        return self._events.get(event_id)

    def snapshot(self) -> dict[str, CalendarEvent]:
        return dict(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def __len__(self) -> int:
        return len(self._events)


__all__ = ["ChangeKind", "EventChange", "EventStateTracker", "diff_events"]
