"""
Tool: Reminder Tracker
Purpose: Remember which (event, lead time) pairs were already reminded

A reminder is keyed by (event id, lead minutes). mark() is a single
check-and-set step: it returns True exactly once per key, so a caller that
only sends when mark() returns True sends at most one reminder per key
no matter how many overlapping checks see the same event.

Keys are kept with the event start so entries for long-past events can be
pruned; the reminder window only ever looks at starts near now + lead, so a
pruned key can never match again.
"""

from __future__ import annotations

from datetime import datetime

ReminderKey = tuple[str, int]


class ReminderTracker:
    """In-memory set of reminded (event_id, lead_minutes) keys."""

    def __init__(self) -> None:
        self._reminded: dict[ReminderKey, datetime] = {}

    def mark(self, event_id: str, lead_minutes: int, start: datetime) -> bool:
        """
        Record the key if new.

        Returns:
            True if the key was absent (caller should send), False otherwise
        """
        key = (event_id, lead_minutes)
        if key in self._reminded:
            return False
        self._reminded[key] = start
        return True

    def is_reminded(self, event_id: str, lead_minutes: int) -> bool:
        return (event_id, lead_minutes) in self._reminded

    def prune(self, cutoff: datetime) -> int:
        """Forget keys whose event started before cutoff. Returns the count removed."""
        stale = [key for key, start in self._reminded.items() if start < cutoff]
        for key in stale:
            del self._reminded[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._reminded)


__all__ = ["ReminderKey", "ReminderTracker"]
