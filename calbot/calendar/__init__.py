"""Calendar Tools - Fetch and normalize events from an iCalendar feed

Components:
    models.py: CalendarEvent and link/HTML helpers
    feed.py: ICalFeedClient (download, recurrence expansion, time windows)
"""

from .models import CalendarEvent

__all__ = ['CalendarEvent']
