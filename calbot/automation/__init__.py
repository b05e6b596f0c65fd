"""
Automation Tools - Polling loop and the state it keeps

Components:
    reminders.py: ReminderTracker, at-most-once reminder keys
    state.py: EventStateTracker and the new/moved/cancelled diff
    scheduler.py: CalendarScheduler, the timers and the three checks

Usage:
    from calbot.automation import CalendarScheduler

    scheduler = CalendarScheduler(feed, notifier, config.schedule)
    await scheduler.run()
"""

from .reminders import ReminderTracker
from .scheduler import CalendarScheduler, SchedulerState
from .state import ChangeKind, EventChange, EventStateTracker, diff_events

__all__ = [
    'CalendarScheduler',
    'ChangeKind',
    'EventChange',
    'EventStateTracker',
    'ReminderTracker',
    'SchedulerState',
    'diff_events',
]
