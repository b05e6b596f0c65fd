"""
calbot - Calendar feed watcher with Telegram notifications

Watches an iCalendar feed and pushes a daily agenda, pre-meeting reminders
and change alerts (new / moved / cancelled meetings) to one Telegram chat.

Subpackages:
    calendar/: feed client and event model
    channels/: message formatting and the Telegram notifier
    automation/: reminder tracker, event state diff and the scheduler loop

Usage:
    calbot run
    calbot preview today
"""

from pathlib import Path

__version__ = "0.1.0"

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "calbot.yaml"

__all__ = [
    "ARGS_DIR",
    "CONFIG_PATH",
    "PROJECT_ROOT",
    "__version__",
]
