"""
Channel Tools Package
Notification formatting and delivery to Telegram.
"""

from .telegram import TelegramNotifier

__all__ = [
    'TelegramNotifier',
]
