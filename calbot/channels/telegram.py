"""
Tool: Telegram Notifier
Purpose: Deliver formatted notifications to a single Telegram chat

Sends MarkdownV2 text produced by calbot.channels.formatter with link
previews disabled. Failures are raised as DeliveryError; there is no retry
here, the caller decides what a failed send means.

Usage:
    notifier = TelegramNotifier(token, chat_id)
    await notifier.connect()
    await notifier.send(text)
    await notifier.close()

Dependencies (pip):
    - python-telegram-bot>=21.0
"""

from __future__ import annotations

import asyncio
from typing import Any, Union

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

from calbot.errors import DeliveryError
from calbot.logging_config import get_logger

logger = get_logger(__name__)


class TelegramNotifier:
    """
    Notifier bound to one destination chat.

    Handles:
    - connect() - initialize the bot session, returns the bot username
    - send(text) - one MarkdownV2 message
    - close() - release the HTTP session
    """

    def __init__(self, token: str, chat_id: Union[int, str], bot: Bot | None = None):
        """
        Args:
            token: Telegram bot token from BotFather
            chat_id: Destination chat id or @channel name
            bot: Pre-built Bot (tests inject a mock)
        """
        self.chat_id = chat_id
        self.bot = bot or Bot(token=token)
        self._connected = False

    async def connect(self) -> str:
        """
        Initialize the bot and verify the token.

        Raises:
            DeliveryError: token rejected or Telegram unreachable
        """
        try:
            await self.bot.initialize()
            me = await self.bot.get_me()
        except TelegramError as e:
            raise DeliveryError(f"Telegram connection failed: {e}") from e

        self._connected = True
        logger.info("telegram_connected", bot_username=me.username, chat_id=self.chat_id)
        return me.username

    async def send(self, text: str) -> Any:
        """
        Send one message to the configured chat.

        Returns:
            The telegram.Message acknowledging delivery

        Raises:
            DeliveryError: Telegram rejected the message or the request failed
        """
        try:
            return await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except (TelegramError, asyncio.TimeoutError) as e:
            raise DeliveryError(f"Telegram send failed: {e}") from e

    async def close(self) -> None:
        if self._connected:
            await self.bot.shutdown()
        self._connected = False


__all__ = ["TelegramNotifier"]
