#!/usr/bin/env python3
"""
calbot Command Line Interface

Main entry point for the `calbot` command.

Usage:
    calbot run                   # Watch the feed and send notifications (default)
    calbot preview today         # Print today's agenda without sending
    calbot preview week          # Print the week-ahead summary
    calbot preview upcoming      # Print upcoming events as change alerts
    calbot --config args/calbot.yaml run
    calbot --version
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from datetime import datetime

from calbot import __version__
from calbot.automation.scheduler import CalendarScheduler
from calbot.calendar.feed import ICalFeedClient, day_window, upcoming_window
from calbot.channels.formatter import (
    format_day_schedule,
    format_event_changed,
    format_week_ahead,
)
from calbot.channels.telegram import TelegramNotifier
from calbot.config import CalbotConfig, load_config
from calbot.errors import CalbotError, ConfigurationError
from calbot.logging_config import get_logger, setup_logging

logger = get_logger("calbot.cli")


def _feed_for(config: CalbotConfig) -> ICalFeedClient:
    return ICalFeedClient(config.feed.url, config.tz, timeout=config.feed.timeout_seconds)


async def _run(config: CalbotConfig) -> None:
    notifier = TelegramNotifier(config.telegram.token, config.telegram.chat_id)
    await notifier.connect()

    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    # SIGTERM ends the process the same way Ctrl+C does
    try:
        loop.add_signal_handler(signal.SIGTERM, main_task.cancel)
    except (NotImplementedError, RuntimeError):
        pass

    async with _feed_for(config) as feed:
        scheduler = CalendarScheduler(
            feed,
            notifier,
            config.schedule,
            upcoming_days=config.feed.upcoming_days,
        )
        try:
            await scheduler.run()
        finally:
            await notifier.close()


def cmd_run(args, config: CalbotConfig) -> int:
    """Handle run subcommand."""
    try:
        asyncio.run(_run(config))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("scheduler_stopped")
    except CalbotError as e:
        logger.error("startup_failed", error=str(e))
        return 1
    return 0


async def _preview(config: CalbotConfig, what: str) -> str:
    now = datetime.now(config.tz)
    async with _feed_for(config) as feed:
        if what == "today":
            events = await feed.fetch_events(*day_window(now))
            return format_day_schedule(events, now)
        events = await feed.fetch_events(*upcoming_window(now, config.feed.upcoming_days))
        if what == "week":
            return format_week_ahead(events)
        return "\n".join(format_event_changed(event, "new") for event in events)


def cmd_preview(args, config: CalbotConfig) -> int:
    """Handle preview subcommand: render without sending."""
    try:
        print(asyncio.run(_preview(config, args.what)))
    except CalbotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="calbot",
        description="calbot - calendar feed notifications for Telegram",
    )
    parser.add_argument("--version", "-V", action="store_true", help="Show version and exit")
    parser.add_argument("--config", default=None, help="Path to the YAML config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Watch the calendar and send notifications")
    run_parser.set_defaults(func=cmd_run)

    preview_parser = subparsers.add_parser(
        "preview", help="Print a rendered notification without sending it"
    )
    preview_parser.add_argument(
        "what", choices=["today", "week", "upcoming"], help="Which notification to render"
    )
    preview_parser.set_defaults(func=cmd_preview)

    args = parser.parse_args(argv)

    if args.version:
        print(f"calbot {__version__}")
        return 0

    if not args.command:
        args.func = cmd_run

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.level, config.logging.format == "json")
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
