"""
Logging setup: structlog on top of the stdlib logging module.

calbot logs event names with key/value context (reminder_due, event_moved,
change_fetch_failed, delivery_failed ...) from the scheduler and its two
collaborators. Records from httpx and python-telegram-bot go through the
same handler, but those libraries log every feed poll and every send at
INFO, so NOISY_LOGGERS are held at WARNING or above.

The level and renderer come from the logging section of args/calbot.yaml
(passed in by the CLI), or from CALBOT_LOG_LEVEL / CALBOT_LOG_FORMAT when
setup_logging is called without arguments. JSON output keeps non-ASCII
text (event titles) readable.

Usage:
    from calbot.logging_config import get_logger, setup_logging

    setup_logging()
    logger = get_logger(__name__)
    logger.info("reminder_due", event_id="abc", lead_minutes=30)
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

# Third-party loggers that log every request/poll at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "hpack")


def _processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Route stdlib and structlog records through one stderr handler.

    Arguments left as None fall back to CALBOT_LOG_LEVEL / CALBOT_LOG_FORMAT.
    Safe to call more than once; the root handlers are replaced each time.
    """
    if level is None:
        level = os.environ.get("CALBOT_LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("CALBOT_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_processors(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["NOISY_LOGGERS", "get_logger", "setup_logging"]
