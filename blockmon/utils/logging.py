"""Logging configuration utilities."""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable

import structlog

# Libraries that log every HTTP round trip at INFO.
NOISY_LOGGERS = ("httpx", "apscheduler", "aiohttp.access")


def configure_logging(
    level: str = "INFO",
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Route stdlib logging and structlog to JSON lines on stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        quiet_loggers: Third-party loggers that never go below WARNING.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    # contextvars bindings are task-local under asyncio.
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> "structlog.stdlib.BoundLogger":
    return structlog.get_logger(name)


def log_context(**kwargs: Any):
    """Bind values (e.g. tx_hash) to every log line emitted inside the block."""
    return structlog.contextvars.bound_contextvars(**kwargs)
