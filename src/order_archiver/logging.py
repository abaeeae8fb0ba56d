"""Structlog setup for order-archiver.

Library modules log through ``structlog.get_logger(__name__)`` and emit
dotted event names; nothing is configured at import. Applications (the CLI
included) call ``configure_logging`` once. Events are rendered as JSON lines
on stderr so record output on stdout stays machine-readable.
"""
from __future__ import annotations

import logging
import sys
from typing import Literal

import structlog

from order_archiver.config import TrackerConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Resolved per logger so a swapped sys.stderr (test runners) is honoured
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: LogLevel | str | None = None) -> str:
    """Configure structlog and return the level applied.

    ``level`` falls back to ``TrackerConfig().log_level``
    (``ORDER_ARCHIVER_LOG_LEVEL``), read at call time.

    Raises:
        ValueError: if ``level`` is not a standard level name
    """
    resolved = (level or TrackerConfig().log_level).upper()
    if resolved not in LOG_LEVELS:
        raise ValueError(f"unknown log level {level!r}")
    numeric = getattr(logging, resolved)
    logging.basicConfig(format="%(message)s", level=numeric)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
    return resolved
