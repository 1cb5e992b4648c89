from __future__ import annotations

import logging
import os
import sys

import structlog
from structlog.typing import Processor


def _log_level() -> int:
    name = os.getenv("TOPICBOARD_LOG_LEVEL", "INFO").strip().upper()
    return getattr(logging, name, logging.INFO)


def configure_logging(log_format: str | None = None) -> None:
    """Configure structlog once at startup (``console`` for development, ``json`` otherwise)."""
    fmt = (log_format or os.getenv("TOPICBOARD_LOG_FORMAT", "console")).strip().lower()
    level = _log_level()

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
        shared.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
