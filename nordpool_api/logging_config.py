"""
Structured logging setup based on structlog.
Loggers accept an event message plus key/value context.
"""

import logging
import sys

import structlog

from nordpool_api.config import settings


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger from settings.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if settings.log_format.lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """
    Return a lazy structlog logger for ``name``.
    Configuration is resolved on first use, so loggers created at import time
    pick up whatever setup_logging() installs later.
    """
    return structlog.get_logger(name)
