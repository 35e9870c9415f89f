"""
structlog setup.

JSON lines in deployed environments, coloured console output locally.
Crawler runs bind their crawler name into the context so every event
emitted during a run, including those from the fetcher and the save
helpers, can be attributed to it.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from grantflow.core.config import get_settings

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


def _renderer(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def setup_logging() -> None:
    """Configure structlog and the stdlib root logger from settings."""
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(settings.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)
        **initial_context: Values bound to every event of this logger

    Example:
        >>> logger = get_logger(__name__, crawler="grants_gov")
        >>> logger.info("Search completed", hits=12)
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def crawl_context(crawler: str, **values: Any) -> Iterator[None]:
    """Bind ``crawler`` (and any extra values) to all log events in the block."""
    with structlog.contextvars.bound_contextvars(crawler=crawler, **values):
        yield


class LoggerMixin:
    """Gives a class a ``logger`` named after it."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return get_logger(self.__class__.__name__)
