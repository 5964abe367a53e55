"""
Structured logging configuration using structlog.

Development gets a colored console renderer, production gets one JSON
object per line. Request-scoped fields (request_id, user_id, variant)
are carried through contextvars so every stage of a recommendation
request logs them without passing a logger around.

Usage:
    from core.logging import configure_logging, get_logger, request_context

    configure_logging(json_logs=False, log_level="DEBUG")
    logger = get_logger(__name__)

    with request_context(request_id="r-1", user_id="u-42"):
        logger.info("scored_candidates", count=120, elapsed_ms=3.1)
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import Processor


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        json_logs: JSON output (production) instead of console output.
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        include_timestamp: Prefix every event with an ISO timestamp.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ))

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    # redis-py logs every reconnect at INFO
    logging.getLogger("redis").setLevel(logging.WARNING)


def configure_from_settings(settings: Any) -> None:
    """Configure logging from a ``config.settings.Settings`` instance."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every subsequent log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def request_context(request_id: Optional[str] = None, **kwargs: Any) -> Iterator[str]:
    """
    Bind request-scoped fields for the duration of a ``with`` block.

    A request id is generated when none is given. Only the keys bound
    here are removed on exit, so an outer context survives.

    Yields:
        The request id in effect.
    """
    request_id = request_id or f"req_{uuid.uuid4().hex[:12]}"
    fields = {"request_id": request_id, **kwargs}
    structlog.contextvars.bind_contextvars(**fields)
    try:
        yield request_id
    finally:
        structlog.contextvars.unbind_contextvars(*fields.keys())


class LoggerMixin:
    """
    Give a class a ``self.logger`` named after the class.

    Usage:
        class InterestTracker(LoggerMixin):
            def record(self):
                self.logger.debug("interest_updated", key="sleep")
    """

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return get_logger(self.__class__.__name__)
