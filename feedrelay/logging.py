"""Structured logging for the API, the CLI and the media workers.

``configure_logging()`` installs one global structlog stack.  Modules obtain a
logger with ``get_logger()`` and log event names with keyword context::

    logger.info("feed_fetched", url=url, entries=12)

Per-request context (``request_id``) is bound through structlog's contextvars
by the API middleware and merged into every event logged while the request
is in flight.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict

import structlog

from feedrelay.config import settings


def _add_service(service_name: str):
    def _inner(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict
    return _inner


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    service_name: str = "feedrelay",
    *,
    level: str | None = None,
    fmt: str | None = None,
) -> None:
    """Configure structlog (and the stdlib root logger) once per process."""
    numeric_level = _level_from_name(level or settings.log_level)
    # ConsoleRenderer formats exc_info itself; dict_tracebacks is for JSON only.
    renderers: list[Any]
    if (fmt or settings.log_format) == "json":
        renderers = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    # Third-party libraries (uvicorn, httpx) log through the stdlib.
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service(service_name),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_context: Any) -> structlog.typing.FilteringBoundLogger:
    """Return a lazily bound logger; configuration is picked up on first use."""
    return structlog.get_logger(**initial_context)
