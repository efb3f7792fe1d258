"""Structured logging for Collybrix.

Events are emitted with structlog and written through the standard
library's root handler, either to stdout or to a size-rotated file. A
request's correlation id and any values bound with
``structlog.contextvars`` (such as the caller's user id) are merged into
every event.

Event names are snake_case verbs describing what happened::

    logger = get_logger(__name__)
    logger.info("sprint_started", sprint_id=str(sprint.id), committed_points=21)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from collybrix.config import LoggingConfig

# Third-party loggers kept at WARNING unless debug logging is enabled
CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite", "asyncio")

_correlation_id: ContextVar[str | None] = ContextVar("collybrix_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog processor stamping the current request's correlation id."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def bind_user_context(user_id: str) -> None:
    """Attach the authenticated user id to every later event of this request."""
    structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


# Run on structlog events and, via foreign_pre_chain, on plain stdlib records
SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    add_correlation_id,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def _build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """Render one line per event, with any traceback inside that line.

    The JSON renderer needs ``format_exc_info`` to turn ``exc_info`` into an
    ``exception`` string; the console renderer formats tracebacks itself.
    """
    if log_format == "json":
        rendering: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        rendering = [structlog.dev.ConsoleRenderer(colors=False)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *rendering],
    )


def setup_logging(config: LoggingConfig) -> None:
    """Route structlog events through a single root handler.

    Replaces any handlers already installed on the root logger, so calling
    it twice (CLI callback, then tests) leaves exactly one handler. Records
    from third-party stdlib loggers are rendered the same way as structlog
    events.

    Args:
        config: Level, output format (json or console) and optional
            rotating log file.
    """
    level = logging.getLevelName(config.level)

    handler = _build_handler(config)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(config.format))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    third_party_level = logging.DEBUG if config.level == "DEBUG" else logging.WARNING
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    structlog.configure(
        processors=[*SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger named after the calling module."""
    return structlog.get_logger(name)
