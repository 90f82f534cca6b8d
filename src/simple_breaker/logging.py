"""Structured logging for breaker events.

Breaker code logs through the ``log_*`` helpers so the same call works with a
structlog logger (keyword fields) or a plain stdlib logger (``extra=`` fields).
"""

from __future__ import annotations

import logging
import sys
from datetime import timedelta
from functools import partial
from typing import Literal, Protocol

import structlog
from structlog.typing import EventDict

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_StdlibLogger = logging.Logger | logging.LoggerAdapter[logging.Logger]
_Method = Literal["info", "warning", "error", "exception"]


class StructuredLogger(Protocol):
    """Logger protocol for structured event logging with keyword fields."""

    def info(self, event: str, **kwargs: object) -> None: ...

    def warning(self, event: str, **kwargs: object) -> None: ...

    def error(self, event: str, **kwargs: object) -> None: ...

    def exception(self, event: str, **kwargs: object) -> None: ...


def get_log_level_value(level: str) -> int:
    """Return stdlib log level constant for a level name, case-insensitive."""
    normalized = level.strip().upper()
    if normalized not in _LEVEL_NAMES:
        choices = ", ".join(sorted(_LEVEL_NAMES))
        raise ValueError(f"log_level must be one of: {choices}")
    return logging.getLevelNamesMapping()[normalized]


def render_durations(
    _: object,
    __: str,
    event_dict: EventDict,
) -> EventDict:
    """Render ``timedelta`` fields (breaker latencies) as float seconds."""
    for key, value in event_dict.items():
        if isinstance(value, timedelta):
            event_dict[key] = value.total_seconds()
    return event_dict


def _emit(
    method: _Method,
    logger: StructuredLogger | _StdlibLogger,
    event: str,
    **fields: object,
) -> None:
    log = getattr(logger, method)
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        log(event, extra=fields)
    else:
        log(event, **fields)


log_info = partial(_emit, "info")
log_warning = partial(_emit, "warning")
log_error = partial(_emit, "error")
log_exception = partial(_emit, "exception")


def configure_structlog(
    *,
    log_level: str,
    json_output: bool | None = None,
) -> structlog.stdlib.BoundLogger:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        log_level: Level name for the root logger.
        json_output: Force JSON (``True``) or console (``False``) rendering.
            Defaults to console on a TTY and JSON otherwise.
    """
    level_value = get_log_level_value(log_level)
    if json_output is None:
        json_output = not sys.stderr.isatty()
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        render_durations,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )
    logging.basicConfig(
        format="%(message)s",
        handlers=[handler],
        level=level_value,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger("simple_breaker")
