"""Structured logging configuration for Stopwatch."""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, TextIO

import structlog

if TYPE_CHECKING:
    from structlog.typing import EventDict, WrappedLogger

# Identifies one fetch/analysis run across all log lines it produces
run_id_ctx: ContextVar[str] = ContextVar("run_id", default="")


def add_run_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add run_id to log event if set in context."""
    run_id = run_id_ctx.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Expose the name bound by ``get_logger`` under the ``logger`` key."""
    name = event_dict.pop("logger_name", None)
    if name:
        event_dict["logger"] = name
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON format; otherwise, console format.
        stream: Output stream (defaults to sys.stderr so stdout stays clean).
    """
    if stream is None:
        stream = sys.stderr

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        add_run_id,
        add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,  # Disable caching for tests
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger instance.

    The logger is resolved lazily on each call, so module-level loggers
    pick up a later ``configure_logging``.

    Args:
        name: Logger name (typically module name).

    Returns:
        structlog logger proxy. The name is carried as ``logger_name``
        (``logger`` is taken by ``structlog.wrap_logger``) and renamed
        by ``add_logger_name``.
    """
    return structlog.get_logger(name, logger_name=name)
