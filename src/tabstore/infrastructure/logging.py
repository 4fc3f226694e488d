"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, TextIO

import structlog
from structlog.types import Processor


_log_stream: TextIO | None = None


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: Path | None = None,
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        log_file: Optional file that log lines are appended to. When unset,
            logs go to stdout.
    """
    global _log_stream

    if _log_stream is not None and _log_stream is not sys.stdout:
        _log_stream.close()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _log_stream = open(log_file, "a", encoding="utf-8")
    else:
        _log_stream = sys.stdout

    logging.basicConfig(
        format="%(message)s",
        stream=_log_stream,
        level=getattr(logging, level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # Colors only make sense on a terminal
    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=log_file is None),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=_log_stream),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger, e.g. the
            session id of a connection

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
