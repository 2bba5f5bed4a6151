"""Structured logging setup built on structlog.

Console rendering is used for interactive runs; ``json`` output suits CI log
aggregation. All log output goes to stderr so stdout stays reserved for
reports.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO, cast

import structlog
from structlog.types import FilteringBoundLogger, Processor


def configure_logging(
    level: str = "WARNING",
    format_type: str = "console",
    *,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the standard library root logger."""

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    output = stream or sys.stderr

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    processors: list[Processor]
    if format_type == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=output.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=log_level, force=True)


def get_logger(name: str | None = None, **initial_context: Any) -> FilteringBoundLogger:
    """Return a structlog logger, optionally bound to ``initial_context``."""

    logger = structlog.get_logger(name) if name else structlog.get_logger()
    if initial_context:
        logger = logger.bind(**initial_context)
    return cast(FilteringBoundLogger, logger)


__all__ = ["configure_logging", "get_logger"]
