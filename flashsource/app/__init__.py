"""Application layer: logging setup and error presentation helpers."""

from __future__ import annotations

import logging

import structlog

from .errors import format_error_record


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for application logging.

    Events below ``level`` are dropped before rendering.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


__all__ = [
    "configure_logging",
    "format_error_record",
]
