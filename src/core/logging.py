"""Structured logging setup — structlog on top of the stdlib logging module."""

from __future__ import annotations

import logging
import sys

import structlog

from config.settings import get_settings


def setup_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog and the root logger.

    ``level`` and ``json`` default to ``LOG_LEVEL`` / ``LOG_JSON`` from settings.
    Safe to call more than once; the last call wins.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    use_json = settings.log_json if json is None else json

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a module logger. Events are snake_case names with keyword context."""
    return structlog.get_logger(name)
