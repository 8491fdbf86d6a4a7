"""Logging helpers using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from collection_runner.config import get_settings


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a configured structlog logger, configuring the stack on first use."""

    if not structlog.is_configured():
        settings = get_settings()
        configure_logging(settings.log_level, json_logs=settings.json_logs)
        structlog.contextvars.bind_contextvars(environment=settings.environment)

    return structlog.get_logger(name)


def configure_logging(level: str = "INFO", *, json_logs: bool = True) -> None:
    """Configure structlog and stdlib logging.

    Logs go to stderr so hosts that speak a protocol over stdout stay clean.
    """

    renderer: structlog.typing.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level.upper(), format="%(message)s", stream=sys.stderr)
