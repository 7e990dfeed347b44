"""Logging configuration for the cart service."""

import logging

import structlog

from .. import config

logger = structlog.get_logger(__name__)

# Suppress noisy library loggers
logging.getLogger("pika").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def configure_logging(level: str = config.LOG_LEVEL, json: bool = config.LOG_JSON) -> None:
    logging.basicConfig(format="%(message)s", level=level)

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        cache_logger_on_first_use=True,
    )
