"""
Structured logging setup.

Every module logs through structlog with key-value context:

    logger = get_logger(__name__)
    logger.info("Session archived", session_id=session.id, title=title)

Development renders colored console lines; production renders JSON.
"""

import logging
import sys

import structlog

from config.settings import settings


def configure_logging(level: str = None, json_output: bool = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
        json_output: Render JSON lines, defaults to True in production
    """
    level = level or settings.LOG_LEVEL
    if json_output is None:
        json_output = settings.is_production

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the module name."""
    return structlog.get_logger(name)
