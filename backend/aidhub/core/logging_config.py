"""Structured logging configuration.

Configures structlog once at application start. Development gets the
colored console renderer; production (LOG_JSON=true) gets one JSON object
per line. Stdlib loggers (uvicorn, sqlalchemy) share the same level.

Never log passwords or cookie values. Plain verification tokens appear only
in ConsoleMailer output, which stands in for the inbox in development.
"""

import logging
import sys

import structlog

from aidhub.core.config import settings


def configure_logging(
    log_level: str | None = None, *, json_logs: bool | None = None
) -> None:
    """Configure structlog and stdlib logging.

    Args:
        log_level: Level name (DEBUG, INFO, ...). Defaults to settings.log_level.
        json_logs: Render JSON lines. Defaults to settings.log_json.
    """
    level_name = (log_level or settings.log_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    use_json = settings.log_json if json_logs is None else json_logs

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if use_json
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
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
