"""Structured Logging Configuration.

This module configures structlog for the service. Output is JSON by default
for production log aggregation, with a console renderer for local runs.

Configuration:
- LOG_FORMAT: "json" (default) or "console"
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)

Modules log with ``structlog.get_logger(__name__)`` and snake_case event
names. Key material, plaintext and AAD values are never passed as context.
"""

import logging
import sys

import structlog

from envelope_crypto.config import get_log_format, get_log_level


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Log level name. Defaults to LOG_LEVEL.
        fmt: "json" or "console". Defaults to LOG_FORMAT.
    """
    level_name = (level or get_log_level()).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if (fmt or get_log_format()) == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=False,
    )
