"""
Logging configuration using structlog for structured logging.

structlog events are rendered and handed to the standard library logger
of the same name, so the codec and protection modules (plain ``logging``)
and the store and CLI (structlog) share one level and one stderr handler.
stdout stays reserved for credentials requested by scripts.

Loggers from ``get_logger`` carry their own processor chain and always
forward to stdlib logging, whether or not ``configure_logging`` ran. A
script that imports the package without configuring anything therefore
gets nothing on stdout and, through the package's NullHandler, nothing
extra on stderr either.
"""

import logging
import sys
from typing import Any

import structlog

PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.dev.ConsoleRenderer(colors=False),
]


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure structured logging.

    Sets up structlog with a pipeline of processors that include
    timestamps, log levels, stack traces and contextual information.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    structlog.configure(
        processors=PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # No-op when the root logger already has handlers (e.g. under pytest)
    logging.basicConfig(stream=sys.stderr, format="%(message)s")
    logging.getLogger("credcache").setLevel(level)


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance.

    Args:
        name: Optional logger name (typically __name__ from calling module)

    Returns:
        A structlog logger bound to the stdlib logger of that name

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("credential_stored", name="vCenter")
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )
