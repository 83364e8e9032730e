"""Structured logging configuration.

Every module obtains its logger here so events share one JSON format.
"""

import logging
import sys

import structlog

_configured = False


def configure_logging() -> None:
    """Install the structlog processor chain once per process."""
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """Return a structured logger for a module.

    Args:
        name: Logger name, usually __name__.
    """
    configure_logging()
    return structlog.get_logger(name)
