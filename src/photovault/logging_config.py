"""
Centralized logging configuration for photovault.

Structured logging is provided by structlog. Development runs render to the
console; every other environment renders one JSON object per line so the
output can be shipped to a log aggregator unchanged.
"""

import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local", "test")


def get_log_level(level_name: str | None = None) -> int:
    """
    Resolve a log level name to its logging constant.

    Args:
        level_name: Level name, defaults to the LOG_LEVEL environment variable

    Returns:
        int: Log level constant, INFO when the name is unknown
    """
    name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    return LOG_LEVELS.get(name, logging.INFO)


def is_development_environment(environment: str | None = None) -> bool:
    """Check whether the given (or current) environment is a development one."""
    env = (environment or os.getenv("ENVIRONMENT", "development")).lower().strip()
    return env in DEVELOPMENT_ENVIRONMENTS


def configure_structured_logging(level_name: str | None = None, environment: str | None = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level_name: Log level name (defaults to LOG_LEVEL)
        environment: Environment name (defaults to ENVIRONMENT)
    """
    log_level = get_log_level(level_name)
    is_dev = is_development_environment(environment)

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)

    structlog.get_logger("photovault.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, usually ``__name__`` of the calling module

    Returns:
        structlog.BoundLogger: Logger instance
    """
    return structlog.get_logger(name or "photovault")


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Log a performance measurement.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    logger = get_logger("photovault.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=round(duration, 4), **context)


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[dict[str, Any]]:
    """
    Measure the wrapped block and log it with ``log_performance``.

    The yielded dict can be filled with extra context while the block runs;
    it is merged into the performance record. Nothing is logged when the
    block raises.
    """
    extra: dict[str, Any] = {}
    start = time.perf_counter()
    yield extra
    log_performance(operation, time.perf_counter() - start, **context, **extra)


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """
    Log user actions for the audit trail.

    Args:
        user_id: User identifier
        action: Action performed
        **context: Additional context information
    """
    logger = get_logger("photovault.user_actions")
    logger.info("user_action", user_id=user_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    logger = get_logger("photovault.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        error_context.update(context)

    logger.error("error_occurred", **error_context)


def log_security_event(event_type: str, user_id: str | None = None, **context: Any) -> None:
    """
    Log security-related events.

    Args:
        event_type: Type of security event
        user_id: User identifier (if applicable)
        **context: Additional context information
    """
    logger = get_logger("photovault.security")
    logger.warning("security_event", event_type=event_type, user_id=user_id, **context)
