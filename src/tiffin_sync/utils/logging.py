"""Structured logging setup with correlation ID tracking.

Every coordinated request runs with its operation key as the correlation
ID, so log lines emitted by an operation (and by the coordinator while it
settles that operation) can be traced back to the admin action that
triggered it.
"""

import contextvars
import logging
import sys
from collections.abc import Mapping
from typing import Final, TextIO, override

# Correlation ID context variable; inherited by asyncio tasks created in the same context
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s"


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds the correlation ID to log records.

    Retrieves the correlation ID from the ContextVar and adds it to each
    log record. Records logged outside any coordinated request get ``N/A``.
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record from ContextVar.

        Args:
            record: Log record to enhance with correlation ID

        Returns:
            True to allow the record to be logged
        """
        correlation_id = correlation_id_var.get()
        record.correlation_id = correlation_id if correlation_id is not None else "N/A"
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    log_format: str | None = None,
    enable_console: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure application logging.

    Sets up the root logger with a console handler carrying the correlation
    ID filter. Existing root handlers are removed to avoid duplicates.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string; defaults to ``DEFAULT_LOG_FORMAT``
        enable_console: Enable console output handler
        stream: Stream for console output; defaults to stdout

    Example:
        >>> configure_logging(log_level="DEBUG")
        >>> set_correlation_id("save-settings")
        >>> logging.getLogger(__name__).info("Saving settings")
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.INFO)  # pyright: ignore[reportAny]
    root_logger.setLevel(level)  # pyright: ignore[reportAny]

    root_logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(stream or sys.stdout)
        console_handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))
        console_handler.addFilter(CorrelationIDFilter())
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: Identifier for correlation, e.g. an operation key
    """
    _ = correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context.

    Returns:
        Current correlation ID or None if not set
    """
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID from the current context."""
    _ = correlation_id_var.set(None)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    extra: Mapping[str, object] | None = None,
) -> None:
    """Log a message with additional context fields.

    Args:
        logger: Logger instance to use
        level: Logging level (e.g., logging.INFO)
        message: Log message
        extra: Additional context fields to include in log

    Example:
        >>> log_with_context(
        ...     get_logger(__name__),
        ...     logging.INFO,
        ...     "Batch processed",
        ...     extra={"units": 50, "failed": 1},
        ... )
    """
    context = dict(extra) if extra else {}
    logger.log(level, message, extra=context)
