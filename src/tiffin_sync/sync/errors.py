"""Error taxonomy for the request coordinator."""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base exception for coordinator errors."""

    def __init__(self, message: str, key: str | None = None, context: dict[str, Any] | None = None) -> None:  # pyright: ignore[reportAny] # Flexible error context
        """Initialize SyncError.

        Args:
            message: Error message
            key: Operation key the error relates to
            context: Additional context information for debugging
        """
        super().__init__(message)
        self.key: str | None = key
        self.context: dict[str, Any] = context or {}  # pyright: ignore[reportAny] # Flexible error context
        if key is not None:
            self.context.setdefault("key", key)


class RequestCancelledError(SyncError):
    """Raised when a request was superseded or explicitly cancelled.

    This is not a failure of the underlying operation; callers usually
    ignore it because a newer request under the same key is in flight.
    """

    def __init__(self, key: str, reason: str = "superseded") -> None:
        """Initialize RequestCancelledError.

        Args:
            key: Operation key of the cancelled request
            reason: Why the request was cancelled
        """
        super().__init__(f"Request cancelled: {key} ({reason})", key=key, context={"reason": reason})
        self.reason: str = reason


class RollbackError(SyncError):
    """Raised when the restore procedure of an optimistic update fails.

    The restore failure is chained as ``__cause__``; the remote failure that
    triggered the rollback is kept in ``original_error``.
    """

    def __init__(self, key: str, original_error: BaseException) -> None:
        """Initialize RollbackError.

        Args:
            key: Operation key of the optimistic update
            original_error: Failure of the remote sync that triggered rollback
        """
        super().__init__(
            f"Rollback failed for {key} after sync error: {original_error}",
            key=key,
            context={"original_error_type": type(original_error).__name__},
        )
        self.original_error: BaseException = original_error


def is_cancellation(error: BaseException) -> bool:
    """Return True if ``error`` means "superseded" rather than "failed"."""
    return isinstance(error, RequestCancelledError)


def describe_sync_error(error: BaseException) -> str:
    """Build a one-line description suitable for logs.

    Args:
        error: Error raised by a coordinated operation

    Returns:
        Description including the error type and any context
    """
    if isinstance(error, SyncError) and error.context:
        context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())  # pyright: ignore[reportAny] # Flexible context values
        return f"{type(error).__name__}: {error} ({context_str})"
    return f"{type(error).__name__}: {error}"
