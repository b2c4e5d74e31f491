"""Records and value types used by the request coordinator."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from tiffin_sync.sync.errors import RequestCancelledError


class CancellationToken:
    """Cooperative cancellation signal handed to every coordinated operation.

    Operations must check the token (or await ``wait``) before committing any
    externally visible effect. The coordinator also cancels the operation's
    task, but an operation that suppresses ``CancelledError`` keeps running;
    only the token tells it that its result will be discarded.
    """

    def __init__(self, key: str) -> None:
        self.key: str = key
        self._event: asyncio.Event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        """Request cancellation; repeated calls keep the first reason."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise ``RequestCancelledError`` if cancellation was requested."""
        if self.cancelled:
            raise RequestCancelledError(self.key, self.reason or "superseded")

    async def wait(self) -> None:
        """Wait until cancellation is requested."""
        _ = await self._event.wait()


type Operation[T] = Callable[[CancellationToken], Awaitable[T]]


@dataclass
class PendingRequest:
    """In-flight request registered under an operation key."""

    key: str
    token: CancellationToken
    task: asyncio.Task[Any]  # pyright: ignore[reportExplicitAny]
    outcome: asyncio.Future[Any]  # pyright: ignore[reportExplicitAny]
    created_at: float

    def cancel(self, reason: str = "superseded") -> None:
        """Signal the operation and fail the caller-facing future."""
        self.token.cancel(reason)
        _ = self.task.cancel()
        if not self.outcome.done():
            self.outcome.set_exception(RequestCancelledError(self.key, reason))
            # Superseded outcomes are commonly dropped by callers
            _ = self.outcome.exception()


@dataclass
class OptimisticRecord:
    """Snapshot kept while an optimistic update waits for the server."""

    key: str
    original_state: object
    restore: Callable[[Any], object] | None  # pyright: ignore[reportExplicitAny]
    created_at: float


@dataclass(frozen=True)
class OptimisticResult[T]:
    """Outcome of a confirmed optimistic update."""

    data: T
    optimistic: bool = True


@dataclass
class SyncUnit:
    """Deferred unit of work consumed by the batch processor."""

    execute: Callable[[], Awaitable[Any]]  # pyright: ignore[reportExplicitAny]
    on_success: Callable[[Any], object] | None = None  # pyright: ignore[reportExplicitAny]
    on_error: Callable[[BaseException], object] | None = None
    label: str = ""
    queued_at: float = field(default=0.0)
