"""Request coordination for the admin dashboard.

The coordinator keeps redundant network work off the wire:

- ``create_request`` runs at most one operation per key; a newer request
  supersedes (cancels) the older one
- ``debounced_sync`` coalesces bursts of calls into the last one
- ``optimistic_update`` applies a local change first and rolls it back if
  the server rejects it
- ``queue_sync`` runs deferred units in FIFO batches with independent
  success/failure reporting

All bookkeeping happens synchronously inside a single event-loop turn, so
there is no interleaving between "is a request pending under this key" and
"register the new request".
"""

from __future__ import annotations

import asyncio
import contextvars
import functools
import inspect
import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from tiffin_sync.core.config import SyncConfig
from tiffin_sync.core.scheduling import LoopScheduler, Scheduler, TimerHandle
from tiffin_sync.sync.errors import RequestCancelledError, RollbackError, describe_sync_error
from tiffin_sync.sync.models import (
    CancellationToken,
    OptimisticRecord,
    OptimisticResult,
    Operation,
    PendingRequest,
    SyncUnit,
)
from tiffin_sync.utils.logging import correlation_id_var, log_with_context

logger = logging.getLogger(__name__)


async def _invoke[T](operation: Operation[T], token: CancellationToken) -> T:
    # Calling inside the task turns synchronous raises into task failures
    return await operation(token)


class RequestCoordinator:
    """Deduplicates, debounces and batches admin data operations."""

    def __init__(
        self,
        config: SyncConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize request coordinator.

        Args:
            config: Coordinator configuration; defaults are used when omitted
            scheduler: Timer source for debouncing; defaults to the asyncio loop
        """
        self.config: SyncConfig = config or SyncConfig()
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._pending: dict[str, PendingRequest] = {}
        self._debounce_timers: dict[str, TimerHandle] = {}
        self._optimistic: dict[str, OptimisticRecord] = {}
        self._sync_queue: deque[SyncUnit] = deque()
        self._processing_task: asyncio.Task[None] | None = None

    # Requests

    def create_request[T](self, key: str, operation: Operation[T]) -> asyncio.Future[T]:
        """Start ``operation`` under ``key``, superseding any pending request.

        Must be called from within a running event loop.

        Args:
            key: Operation key, e.g. ``"save-settings"``
            operation: Async callable receiving a ``CancellationToken``

        Returns:
            Future resolving to the operation's result. It fails with
            ``RequestCancelledError`` if a newer request under the same key
            replaces this one, and with the operation's own exception if the
            operation fails.
        """
        _ = self.cancel_request(key, reason="superseded")

        loop = asyncio.get_running_loop()
        token = CancellationToken(key)
        outcome: asyncio.Future[T] = loop.create_future()

        context = contextvars.copy_context()
        _ = context.run(correlation_id_var.set, key)
        task = loop.create_task(_invoke(operation, token), context=context)

        record = PendingRequest(
            key=key,
            token=token,
            task=task,
            outcome=outcome,
            created_at=self._scheduler.now(),
        )
        self._pending[key] = record
        task.add_done_callback(functools.partial(self._settle, record))
        outcome.add_done_callback(functools.partial(self._on_outcome_done, record))

        logger.debug("Started request %s (pending: %d)", key, len(self._pending))
        return outcome

    def cancel_request(self, key: str, reason: str = "cancelled") -> bool:
        """Cancel the pending request under ``key``.

        Args:
            key: Operation key
            reason: Reason recorded on the resulting ``RequestCancelledError``

        Returns:
            True if a pending request was cancelled, False if none existed
        """
        record = self._pending.pop(key, None)
        if record is None:
            return False

        record.cancel(reason)
        logger.debug("Cancelled request %s (%s)", key, reason)
        return True

    def cancel_all(self) -> int:
        """Cancel every pending request.

        Returns:
            Number of requests cancelled
        """
        keys = list(self._pending)
        for key in keys:
            _ = self.cancel_request(key)
        if keys:
            logger.info("Cancelled %d pending requests", len(keys))
        return len(keys)

    def _settle(self, record: PendingRequest, task: asyncio.Task[Any]) -> None:  # pyright: ignore[reportExplicitAny]
        """Record the task outcome and drop the bookkeeping entry.

        The entry is only removed while it is still the registered record
        for its key, so a late finisher never evicts its successor.
        """
        if self._pending.get(record.key) is record:
            del self._pending[record.key]

        if record.outcome.done():
            if not task.cancelled():
                late_error = task.exception()
                if late_error is None:
                    logger.debug("Discarding late result of cancelled request %s", record.key)
                elif not isinstance(late_error, RequestCancelledError):
                    logger.debug(
                        "Discarding late failure of cancelled request %s: %s",
                        record.key,
                        describe_sync_error(late_error),
                    )
            return

        if task.cancelled():
            record.outcome.set_exception(RequestCancelledError(record.key, "task cancelled"))
            return

        error = task.exception()
        if error is not None:
            logger.debug("Request %s failed: %s", record.key, describe_sync_error(error))
            record.outcome.set_exception(error)
        else:
            record.outcome.set_result(task.result())

    def _on_outcome_done(self, record: PendingRequest, outcome: asyncio.Future[Any]) -> None:  # pyright: ignore[reportExplicitAny]
        # A caller that cancels its future (e.g. via wait_for) cancels the work too
        if outcome.cancelled() and self._pending.get(record.key) is record:
            _ = self.cancel_request(record.key, reason="caller cancelled")

    # Debouncing

    def debounced_sync[T](
        self,
        key: str,
        operation: Operation[T],
        delay_ms: int | None = None,
    ) -> asyncio.Future[T]:
        """Run ``operation`` once calls under ``key`` stop for ``delay_ms``.

        Each call restarts the key's timer and cancels any request already in
        flight under the key. Only the last call of a burst runs. Futures of
        superseded calls that never started remain pending forever; await the
        latest call's future instead.

        Args:
            key: Operation key
            operation: Async callable receiving a ``CancellationToken``
            delay_ms: Quiet period; defaults to ``config.debounce_delay_ms``

        Returns:
            Future settled with the eventually executed operation's outcome
        """
        loop = asyncio.get_running_loop()
        delay = (delay_ms if delay_ms is not None else self.config.debounce_delay_ms) / 1000

        previous = self._debounce_timers.pop(key, None)
        if previous is not None:
            previous.cancel()
            logger.debug("Restarted debounce timer for %s", key)
        _ = self.cancel_request(key, reason="superseded")

        result: asyncio.Future[T] = loop.create_future()
        self._debounce_timers[key] = self._scheduler.call_later(
            delay, self._fire_debounced, key, operation, result
        )
        return result

    def _fire_debounced[T](
        self,
        key: str,
        operation: Operation[T],
        result: asyncio.Future[T],
    ) -> None:
        _ = self._debounce_timers.pop(key, None)
        if result.done():
            return

        inner = self.create_request(key, operation)
        inner.add_done_callback(functools.partial(_transfer_outcome, result))
        result.add_done_callback(functools.partial(_cancel_if_abandoned, inner))

    def clear_debounce_timers(self) -> int:
        """Cancel every pending debounce timer.

        Returns:
            Number of timers cleared
        """
        count = len(self._debounce_timers)
        for timer in self._debounce_timers.values():
            timer.cancel()
        self._debounce_timers.clear()
        return count

    # Optimistic updates

    async def optimistic_update[T](
        self,
        key: str,
        apply_local: Callable[[], object],
        sync_remote: Operation[T],
        capture: Callable[[], object] | None = None,
        restore: Callable[[Any], object] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> OptimisticResult[T]:
        """Apply a local change now and confirm it with the server.

        Args:
            key: Operation key
            apply_local: Synchronous local state change
            sync_remote: Async callable performing the remote update
            capture: Returns the state to restore on failure; runs before
                ``apply_local``
            restore: Receives the captured state (None when ``capture`` is
                omitted) and puts it back

        Returns:
            Result wrapping the remote operation's value

        Raises:
            ValueError: If ``capture`` is given without ``restore``
            RequestCancelledError: If a newer request under ``key`` superseded
                this one; no rollback happens since the newer update owns the state
            RollbackError: If ``restore`` raised while undoing a failed sync
            Exception: The remote operation's failure, after rollback
        """
        if capture is not None and restore is None:
            msg = f"Optimistic update {key!r} captures state but has no restore procedure"
            raise ValueError(msg)

        original_state = capture() if capture is not None else None
        _ = apply_local()

        record = OptimisticRecord(
            key=key,
            original_state=original_state,
            restore=restore,
            created_at=self._scheduler.now(),
        )
        self._optimistic[key] = record

        try:
            data = await self.create_request(key, sync_remote)
        except RequestCancelledError:
            logger.debug("Optimistic update %s superseded", key)
            raise
        except Exception as exc:
            if record.restore is not None:
                logger.info("Rolling back optimistic update %s: %s", key, describe_sync_error(exc))
                try:
                    _ = record.restore(record.original_state)
                except Exception as rollback_exc:
                    logger.error("Rollback of %s failed: %s", key, rollback_exc)
                    raise RollbackError(key, exc) from rollback_exc
            raise
        finally:
            if self._optimistic.get(key) is record:
                del self._optimistic[key]

        return OptimisticResult(data=data)

    def has_optimistic_update(self, key: str) -> bool:
        """Whether an optimistic update under ``key`` awaits confirmation."""
        return key in self._optimistic

    # Batched queue

    def queue_sync(self, unit: SyncUnit) -> None:
        """Append a unit of work and start batch processing if idle.

        Must be called from within a running event loop.

        Args:
            unit: Deferred work with optional success/error callbacks
        """
        unit.queued_at = self._scheduler.now()
        self._sync_queue.append(unit)
        logger.debug("Queued sync unit %s (queue length: %d)", unit.label or "<unnamed>", len(self._sync_queue))

        if self._processing_task is None:
            self._processing_task = asyncio.get_running_loop().create_task(self._process_queue())

    @property
    def is_processing(self) -> bool:
        """Whether a batch is being processed."""
        return self._processing_task is not None

    @property
    def queued_count(self) -> int:
        """Number of units waiting for the next batch."""
        return len(self._sync_queue)

    async def _process_queue(self) -> None:
        """Drain the sync queue batch by batch."""
        try:
            while self._sync_queue:
                batch: list[SyncUnit] = []
                while self._sync_queue and len(batch) < self.config.batch_size:
                    batch.append(self._sync_queue.popleft())

                results = await asyncio.gather(
                    *(self._execute_unit(unit) for unit in batch),
                    return_exceptions=True,
                )
                failures = 0
                for unit, result in zip(batch, results, strict=True):
                    if isinstance(result, BaseException):
                        failures += 1
                    await self._report(unit, result)
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Processed sync batch",
                    extra={"batch_size": len(batch), "failed": failures, "remaining": len(self._sync_queue)},
                )

                if self._sync_queue:
                    await asyncio.sleep(self.config.batch_yield_ms / 1000)
        finally:
            if self._processing_task is asyncio.current_task():
                self._processing_task = None

    async def _execute_unit(self, unit: SyncUnit) -> object:
        return await unit.execute()

    async def _report(self, unit: SyncUnit, result: object) -> None:
        """Invoke the unit's callback; a failing callback never affects other units."""
        try:
            if isinstance(result, BaseException):
                if unit.on_error is None:
                    logger.warning(
                        "Sync unit %s failed without error handler: %s",
                        unit.label or "<unnamed>",
                        describe_sync_error(result),
                    )
                    return
                outcome = unit.on_error(result)
            else:
                if unit.on_success is None:
                    return
                outcome = unit.on_success(result)
            if inspect.isawaitable(outcome):
                _ = await outcome
        except Exception:
            logger.exception("Callback for sync unit %s failed", unit.label or "<unnamed>")

    # Queries and lifecycle

    @property
    def pending_count(self) -> int:
        """Number of in-flight requests."""
        return len(self._pending)

    def has_pending_operations(self) -> bool:
        """Whether any request, debounce timer or queued unit is outstanding."""
        return bool(
            self._pending
            or self._sync_queue
            or self._debounce_timers
            or self._processing_task is not None
        )

    def cleanup(self) -> None:
        """Cancel all requests and timers and drop queued and optimistic state."""
        _ = self.cancel_all()
        _ = self.clear_debounce_timers()
        self._sync_queue.clear()
        self._optimistic.clear()
        if self._processing_task is not None:
            _ = self._processing_task.cancel()
            self._processing_task = None
        logger.debug("Request coordinator cleaned up")

    async def close(self) -> None:
        """Clean up and wait for cancelled work to unwind."""
        tasks: list[asyncio.Task[Any]] = [record.task for record in self._pending.values()]  # pyright: ignore[reportExplicitAny]
        if self._processing_task is not None:
            tasks.append(self._processing_task)
        self.cleanup()
        if tasks:
            _ = await asyncio.gather(*tasks, return_exceptions=True)


def _transfer_outcome[T](target: asyncio.Future[T], source: asyncio.Future[T]) -> None:
    if target.done():
        return
    if source.cancelled():
        _ = target.cancel()
        return
    error = source.exception()
    if error is None:
        target.set_result(source.result())
        return
    target.set_exception(error)
    if isinstance(error, RequestCancelledError):
        _ = target.exception()


def _cancel_if_abandoned(inner: asyncio.Future[Any], outer: asyncio.Future[Any]) -> None:  # pyright: ignore[reportExplicitAny]
    if outer.cancelled() and not inner.done():
        _ = inner.cancel()
