"""Timer scheduling abstractions for the admin coordination layer.

Both the notification queue and the request coordinator are driven by
timers. They never touch the event loop directly; they talk to a
``Scheduler`` so that production code runs on the asyncio loop while tests
drive a virtual clock forward deterministically.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, override, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class TimerHandle(Protocol):
    """Handle returned by ``Scheduler.call_later``."""

    def cancel(self) -> None:
        """Cancel the timer; a no-op if it already fired or was cancelled."""
        ...

    def cancelled(self) -> bool:
        """Return True if the timer was cancelled."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for clocks that can run callbacks after a delay.

    Delays and timestamps are expressed in seconds, matching the asyncio
    event loop.
    """

    def now(self) -> float:
        """Return the current monotonic time in seconds."""
        ...

    def call_later(
        self,
        delay: float,
        callback: Callable[..., object],
        *args: object,
    ) -> TimerHandle:
        """Schedule ``callback(*args)`` to run after ``delay`` seconds.

        Args:
            delay: Delay in seconds (negative values are treated as zero)
            callback: Callable to invoke
            *args: Positional arguments for the callback

        Returns:
            Handle that can cancel the pending call
        """
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Initialize loop scheduler.

        Args:
            loop: Event loop to use; defaults to the running loop at call time
        """
        self._loop: asyncio.AbstractEventLoop | None = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        """Return the event loop's monotonic time."""
        return self._get_loop().time()

    def call_later(
        self,
        delay: float,
        callback: Callable[..., object],
        *args: object,
    ) -> asyncio.TimerHandle:
        """Schedule a callback on the event loop."""
        return self._get_loop().call_later(max(delay, 0.0), callback, *args)


@dataclass(order=True)
class ManualTimer:
    """Timer scheduled on a ``ManualScheduler``."""

    deadline: float
    sequence: int
    callback: Callable[..., object] = field(compare=False)
    args: tuple[object, ...] = field(compare=False, default=())
    _cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        """Cancel the timer."""
        self._cancelled = True

    def cancelled(self) -> bool:
        """Return True if the timer was cancelled."""
        return self._cancelled

    @override
    def __repr__(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"ManualTimer(deadline={self.deadline:.3f}, callback={name})"


class ManualScheduler:
    """Virtual-clock scheduler that only moves when told to.

    Timers fire in deadline order; timers sharing a deadline fire in the
    order they were scheduled. Callbacks scheduled by a firing callback run
    within the same ``advance`` call when their deadline falls inside the
    advanced window.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired: list[str] = []
        >>> _ = scheduler.call_later(1.0, fired.append, "tick")
        >>> scheduler.advance(0.5)
        >>> fired
        []
        >>> scheduler.advance(0.5)
        >>> fired
        ['tick']
    """

    def __init__(self, start: float = 0.0) -> None:
        """Initialize manual scheduler.

        Args:
            start: Initial clock value in seconds
        """
        self._now: float = start
        self._timers: list[ManualTimer] = []
        self._sequence: itertools.count[int] = itertools.count()

    def now(self) -> float:
        """Return the virtual clock value."""
        return self._now

    def call_later(
        self,
        delay: float,
        callback: Callable[..., object],
        *args: object,
    ) -> ManualTimer:
        """Schedule a callback on the virtual clock."""
        timer = ManualTimer(
            deadline=self._now + max(delay, 0.0),
            sequence=next(self._sequence),
            callback=callback,
            args=args,
        )
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that comes due.

        Args:
            seconds: Amount of virtual time to advance

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            msg = f"Cannot move a clock backwards: {seconds}"
            raise ValueError(msg)

        target = self._now + seconds
        while self._timers and self._timers[0].deadline <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled():
                continue
            self._now = timer.deadline
            _ = timer.callback(*timer.args)
        self._now = target

    def run_all(self, limit: int = 10_000) -> None:
        """Fire timers until none remain.

        Args:
            limit: Maximum number of timers to fire before giving up

        Raises:
            RuntimeError: If timers keep rescheduling beyond the limit
        """
        fired = 0
        while self.pending():
            next_deadline = min(t.deadline for t in self._timers if not t.cancelled())
            self.advance(next_deadline - self._now)
            fired += 1
            if fired >= limit:
                msg = f"Timers still pending after {limit} rounds"
                raise RuntimeError(msg)

    def pending(self) -> int:
        """Return the number of scheduled, uncancelled timers."""
        return sum(1 for t in self._timers if not t.cancelled())
