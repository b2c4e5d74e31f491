"""One-at-a-time notification queue for the admin dashboard.

Notifications are shown in the order they were enqueued and never more than
one at a time. The queue moves through three states:

- ``IDLE``: nothing displayed, ready to show the next queued item
- ``DISPLAYING``: one notification occupies the active slot until its timer
  fires or it is dismissed
- ``DRAINING``: the slot was just emptied; the next item appears after a
  short gap so consecutive messages stay visually distinct

Every timer callback funnels through ``_on_timer_fire`` which performs one
state transition, so ordering is easy to test with a manual scheduler.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable

from tiffin_sync.core.config import NotificationQueueConfig
from tiffin_sync.core.scheduling import LoopScheduler, Scheduler, TimerHandle
from tiffin_sync.core.state_machine import StateMachine, StateTransition
from tiffin_sync.notifications.messages import get_notification_duration
from tiffin_sync.notifications.models.notification import (
    Notification,
    NotificationSnapshot,
    QueueState,
    Severity,
)

logger = logging.getLogger(__name__)

type NotificationListener = Callable[[NotificationSnapshot], object]

_QUEUE_TRANSITIONS: tuple[StateTransition[QueueState], ...] = (
    StateTransition(QueueState.IDLE, QueueState.DISPLAYING),
    StateTransition(QueueState.DISPLAYING, QueueState.DRAINING),
    StateTransition(QueueState.DRAINING, QueueState.IDLE),
    # clear_all
    StateTransition(QueueState.DISPLAYING, QueueState.IDLE),
)

# Recent queue states kept for debugging
_STATE_HISTORY_LIMIT = 16


class NotificationQueue:
    """Serializes transient notifications so at most one is visible."""

    def __init__(
        self,
        config: NotificationQueueConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize notification queue.

        Args:
            config: Timing configuration; defaults are used when omitted
            scheduler: Timer source; defaults to the running asyncio loop
        """
        self.config: NotificationQueueConfig = config or NotificationQueueConfig()
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._machine: StateMachine[QueueState] = StateMachine(
            QueueState.IDLE, _QUEUE_TRANSITIONS, history_limit=_STATE_HISTORY_LIMIT
        )
        self._queue: deque[Notification] = deque()
        self._active: Notification | None = None
        self._timer: TimerHandle | None = None
        self._ids: itertools.count[int] = itertools.count(1)
        self._recent: dict[tuple[str, Severity], float] = {}
        self._listeners: list[NotificationListener] = []

    @property
    def state(self) -> QueueState:
        """Current display state."""
        return self._machine.current_state

    @property
    def state_history(self) -> list[QueueState]:
        """Recent display states, oldest first."""
        return self._machine.context.get_state_history()

    @property
    def active(self) -> Notification | None:
        """Notification currently displayed, if any."""
        return self._active

    @property
    def queue_length(self) -> int:
        """Number of notifications waiting to be displayed."""
        return len(self._queue)

    def snapshot(self) -> NotificationSnapshot:
        """Return the presentation view of the queue."""
        return NotificationSnapshot(
            active=(self._active,) if self._active is not None else (),
            queued=len(self._queue),
            state=self.state,
        )

    def add_listener(self, listener: NotificationListener) -> None:
        """Register a callback invoked with a snapshot on every display change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: NotificationListener) -> None:
        """Unregister a display-change callback; unknown callbacks are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def enqueue(
        self,
        message: str,
        severity: Severity | str = Severity.SUCCESS,
        duration_ms: int | None = None,
    ) -> int | None:
        """Queue a notification for display.

        Args:
            message: Text to show
            severity: Notification severity
            duration_ms: Display time; ``None`` uses the severity default and
                ``0`` keeps the notification until it is dismissed

        Returns:
            The new notification id, or None when duplicate suppression
            dropped the call
        """
        severity = Severity(severity)
        now = self._scheduler.now()

        if self._is_duplicate(message, severity, now):
            logger.debug("Suppressed duplicate %s notification: %s", severity.value, message)
            return None

        notification = Notification(
            id=next(self._ids),
            message=message,
            severity=severity,
            duration_ms=get_notification_duration(
                severity, duration_ms, self.config.default_durations_ms
            ),
            created_at=now,
        )
        self._queue.append(notification)
        logger.debug("Enqueued %s (queue length: %d)", notification, len(self._queue))

        self._process()
        return notification.id

    def success(self, message: str, duration_ms: int | None = None) -> int | None:
        """Queue a success notification."""
        return self.enqueue(message, Severity.SUCCESS, duration_ms)

    def error(self, message: str, duration_ms: int | None = None) -> int | None:
        """Queue an error notification."""
        return self.enqueue(message, Severity.ERROR, duration_ms)

    def warning(self, message: str, duration_ms: int | None = None) -> int | None:
        """Queue a warning notification."""
        return self.enqueue(message, Severity.WARNING, duration_ms)

    def info(self, message: str, duration_ms: int | None = None) -> int | None:
        """Queue an info notification."""
        return self.enqueue(message, Severity.INFO, duration_ms)

    def dismiss(self, notification_id: int) -> bool:
        """Dismiss the displayed notification.

        Only the active notification can be dismissed; ids of queued or
        unknown notifications are ignored and stay in the queue.

        Args:
            notification_id: Id returned by ``enqueue``

        Returns:
            True if the active notification was dismissed
        """
        if self._active is None or self._active.id != notification_id:
            logger.debug("Ignoring dismiss for inactive notification %d", notification_id)
            return False

        self._cancel_timer()
        logger.debug("Dismissed %s", self._active)
        self._vacate(self.config.dismiss_gap_ms / 1000)
        return True

    def clear_all(self) -> None:
        """Drop the active notification, every queued one and all timers."""
        self._cancel_timer()
        dropped = len(self._queue) + (1 if self._active is not None else 0)
        self._queue.clear()
        self._recent.clear()
        self._active = None
        if self.state is not QueueState.IDLE:
            _ = self._machine.transition_to(QueueState.IDLE)
        logger.debug("Cleared %d notifications", dropped)
        self._notify_listeners()

    def _process(self) -> None:
        """Move the queue head into the active slot when the slot is free."""
        if self.state is not QueueState.IDLE or not self._queue:
            return

        notification = self._queue.popleft()
        self._active = notification
        _ = self._machine.transition_to(QueueState.DISPLAYING)

        if notification.is_persistent:
            display_for = self.config.persistent_fallback_ms / 1000
        else:
            display_for = notification.duration_ms / 1000
        self._timer = self._scheduler.call_later(display_for, self._on_timer_fire, notification.id)

        logger.debug("Displaying %s for %.3fs", notification, display_for)
        self._notify_listeners()

    def _on_timer_fire(self, notification_id: int | None) -> None:
        """Single transition function for every queue timer.

        Args:
            notification_id: Id of the notification whose display time ended,
                or None when the draining gap ended
        """
        self._timer = None
        match self.state:
            case QueueState.DISPLAYING if self._active is not None and self._active.id == notification_id:
                self._vacate(self.config.gap_after(self._active.severity))
            case QueueState.DRAINING if notification_id is None:
                _ = self._machine.transition_to(QueueState.IDLE)
                self._process()
            case _:
                logger.warning(
                    "Stale notification timer fired in state %s (id=%s)",
                    self.state.name,
                    notification_id,
                )

    def _vacate(self, gap: float) -> None:
        """Empty the active slot and schedule the next item after ``gap`` seconds."""
        if self._active is not None:
            _ = self._recent.pop((self._active.message, self._active.severity), None)
        self._active = None
        _ = self._machine.transition_to(QueueState.DRAINING)
        self._timer = self._scheduler.call_later(gap, self._on_timer_fire, None)
        self._notify_listeners()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _is_duplicate(self, message: str, severity: Severity, now: float) -> bool:
        window = self.config.duplicate_window_ms / 1000
        if window <= 0:
            return False

        key = (message, severity)
        last = self._recent.get(key)
        if last is not None and now - last < window:
            return True
        self._recent[key] = now
        return False

    def _notify_listeners(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                _ = listener(snapshot)
            except Exception:
                logger.exception("Notification listener %r failed", listener)
