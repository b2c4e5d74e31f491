"""Unit tests for the one-at-a-time notification queue.

All timing is driven by a ManualScheduler, so every assertion about "when"
a notification appears is exact.
"""

import logging

import pytest

from tiffin_sync.core.config import NotificationQueueConfig
from tiffin_sync.core.scheduling import ManualScheduler
from tiffin_sync.notifications.models.notification import NotificationSnapshot, QueueState, Severity
from tiffin_sync.notifications.queue import NotificationQueue


def _active_message(queue: NotificationQueue) -> str | None:
    return queue.active.message if queue.active is not None else None


@pytest.mark.unit
class TestEnqueue:
    """Test enqueueing and immediate display."""

    def test_first_notification_displays_immediately(
        self,
        notification_queue: NotificationQueue,
    ) -> None:
        """Test that an idle queue shows the new notification at once."""
        notification_id = notification_queue.enqueue("Order saved")

        assert notification_id == 1
        assert notification_queue.state is QueueState.DISPLAYING
        assert _active_message(notification_queue) == "Order saved"
        assert notification_queue.queue_length == 0

    def test_ids_are_monotonic(self, notification_queue: NotificationQueue) -> None:
        """Test that ids increase by one per enqueue."""
        ids = [notification_queue.info(f"message {i}") for i in range(4)]

        assert ids == [1, 2, 3, 4]

    def test_only_one_notification_visible(self, notification_queue: NotificationQueue) -> None:
        """Test that later notifications wait while one is displayed."""
        _ = notification_queue.success("first")
        _ = notification_queue.error("second")
        _ = notification_queue.warning("third")

        snapshot = notification_queue.snapshot()
        assert len(snapshot.active) == 1
        assert snapshot.active[0].message == "first"
        assert snapshot.queued == 2

    def test_severity_helpers(self, notification_queue: NotificationQueue) -> None:
        """Test that helper methods set the severity and default duration."""
        _ = notification_queue.error("Failed to save")

        active = notification_queue.active
        assert active is not None
        assert active.severity is Severity.ERROR
        assert active.duration_ms == 6000

    def test_severity_accepts_string(self, notification_queue: NotificationQueue) -> None:
        """Test that severities may be passed by value."""
        _ = notification_queue.enqueue("Heads up", "warning")

        active = notification_queue.active
        assert active is not None
        assert active.severity is Severity.WARNING

    def test_unknown_severity_rejected(self, notification_queue: NotificationQueue) -> None:
        """Test that an unknown severity string raises."""
        with pytest.raises(ValueError):
            _ = notification_queue.enqueue("Oops", "fatal")

    def test_explicit_duration_overrides_default(self, notification_queue: NotificationQueue) -> None:
        """Test that a caller-provided duration wins."""
        _ = notification_queue.success("Quick", duration_ms=1500)

        active = notification_queue.active
        assert active is not None
        assert active.duration_ms == 1500

    def test_any_message_text_is_accepted(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that empty and very long messages are queued and shown as is."""
        long_message = "x" * 5000

        empty_id = notification_queue.enqueue("")
        long_id = notification_queue.enqueue(long_message, Severity.ERROR)

        assert empty_id == 1
        assert long_id == 2
        assert _active_message(notification_queue) == ""

        scheduler.run_all()
        assert notification_queue.state is QueueState.IDLE

    def test_long_message_displayed_unchanged(self, notification_queue: NotificationQueue) -> None:
        """Test that long text is not truncated."""
        long_message = "Upload failed: " + "row rejected; " * 400

        _ = notification_queue.error(long_message)

        assert _active_message(notification_queue) == long_message


@pytest.mark.unit
class TestTiming:
    """Test display durations and inter-message gaps."""

    def test_success_then_info_sequence(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test the save-then-sync sequence shown on the orders page."""
        _ = notification_queue.enqueue("Order saved", Severity.SUCCESS, 4000)
        _ = notification_queue.enqueue("Syncing...", Severity.INFO, 800)

        scheduler.advance(3.9)
        assert _active_message(notification_queue) == "Order saved"

        # 4.1s: display ended at 4.0s, gap runs until 5.2s
        scheduler.advance(0.2)
        assert notification_queue.active is None
        assert notification_queue.state is QueueState.DRAINING

        scheduler.advance(1.0)
        assert notification_queue.active is None

        # 5.3s: info shown at 5.2s for 800ms
        scheduler.advance(0.2)
        assert _active_message(notification_queue) == "Syncing..."

        scheduler.advance(0.8)
        assert notification_queue.active is None
        assert notification_queue.state is QueueState.DRAINING

        scheduler.advance(0.8)
        assert notification_queue.state is QueueState.IDLE
        assert scheduler.pending() == 0

    def test_info_uses_shorter_gap(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that the gap after an info notification is shorter."""
        _ = notification_queue.info("Loading menu", duration_ms=1000)
        _ = notification_queue.success("Menu loaded")

        scheduler.advance(1.0)
        assert notification_queue.active is None

        scheduler.advance(0.8)
        assert _active_message(notification_queue) == "Menu loaded"

    def test_persistent_notification_auto_dismisses(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that a zero-duration notification still leaves after the fallback."""
        _ = notification_queue.error("Connection lost", duration_ms=0)

        active = notification_queue.active
        assert active is not None
        assert active.is_persistent

        scheduler.advance(2.9)
        assert _active_message(notification_queue) == "Connection lost"

        scheduler.advance(0.2)
        assert notification_queue.active is None

    def test_enqueue_while_draining_waits_for_gap(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that a notification enqueued during the gap is not shown early."""
        _ = notification_queue.success("Saved", duration_ms=1000)
        scheduler.advance(1.0)
        assert notification_queue.state is QueueState.DRAINING

        _ = notification_queue.info("Next")
        assert notification_queue.active is None
        assert notification_queue.queue_length == 1

        scheduler.advance(1.2)
        assert _active_message(notification_queue) == "Next"

    def test_queue_becomes_idle_after_gap(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that an empty queue returns to IDLE after the final gap."""
        _ = notification_queue.success("Done", duration_ms=500)

        scheduler.advance(0.5)
        scheduler.advance(1.2)

        assert notification_queue.state is QueueState.IDLE
        assert notification_queue.snapshot().is_empty

    def test_state_history_stays_bounded(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that a long-lived queue keeps only recent states."""
        for i in range(1000):
            _ = notification_queue.info(f"message {i}", duration_ms=1)
        scheduler.run_all()

        history = notification_queue.state_history
        assert len(history) <= 16
        assert history[-1] is QueueState.IDLE
        assert notification_queue.state is QueueState.IDLE


@pytest.mark.unit
class TestDismiss:
    """Test manual dismissal."""

    def test_dismiss_active(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that dismissing the active notification uses the short gap."""
        first = notification_queue.success("Saved")
        _ = notification_queue.success("Published")
        assert first is not None

        assert notification_queue.dismiss(first)
        assert notification_queue.active is None

        scheduler.advance(0.49)
        assert notification_queue.active is None

        scheduler.advance(0.02)
        assert _active_message(notification_queue) == "Published"

    def test_dismiss_cancels_display_timer(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that the original display timer no longer fires."""
        first = notification_queue.success("Saved", duration_ms=1000)
        assert first is not None

        _ = notification_queue.dismiss(first)

        assert scheduler.pending() == 1
        scheduler.run_all()
        assert notification_queue.state is QueueState.IDLE

    def test_dismiss_persistent_cancels_fallback(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that dismissing a zero-duration notification drops its fallback timer."""
        persistent = notification_queue.error("Connection lost", duration_ms=0)
        _ = notification_queue.success("Reconnected")
        assert persistent is not None

        scheduler.advance(1.0)
        with caplog.at_level(logging.WARNING):
            assert notification_queue.dismiss(persistent)

            scheduler.advance(0.49)
            assert notification_queue.active is None

            scheduler.advance(0.02)
            assert _active_message(notification_queue) == "Reconnected"

            # 3.2s: past the fallback the persistent notification was given
            scheduler.advance(1.69)
            assert _active_message(notification_queue) == "Reconnected"

        assert "Stale notification timer" not in caplog.text

    def test_dismiss_queued_is_noop(self, notification_queue: NotificationQueue) -> None:
        """Test that a queued notification cannot be dismissed early."""
        _ = notification_queue.success("Shown")
        queued = notification_queue.success("Waiting")
        assert queued is not None

        assert not notification_queue.dismiss(queued)
        assert notification_queue.queue_length == 1
        assert _active_message(notification_queue) == "Shown"

    def test_dismiss_unknown_is_noop(self, notification_queue: NotificationQueue) -> None:
        """Test that unknown ids are ignored."""
        assert not notification_queue.dismiss(99)
        assert notification_queue.state is QueueState.IDLE

    def test_dismiss_twice(self, notification_queue: NotificationQueue) -> None:
        """Test that a second dismiss of the same id is ignored."""
        notification_id = notification_queue.success("Saved")
        assert notification_id is not None

        assert notification_queue.dismiss(notification_id)
        assert not notification_queue.dismiss(notification_id)


@pytest.mark.unit
class TestClearAll:
    """Test clearing the queue."""

    def test_clear_all_drops_everything(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that clear_all empties the slot, the queue and the timers."""
        _ = notification_queue.success("one")
        _ = notification_queue.success("two")

        notification_queue.clear_all()

        assert notification_queue.state is QueueState.IDLE
        assert notification_queue.snapshot().is_empty
        assert scheduler.pending() == 0

    def test_clear_all_while_draining(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that clearing during a gap returns straight to IDLE."""
        _ = notification_queue.success("one", duration_ms=100)
        scheduler.advance(0.1)
        assert notification_queue.state is QueueState.DRAINING

        notification_queue.clear_all()

        assert notification_queue.state is QueueState.IDLE
        assert scheduler.pending() == 0

    def test_enqueue_after_clear(self, notification_queue: NotificationQueue) -> None:
        """Test that the queue keeps working after a clear."""
        _ = notification_queue.success("before")
        notification_queue.clear_all()

        notification_id = notification_queue.success("after")

        assert notification_id == 2
        assert _active_message(notification_queue) == "after"


@pytest.mark.unit
class TestListeners:
    """Test display-change listeners."""

    def test_listener_receives_snapshots(
        self,
        notification_queue: NotificationQueue,
        scheduler: ManualScheduler,
    ) -> None:
        """Test that listeners see display and vacate transitions."""
        snapshots: list[NotificationSnapshot] = []
        notification_queue.add_listener(snapshots.append)

        _ = notification_queue.success("Saved", duration_ms=1000)
        scheduler.advance(1.0)

        assert [s.state for s in snapshots] == [QueueState.DISPLAYING, QueueState.DRAINING]
        assert snapshots[0].active[0].message == "Saved"
        assert snapshots[1].active == ()

    def test_removed_listener_not_called(self, notification_queue: NotificationQueue) -> None:
        """Test that removed listeners stop receiving snapshots."""
        snapshots: list[NotificationSnapshot] = []
        notification_queue.add_listener(snapshots.append)
        notification_queue.remove_listener(snapshots.append)
        notification_queue.remove_listener(snapshots.append)

        _ = notification_queue.success("Saved")

        assert snapshots == []

    def test_failing_listener_is_isolated(
        self,
        notification_queue: NotificationQueue,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that a listener exception neither propagates nor starves others."""
        snapshots: list[NotificationSnapshot] = []

        def broken(_snapshot: NotificationSnapshot) -> None:
            raise RuntimeError("render failed")

        notification_queue.add_listener(broken)
        notification_queue.add_listener(snapshots.append)

        with caplog.at_level(logging.ERROR):
            _ = notification_queue.success("Saved")

        assert len(snapshots) == 1
        assert "listener" in caplog.text


@pytest.mark.unit
class TestDuplicateSuppression:
    """Test the optional duplicate window."""

    def test_disabled_by_default(self, notification_queue: NotificationQueue) -> None:
        """Test that identical messages are all kept by default."""
        ids = [notification_queue.error("Network error") for _ in range(3)]

        assert None not in ids
        assert notification_queue.queue_length == 2

    def test_duplicates_dropped_within_window(self, scheduler: ManualScheduler) -> None:
        """Test that an identical message and severity inside the window is dropped."""
        queue = NotificationQueue(NotificationQueueConfig(duplicate_window_ms=2000), scheduler)

        assert queue.error("Network error") == 1
        assert queue.error("Network error") is None
        assert queue.warning("Network error") == 2

    def test_duplicate_allowed_after_window(self, scheduler: ManualScheduler) -> None:
        """Test that the same message is accepted once the window elapsed."""
        queue = NotificationQueue(
            NotificationQueueConfig(duplicate_window_ms=500),
            scheduler,
        )
        _ = queue.info("Syncing", duration_ms=10_000)
        _ = queue.success("Other")

        scheduler.advance(0.5)

        assert queue.info("Syncing") == 3
