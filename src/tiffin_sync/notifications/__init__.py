"""Notification queue for the admin dashboard."""

from __future__ import annotations

from .messages import (
    NOTIFICATION_MESSAGES,
    get_notification_duration,
    get_notification_message,
)
from .models import Notification, NotificationSnapshot, QueueState, Severity
from .queue import NotificationQueue

__all__ = [
    # Queue
    "NotificationQueue",
    # Models
    "Notification",
    "NotificationSnapshot",
    "QueueState",
    "Severity",
    # Message catalog
    "NOTIFICATION_MESSAGES",
    "get_notification_duration",
    "get_notification_message",
]
