"""Notification models."""

from __future__ import annotations

from .notification import Notification, NotificationSnapshot, QueueState, Severity

__all__ = [
    "Notification",
    "NotificationSnapshot",
    "QueueState",
    "Severity",
]
