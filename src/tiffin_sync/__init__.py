"""Tiffin Sync - notification and request coordination for the tiffin admin dashboard.

This package provides the two in-process coordination mechanisms the admin
back office relies on: a one-at-a-time notification queue and a request
coordinator that deduplicates, debounces, batches and optimistically applies
data operations against the REST API.
"""

from tiffin_sync.app.context import AdminContext, build_admin_context, notify_outcome
from tiffin_sync.notifications import Notification, NotificationQueue, Severity
from tiffin_sync.sync import (
    CancellationToken,
    RequestCancelledError,
    RequestCoordinator,
    RollbackError,
    SyncUnit,
)

__all__ = [
    "AdminContext",
    "CancellationToken",
    "Notification",
    "NotificationQueue",
    "RequestCancelledError",
    "RequestCoordinator",
    "RollbackError",
    "Severity",
    "SyncUnit",
    "build_admin_context",
    "notify_outcome",
]
