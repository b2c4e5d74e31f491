"""Request coordination: deduplication, debouncing, optimistic updates and batching."""

from __future__ import annotations

from .coordinator import RequestCoordinator
from .errors import RequestCancelledError, RollbackError, SyncError, is_cancellation
from .models import (
    CancellationToken,
    OptimisticRecord,
    OptimisticResult,
    PendingRequest,
    SyncUnit,
)

__all__ = [
    # Coordinator
    "RequestCoordinator",
    # Errors
    "RequestCancelledError",
    "RollbackError",
    "SyncError",
    "is_cancellation",
    # Records
    "CancellationToken",
    "OptimisticRecord",
    "OptimisticResult",
    "PendingRequest",
    "SyncUnit",
]
