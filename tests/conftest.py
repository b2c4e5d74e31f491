"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from tiffin_sync.core.config import NotificationQueueConfig, SyncConfig
from tiffin_sync.core.scheduling import ManualScheduler
from tiffin_sync.notifications.queue import NotificationQueue
from tiffin_sync.sync.coordinator import RequestCoordinator


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Provide a virtual clock starting at zero."""
    return ManualScheduler()


@pytest.fixture
def notification_queue(scheduler: ManualScheduler) -> NotificationQueue:
    """Provide a notification queue driven by the virtual clock."""
    return NotificationQueue(NotificationQueueConfig(), scheduler)


@pytest_asyncio.fixture
async def coordinator(scheduler: ManualScheduler) -> AsyncGenerator[RequestCoordinator, None]:
    """Provide a coordinator with virtual-clock debouncing and no batch pause."""
    instance = RequestCoordinator(SyncConfig(batch_yield_ms=0), scheduler)
    yield instance
    await instance.close()


@pytest.fixture
def sample_config() -> dict[str, object]:
    """Provide sample configuration for testing."""
    return {
        "notifications": {
            "default_durations_ms": {"success": 3000, "error": 8000},
            "info_gap_ms": 600,
            "gap_ms": 1000,
            "dismiss_gap_ms": 400,
            "persistent_fallback_ms": 5000,
        },
        "sync": {
            "debounce_delay_ms": 250,
            "batch_size": 20,
            "batch_yield_ms": 50,
        },
        "application": {
            "log_level": "DEBUG",
        },
    }
