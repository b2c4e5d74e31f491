"""Application context wiring the coordination components together.

The admin dashboard builds one context at startup and hands it to every
component that shows notifications or talks to the REST API. Nothing in
this package keeps module-level mutable state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from pathlib import Path

from tiffin_sync.core.config import MainConfig, load_config
from tiffin_sync.core.scheduling import Scheduler
from tiffin_sync.notifications.messages import get_notification_message
from tiffin_sync.notifications.queue import NotificationQueue
from tiffin_sync.sync.coordinator import RequestCoordinator
from tiffin_sync.sync.errors import RequestCancelledError, describe_sync_error
from tiffin_sync.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@dataclass
class AdminContext:
    """Notification queue and request coordinator shared by the admin UI."""

    config: MainConfig
    notifications: NotificationQueue
    coordinator: RequestCoordinator
    _closed: bool = field(default=False, repr=False)

    def has_pending_work(self) -> bool:
        """Whether navigation or unload should be held back."""
        return self.coordinator.has_pending_operations()

    async def aclose(self) -> None:
        """Cancel outstanding work and drop every notification."""
        if self._closed:
            return
        self._closed = True
        await self.coordinator.close()
        self.notifications.clear_all()
        logger.info("Admin context closed")


def build_admin_context(
    config: MainConfig | None = None,
    scheduler: Scheduler | None = None,
    *,
    setup_logging: bool = False,
) -> AdminContext:
    """Construct the components once for dependency injection.

    Args:
        config: Validated configuration; defaults are used when omitted
        scheduler: Timer source shared by both components
        setup_logging: Configure root logging from ``config.application``

    Returns:
        New admin context
    """
    config = config or MainConfig()
    if setup_logging:
        configure_logging(
            log_level=config.application.log_level,
            log_format=config.application.log_format,
        )

    context = AdminContext(
        config=config,
        notifications=NotificationQueue(config.notifications, scheduler),
        coordinator=RequestCoordinator(config.sync, scheduler),
    )
    logger.debug(
        "Admin context ready (debounce=%dms, batch_size=%d)",
        config.sync.debounce_delay_ms,
        config.sync.batch_size,
    )
    return context


def build_admin_context_from_file(
    config_path: Path,
    scheduler: Scheduler | None = None,
) -> AdminContext:
    """Load configuration from YAML, set up logging and build the context.

    Raises:
        ConfigurationError: If the configuration cannot be loaded
    """
    return build_admin_context(load_config(config_path), scheduler, setup_logging=True)


async def notify_outcome[T](
    context: AdminContext,
    pending: Awaitable[T],
    *,
    category: str,
    success_key: str,
    error_key: str,
    **values: object,
) -> T | None:
    """Await a coordinated operation and report it through the notification queue.

    Superseded requests are silent because a newer request reports instead.

    Args:
        context: Admin context
        pending: Future or coroutine returned by the coordinator
        category: Message catalog category, e.g. ``"settings"``
        success_key: Catalog key shown on success
        error_key: Catalog key shown on failure
        **values: Placeholder values for the messages

    Returns:
        The operation's result, or None if it failed or was superseded
    """
    try:
        result = await pending
    except RequestCancelledError:
        logger.debug("Skipping notification for superseded %s operation", category)
        return None
    except Exception as exc:
        logger.warning("%s operation failed: %s", category, describe_sync_error(exc))
        _ = context.notifications.error(get_notification_message(category, error_key, **values))
        return None

    _ = context.notifications.success(get_notification_message(category, success_key, **values))
    return result
