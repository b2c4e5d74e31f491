"""Notification models for the admin notification queue."""

from __future__ import annotations

from enum import Enum
from typing import override

from pydantic import BaseModel, ConfigDict, Field

from tiffin_sync.types.models import Severity

__all__ = ["Notification", "NotificationSnapshot", "QueueState", "Severity"]


class Notification(BaseModel):
    """Transient user-facing message shown by the notification queue."""

    model_config: ConfigDict = ConfigDict(frozen=True)  # pyright: ignore[reportIncompatibleVariableOverride]

    id: int = Field(
        ...,
        ge=1,
        description="Unique, monotonically increasing notification identifier",
    )

    message: str = Field(
        ...,
        description="Text shown to the user; any text is accepted",
    )

    severity: Severity = Field(
        default=Severity.SUCCESS,
        description="Severity of the notification",
    )

    duration_ms: int = Field(
        default=5000,
        ge=0,
        description="Display time in milliseconds; 0 keeps it until dismissed",
    )

    created_at: float = Field(
        default=0.0,
        description="Scheduler clock value at enqueue time, in seconds",
    )

    @property
    def is_persistent(self) -> bool:
        """Whether the notification waits for an explicit dismissal."""
        return self.duration_ms == 0

    @override
    def __str__(self) -> str:
        """String representation of the notification."""
        return f"Notification(id={self.id}, severity='{self.severity.value}')"


class QueueState(Enum):
    """Display states of the notification queue."""

    IDLE = "idle"
    DISPLAYING = "displaying"
    DRAINING = "draining"


class NotificationSnapshot(BaseModel):
    """Presentation view of the queue: the active item plus what is waiting."""

    model_config: ConfigDict = ConfigDict(frozen=True)  # pyright: ignore[reportIncompatibleVariableOverride]

    active: tuple[Notification, ...] = ()
    queued: int = Field(default=0, ge=0)
    state: QueueState = QueueState.IDLE

    @property
    def is_empty(self) -> bool:
        """True when nothing is displayed and nothing is waiting."""
        return not self.active and self.queued == 0
