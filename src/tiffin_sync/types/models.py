"""Shared enumerations used across the coordination layer."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Notification classification controlling default duration and styling."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
