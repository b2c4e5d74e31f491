"""Application wiring for the admin coordination layer."""

from __future__ import annotations

from .context import (
    AdminContext,
    build_admin_context,
    build_admin_context_from_file,
    notify_outcome,
)

__all__ = [
    "AdminContext",
    "build_admin_context",
    "build_admin_context_from_file",
    "notify_outcome",
]
