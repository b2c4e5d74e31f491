"""Shared type definitions for the coordination layer."""

from tiffin_sync.types.models import Severity

__all__ = ["Severity"]
