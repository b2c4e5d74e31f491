"""Standardized notification messages for the admin dashboard.

Messages are grouped by category and looked up by key. Entries containing
``{placeholder}`` markers are formatted with keyword values; entries that
depend on a count have a singular and a plural form.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Final

from tiffin_sync.core.config import DEFAULT_DURATIONS_MS
from tiffin_sync.types.models import Severity

logger = logging.getLogger(__name__)


class Plural:
    """Message with a singular and a plural form selected by ``count``."""

    __slots__: tuple[str, ...] = ("singular", "plural")

    def __init__(self, singular: str, plural: str) -> None:
        self.singular: str = singular
        self.plural: str = plural

    def select(self, count: object) -> str:
        """Return the form matching ``count``."""
        return self.singular if count == 1 else self.plural


type MessageEntry = str | Plural

NOTIFICATION_MESSAGES: Final[Mapping[str, Mapping[str, MessageEntry]]] = {
    "orders": {
        "add_success": "Order added successfully",
        "add_error": "Failed to add order. Please check the details and try again.",
        "update_success": "Order updated successfully",
        "update_error": "Failed to update order. Please try again.",
        "delete_success": "Order deleted successfully",
        "delete_error": "Failed to delete order. Please try again.",
        "not_found": "Order not found. It may have been deleted.",
        "status_update_success": "Order status updated successfully",
        "status_update_error": "Failed to update order status. Please try again.",
        "clear_all_success": Plural(
            "Successfully deleted {count} order",
            "Successfully deleted {count} orders",
        ),
        "clear_all_error": "Failed to clear all orders. Please try again.",
        "clear_all_warning": Plural(
            "{count} order could not be deleted. Please try again.",
            "{count} orders could not be deleted. Please try again.",
        ),
    },
    "settings": {
        "update_success": "Settings saved successfully",
        "update_error": "Failed to save settings. Please check your inputs and try again.",
        "load_error": "Failed to load settings. Using default values.",
    },
    "backup": {
        "create_success": "Backup created successfully",
        "create_error": "Failed to create backup. Please try again.",
        "restore_success": "Data restored successfully",
        "restore_error": "Failed to restore data. Please check the backup file and try again.",
        "restore_warning": "This will overwrite all current data. Are you sure?",
    },
    "menu": {
        "update_success": "Menu updated successfully",
        "update_error": "Failed to update menu. Please try again.",
        "load_error": "Failed to load menu items.",
        "item_add_success": "Menu item added successfully",
        "item_add_error": "Failed to add menu item. Please check the details and try again.",
        "item_update_success": "Menu item updated successfully",
        "item_update_error": "Failed to update menu item. Please try again.",
        "item_delete_success": "Menu item deleted successfully",
        "item_delete_error": "Failed to delete menu item. Please try again.",
    },
    "gallery": {
        "add_success": "Gallery item added successfully",
        "add_error": "Failed to add gallery item. Please check the details and try again.",
        "update_success": "Gallery item updated successfully",
        "update_error": "Failed to update gallery item. Please try again.",
        "delete_success": "Gallery item deleted successfully",
        "delete_error": "Failed to delete gallery item. Please try again.",
        "sync_error": "Failed to sync gallery items. Please try again.",
    },
    "reviews": {
        "add_success": "Review submitted successfully. It will be published after admin approval.",
        "add_error": "Failed to submit review. Please try again.",
        "update_success": "Review updated successfully",
        "update_error": "Failed to update review. Please try again.",
        "delete_success": "Review deleted successfully",
        "delete_error": "Failed to delete review. Please try again.",
        "approve_success": "Review approved and published successfully",
        "approve_error": "Failed to approve review. Please try again.",
    },
    "upload": {
        "excel_error": "Failed to upload Excel file. Please check the file format and try again.",
        "excel_validation_error": "Invalid Excel file. Please ensure all required columns are present.",
        "excel_empty_error": "Excel file is empty or has no valid data.",
        "processing": "Processing Excel file... Please wait.",
    },
    "auth": {
        "login_success": "Logged in successfully",
        "login_error": "Invalid credentials. Please check your username and password.",
        "logout_success": "Logged out successfully",
        "session_expired": "Your session has expired. Please log in again.",
        "unauthorized": "You do not have permission to perform this action.",
    },
    "network": {
        "connection_error": (
            "Network error: Unable to connect to the server. "
            "Please check your internet connection and try again."
        ),
        "timeout_error": "Request timed out. Please try again.",
        "server_error": "Server error occurred. Please try again later.",
        "database_error": "Database connection error. Please contact support if this persists.",
    },
    "validation": {
        "required_fields": "Please fill in all required fields",
        "invalid_date": "Invalid date format. Please use a valid date.",
        "invalid_email": "Please enter a valid email address",
        "invalid_phone": "Please enter a valid phone number",
        "invalid_price": "Price must be a valid number greater than or equal to 0",
        "invalid_quantity": "Quantity must be a valid number greater than 0",
        "duplicate_order_id": 'Order with ID "{order_id}" already exists. Please use a different Order ID.',
    },
    "general": {
        "loading": "Loading...",
        "saving": "Saving...",
        "processing": "Processing...",
        "success": "Operation completed successfully",
        "error": "An error occurred. Please try again.",
        "warning": "Please review the information before proceeding",
        "info": "Information",
    },
    "reminders": {
        "sent_success": "Reminder sent successfully",
        "send_error": "Failed to send reminder. Please try again.",
    },
}

# Counted summaries whose parts are only listed when non-zero
_SUMMARY_PARTS: Final[Mapping[str, tuple[str, tuple[tuple[str, str], ...]]]] = {
    "gallery.sync_success": (
        "Gallery synced successfully: {parts}",
        (("created", "created"), ("updated", "updated"), ("deactivated", "deactivated")),
    ),
    "upload.excel_success": (
        "Upload completed: {parts}",
        (("imported", "imported"), ("updated", "updated"), ("skipped", "skipped"), ("errors", "error")),
    ),
}

FALLBACK_MESSAGE: Final[str] = "An error occurred. Please try again."


def get_notification_message(category: str, key: str, **values: object) -> str:
    """Look up and format a standardized message.

    Unknown categories fall back to the ``general`` entry with the same key;
    unknown keys fall back to the generic error text.

    Args:
        category: Message category (e.g. ``"orders"``, ``"settings"``)
        key: Message key within the category (e.g. ``"add_success"``)
        **values: Placeholder values; ``count`` selects plural forms

    Returns:
        Formatted message text

    Example:
        >>> get_notification_message("orders", "clear_all_success", count=1)
        'Successfully deleted 1 order'
        >>> get_notification_message("gallery", "sync_success", created=2, deactivated=1)
        'Gallery synced successfully: 2 created, 1 deactivated'
    """
    summary = _SUMMARY_PARTS.get(f"{category}.{key}")
    if summary is not None:
        return _format_summary(summary, values)

    category_messages = NOTIFICATION_MESSAGES.get(category)
    if category_messages is None:
        entry = NOTIFICATION_MESSAGES["general"].get(key, FALLBACK_MESSAGE)
    else:
        entry = category_messages.get(key)
        if entry is None:
            logger.debug("Unknown notification message key: %s.%s", category, key)
            return FALLBACK_MESSAGE

    if isinstance(entry, Plural):
        entry = entry.select(values.get("count"))

    try:
        return entry.format(**values)
    except (KeyError, IndexError) as exc:
        logger.warning("Missing placeholder %s for message %s.%s", exc, category, key)
        return entry


def _format_summary(
    summary: tuple[str, tuple[tuple[str, str], ...]],
    values: Mapping[str, object],
) -> str:
    template, fields = summary
    parts: list[str] = []
    for field_name, label in fields:
        count = values.get(field_name, 0)
        if isinstance(count, int) and count > 0:
            suffix = "s" if field_name == "errors" and count != 1 else ""
            parts.append(f"{count} {label}{suffix}")
    return template.format(parts=", ".join(parts))


def get_notification_duration(
    severity: Severity | str,
    custom_duration_ms: int | None = None,
    durations_ms: Mapping[Severity, int] | None = None,
) -> int:
    """Get the display duration for a severity.

    Args:
        severity: Notification severity
        custom_duration_ms: Explicit duration that takes precedence
        durations_ms: Per-severity table; defaults to the standard durations

    Returns:
        Duration in milliseconds
    """
    if custom_duration_ms is not None:
        return custom_duration_ms

    table = durations_ms if durations_ms is not None else DEFAULT_DURATIONS_MS
    try:
        return table[Severity(severity)]
    except (ValueError, KeyError):
        return DEFAULT_DURATIONS_MS[Severity.SUCCESS]
