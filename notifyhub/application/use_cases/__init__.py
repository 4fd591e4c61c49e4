"""Aggregate application use cases."""

from .notifications import (
    create_notification,
    get_recent_notifications,
    get_unread_notification_count,
    mark_all_notifications_read,
    mark_notification_read,
)

__all__ = [
    "create_notification",
    "get_recent_notifications",
    "get_unread_notification_count",
    "mark_all_notifications_read",
    "mark_notification_read",
]
