"""Domain entities exposed by the application."""

from .notification import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    DEFAULT_ICON,
    IMPORTANT_PRIORITIES,
    PRIORITIES,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_NORMAL,
    PRIORITY_URGENT,
    Notification,
    NotificationGroup,
    category_info,
)
from .notification_preference import (
    PREFERENCE_FIELDS,
    PREFERENCE_TOGGLES,
    NotificationPreference,
    NotificationType,
)
from .realtime import (
    CHANGE_INSERT,
    CHANGE_UPDATE,
    CHANNEL_CLOSED,
    CHANNEL_ERROR,
    CHANNEL_SUBSCRIBED,
    CHANNEL_TIMED_OUT,
    EVENT_NEW,
    EVENT_UPDATE,
    NOTIFICATION_TYPES_TABLE,
    NOTIFICATIONS_TABLE,
    PREFERENCES_TABLE,
    ChangeEvent,
    ConnectionState,
    channel_name_for,
    user_filter_for,
)

__all__ = [
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "DEFAULT_COLOR",
    "DEFAULT_ICON",
    "IMPORTANT_PRIORITIES",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "PRIORITY_URGENT",
    "Notification",
    "NotificationGroup",
    "category_info",
    "PREFERENCE_FIELDS",
    "PREFERENCE_TOGGLES",
    "NotificationPreference",
    "NotificationType",
    "CHANGE_INSERT",
    "CHANGE_UPDATE",
    "CHANNEL_CLOSED",
    "CHANNEL_ERROR",
    "CHANNEL_SUBSCRIBED",
    "CHANNEL_TIMED_OUT",
    "EVENT_NEW",
    "EVENT_UPDATE",
    "NOTIFICATION_TYPES_TABLE",
    "NOTIFICATIONS_TABLE",
    "PREFERENCES_TABLE",
    "ChangeEvent",
    "ConnectionState",
    "channel_name_for",
    "user_filter_for",
]
