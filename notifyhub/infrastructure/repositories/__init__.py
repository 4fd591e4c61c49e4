"""Repository implementations for infrastructure layer."""

from .notification_preference_repository import (
    NotificationPreferenceRepository,
    NotificationTypeRepository,
)
from .notification_repository import (
    FILTER_ALL,
    FILTER_IMPORTANT,
    FILTER_UNREAD,
    LIST_FILTERS,
    NotificationRepository,
)

__all__ = [
    "FILTER_ALL",
    "FILTER_IMPORTANT",
    "FILTER_UNREAD",
    "LIST_FILTERS",
    "NotificationPreferenceRepository",
    "NotificationRepository",
    "NotificationTypeRepository",
]
