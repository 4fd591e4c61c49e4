"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .notification_preference import (
    NotificationTypeModel,
    UserNotificationPreferenceModel,
)

__all__ = [
    "NotificationModel",
    "NotificationTypeModel",
    "UserNotificationPreferenceModel",
]
