"""Notification client: realtime service and the state container built on it."""

from .notification_service import NotificationService, group_notifications
from .notification_store import (
    NotificationStore,
    NotificationStoreSnapshot,
    notification_store,
    toast_options,
)
from .results import ServiceResult

__all__ = [
    "NotificationService",
    "NotificationStore",
    "NotificationStoreSnapshot",
    "ServiceResult",
    "group_notifications",
    "notification_store",
    "toast_options",
]
