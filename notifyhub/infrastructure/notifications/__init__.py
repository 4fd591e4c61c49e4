"""Realtime notification helpers for the infrastructure layer."""

from .manager import (
    ChangeFeedSubscriber,
    NotificationConnectionManager,
    notification_manager,
)
from .publisher import (
    ChangeFeedPublisher,
    change_feed_publisher,
    serialize_notification,
)

__all__ = [
    "ChangeFeedSubscriber",
    "NotificationConnectionManager",
    "notification_manager",
    "ChangeFeedPublisher",
    "change_feed_publisher",
    "serialize_notification",
]
