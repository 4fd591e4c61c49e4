"""Remote procedures backing the notification client.

Each function mirrors one procedure of the backend contract and is called
either from the HTTP routes or from :class:`LocalBackendClient`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from notifyhub.domain.entities import (
    DEFAULT_CATEGORY,
    PRIORITIES,
    PRIORITY_NORMAL,
    Notification,
    category_info,
)
from notifyhub.infrastructure.notifications import ChangeFeedPublisher, change_feed_publisher
from notifyhub.infrastructure.repositories import (
    FILTER_ALL,
    NotificationRepository,
    NotificationTypeRepository,
)
from notifyhub.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def get_unread_notification_count(session: Session, *, user_id: str) -> int:
    """Return how many visible notifications of ``user_id`` are unread."""

    return NotificationRepository(session).count_unread(user_id)


def get_recent_notifications(
    session: Session,
    *,
    user_id: str,
    limit: int = 20,
    offset: int = 0,
    filter: str = FILTER_ALL,
) -> list[Notification]:
    """Return a newest-first page of the user's notifications."""

    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")
    return list(
        NotificationRepository(session).list_for_user(
            user_id, limit=limit, offset=offset, filter=filter
        )
    )


def mark_notification_read(
    session: Session,
    *,
    user_id: str,
    notification_id: str,
    publisher: ChangeFeedPublisher | None = None,
) -> bool:
    """Flag ``notification_id`` as read when it belongs to ``user_id``."""

    found, changed = NotificationRepository(session).mark_as_read(
        notification_id, user_id=user_id
    )
    if changed is not None:
        (publisher or change_feed_publisher).dispatch_update(
            changed, old={"id": changed.id, "is_read": False}
        )
    return found


def mark_all_notifications_read(
    session: Session,
    *,
    user_id: str,
    publisher: ChangeFeedPublisher | None = None,
) -> int:
    """Flag every unread notification of ``user_id`` and return how many changed."""

    changed = NotificationRepository(session).mark_all_as_read(user_id)
    target = publisher or change_feed_publisher
    for notification in changed:
        target.dispatch_update(notification, old={"id": notification.id, "is_read": False})
    return len(changed)


def create_notification(
    session: Session,
    *,
    user_id: str,
    type_name: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    priority: str = PRIORITY_NORMAL,
    category: str | None = None,
    thumbnail_url: str | None = None,
    action_url: str | None = None,
    action_text: str | None = None,
    expires_at: datetime | None = None,
    group_id: str | None = None,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    """Persist a notification, broadcast it and return its identifier."""

    if not user_id:
        raise ValueError("user_id is required")
    if priority not in PRIORITIES:
        raise ValueError(f"Unknown notification priority '{priority}'")

    notification_type = NotificationTypeRepository(session).get_by_name(type_name)
    resolved_category = category or (
        notification_type.category if notification_type and notification_type.category else DEFAULT_CATEGORY
    )
    icon, color = category_info(resolved_category)
    if notification_type is not None and notification_type.is_active:
        icon = notification_type.icon or icon
        color = notification_type.color or color
    else:
        logger.debug("Notification type '%s' is not registered; using category defaults", type_name)

    notification = Notification(
        id="",
        user_id=user_id,
        type_name=type_name,
        title=title,
        message=message,
        data=dict(data or {}),
        priority=priority,
        is_read=False,
        created_at=now_in_app_timezone(),
        icon=icon,
        color=color,
        category=resolved_category,
        thumbnail_url=thumbnail_url,
        action_url=action_url,
        action_text=action_text,
        expires_at=expires_at,
        group_id=group_id,
    )
    saved = NotificationRepository(session).create(notification)
    (publisher or change_feed_publisher).dispatch_insert(saved)
    return saved.id


def archive_old_notifications(session: Session, *, days_old: int = 30) -> int:
    """Archive notifications created more than ``days_old`` days ago."""

    if days_old < 0:
        raise ValueError("days_old must be non-negative")
    cutoff = now_in_app_timezone() - timedelta(days=days_old)
    archived = NotificationRepository(session).archive_older_than(cutoff)
    logger.info("Archived %s notifications older than %s days", archived, days_old)
    return archived


__all__ = [
    "archive_old_notifications",
    "create_notification",
    "get_recent_notifications",
    "get_unread_notification_count",
    "mark_all_notifications_read",
    "mark_notification_read",
]
