"""Use cases for the notification type catalog and per-user preferences."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Final, Mapping

from sqlalchemy.orm import Session

from notifyhub.domain.entities import NotificationPreference, NotificationType
from notifyhub.infrastructure.repositories import (
    NotificationPreferenceRepository,
    NotificationTypeRepository,
)
from notifyhub.utils import now_in_app_timezone

DEFAULT_NOTIFICATION_TYPES: Final[tuple[NotificationType, ...]] = (
    NotificationType(None, "study_alert", "New study materials and past papers", category="study"),
    NotificationType(None, "marketplace_update", "Sales and purchase requests", category="marketplace"),
    NotificationType(None, "payment", "Payment approvals and rejections", category="payment"),
    NotificationType(None, "event_reminder", "Upcoming events", category="events"),
    NotificationType(None, "achievement", "Unlocked achievements", category="approvals"),
    NotificationType(None, "system_alert", "Subscription and account alerts", category="messages"),
    NotificationType(None, "promotion", "Discounts and offers", category="ads"),
    NotificationType(None, "admin_announcement", "Announcements from the team", category="messages"),
)


def list_notification_types(session: Session) -> list[NotificationType]:
    """Return active notification types ordered by name."""

    return list(NotificationTypeRepository(session).list_active())


def seed_notification_types(session: Session) -> list[NotificationType]:
    """Make sure the default notification types exist."""

    repository = NotificationTypeRepository(session)
    return [repository.ensure(notification_type) for notification_type in DEFAULT_NOTIFICATION_TYPES]


def list_notification_preferences(session: Session, *, user_id: str) -> list[NotificationPreference]:
    return list(NotificationPreferenceRepository(session).list_for_user(user_id))


def upsert_notification_preference(
    session: Session,
    *,
    user_id: str,
    type_id: int,
    changes: Mapping[str, Any],
) -> NotificationPreference:
    """Insert or update the preference keyed on ``(user_id, type_id)``."""

    if NotificationTypeRepository(session).get(type_id) is None:
        raise ValueError(f"Notification type {type_id} not found")

    repository = NotificationPreferenceRepository(session)
    current = repository.get(user_id=user_id, type_id=type_id) or NotificationPreference(
        user_id=user_id, type_id=type_id
    )
    return repository.upsert(current.with_changes(changes))


def mute_notifications(session: Session, *, user_id: str, hours: float) -> datetime:
    """Mute every notification type for ``user_id`` during ``hours`` hours."""

    if hours <= 0:
        raise ValueError("hours must be positive")

    muted_until = now_in_app_timezone() + timedelta(hours=hours)
    repository = NotificationPreferenceRepository(session)
    existing = {preference.type_id: preference for preference in repository.list_for_user(user_id)}
    for notification_type in NotificationTypeRepository(session).list_active():
        if notification_type.id is not None and notification_type.id not in existing:
            existing[notification_type.id] = NotificationPreference(
                user_id=user_id, type_id=notification_type.id
            )
    for preference in existing.values():
        repository.upsert(preference.with_changes({"muted_until": muted_until}))
    return muted_until


__all__ = [
    "DEFAULT_NOTIFICATION_TYPES",
    "list_notification_preferences",
    "list_notification_types",
    "mute_notifications",
    "seed_notification_types",
    "upsert_notification_preference",
]
