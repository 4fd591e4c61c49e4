"""Persistence helpers for notification types and user preferences."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from notifyhub.domain.entities import NotificationPreference, NotificationType
from notifyhub.infrastructure.models import (
    NotificationTypeModel,
    UserNotificationPreferenceModel,
)
from notifyhub.utils import ensure_app_naive_datetime, ensure_app_timezone


class NotificationTypeRepository:
    """Read and seed the notification type catalog."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_active(self) -> Sequence[NotificationType]:
        query = (
            self.session.query(NotificationTypeModel)
            .filter(NotificationTypeModel.is_active.is_(True))
            .order_by(NotificationTypeModel.name.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def get(self, type_id: int) -> NotificationType | None:
        model = self.session.get(NotificationTypeModel, type_id)
        return self._to_entity(model) if model is not None else None

    def get_by_name(self, name: str) -> NotificationType | None:
        model = (
            self.session.query(NotificationTypeModel)
            .filter(NotificationTypeModel.name == name)
            .one_or_none()
        )
        return self._to_entity(model) if model is not None else None

    def ensure(self, notification_type: NotificationType) -> NotificationType:
        """Insert ``notification_type`` unless a type with its name exists."""

        model = (
            self.session.query(NotificationTypeModel)
            .filter(NotificationTypeModel.name == notification_type.name)
            .one_or_none()
        )
        if model is None:
            model = NotificationTypeModel(
                name=notification_type.name,
                description=notification_type.description,
                icon=notification_type.icon,
                color=notification_type.color,
                category=notification_type.category,
                is_active=notification_type.is_active,
            )
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: NotificationTypeModel) -> NotificationType:
        return NotificationType(
            id=model.id,
            name=model.name,
            description=model.description or "",
            icon=model.icon,
            color=model.color,
            is_active=bool(model.is_active),
            category=model.category,
        )


class NotificationPreferenceRepository:
    """Provide upsert semantics for :class:`NotificationPreference` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(self, user_id: str) -> Sequence[NotificationPreference]:
        query = (
            self.session.query(UserNotificationPreferenceModel)
            .filter(UserNotificationPreferenceModel.user_id == user_id)
            .order_by(UserNotificationPreferenceModel.type_id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def get(self, *, user_id: str, type_id: int) -> NotificationPreference | None:
        model = self._find(user_id=user_id, type_id=type_id)
        return self._to_entity(model) if model is not None else None

    def upsert(self, preference: NotificationPreference) -> NotificationPreference:
        model = self._find(user_id=preference.user_id, type_id=preference.type_id)
        if model is None:
            model = UserNotificationPreferenceModel(
                user_id=preference.user_id, type_id=preference.type_id
            )
        model.email_enabled = preference.email_enabled
        model.push_enabled = preference.push_enabled
        model.in_app_enabled = preference.in_app_enabled
        model.muted_until = ensure_app_naive_datetime(preference.muted_until)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _find(self, *, user_id: str, type_id: int) -> UserNotificationPreferenceModel | None:
        return (
            self.session.query(UserNotificationPreferenceModel)
            .filter(UserNotificationPreferenceModel.user_id == user_id)
            .filter(UserNotificationPreferenceModel.type_id == type_id)
            .one_or_none()
        )

    @staticmethod
    def _to_entity(model: UserNotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            type_id=model.type_id,
            email_enabled=bool(model.email_enabled),
            push_enabled=bool(model.push_enabled),
            in_app_enabled=bool(model.in_app_enabled),
            muted_until=ensure_app_timezone(model.muted_until),
        )


__all__ = ["NotificationPreferenceRepository", "NotificationTypeRepository"]
