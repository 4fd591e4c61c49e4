"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from notifyhub.domain.entities import (
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    DEFAULT_ICON,
    IMPORTANT_PRIORITIES,
    Notification,
)
from notifyhub.infrastructure.models import NotificationModel
from notifyhub.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

FILTER_ALL = "all"
FILTER_UNREAD = "unread"
FILTER_IMPORTANT = "important"
LIST_FILTERS = (FILTER_ALL, FILTER_UNREAD, FILTER_IMPORTANT)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: str) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model is not None else None

    def count_unread(self, user_id: str, *, now: datetime | None = None) -> int:
        query = self._visible_for_user(user_id, now=now).filter(
            NotificationModel.is_read.is_(False)
        )
        return query.count()

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int | None = 20,
        offset: int = 0,
        filter: str = FILTER_ALL,
        now: datetime | None = None,
    ) -> Sequence[Notification]:
        if filter not in LIST_FILTERS:
            raise ValueError(f"Unknown notification filter '{filter}'")
        query = self._visible_for_user(user_id, now=now)
        if filter == FILTER_UNREAD:
            query = query.filter(NotificationModel.is_read.is_(False))
        elif filter == FILTER_IMPORTANT:
            query = query.filter(NotificationModel.priority.in_(sorted(IMPORTANT_PRIORITIES)))
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(
        self, notification_id: str, *, user_id: str
    ) -> tuple[bool, Notification | None]:
        """Flag one notification as read.

        Returns ``(found, changed)`` where ``changed`` is the updated entity when
        the row transitioned from unread to read and ``None`` otherwise.
        """

        model = self.session.get(NotificationModel, notification_id)
        if model is None or model.user_id != user_id:
            return False, None
        if model.is_read:
            return True, None
        model.is_read = True
        model.read_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return True, self._to_entity(model)

    def mark_all_as_read(self, user_id: str) -> list[Notification]:
        models = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.is_read.is_(False))
            .filter(NotificationModel.archived_at.is_(None))
            .all()
        )
        if not models:
            return []
        read_at = ensure_app_naive_datetime(now_in_app_timezone())
        for model in models:
            model.is_read = True
            model.read_at = read_at
        self.session.commit()
        return [self._to_entity(model) for model in models]

    def archive_older_than(self, cutoff: datetime) -> int:
        archived = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.archived_at.is_(None))
            .filter(NotificationModel.created_at < ensure_app_naive_datetime(cutoff))
            .update(
                {
                    NotificationModel.archived_at: ensure_app_naive_datetime(
                        now_in_app_timezone()
                    )
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(archived or 0)

    def _visible_for_user(self, user_id: str, *, now: datetime | None) -> Query:
        current = ensure_app_naive_datetime(now or now_in_app_timezone())
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.user_id == user_id)
            .filter(NotificationModel.archived_at.is_(None))
            .filter(
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at > current,
                )
            )
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        if notification.id:
            model.id = notification.id
        model.user_id = notification.user_id
        model.type_name = notification.type_name
        model.title = notification.title
        model.message = notification.message
        model.data = dict(notification.data or {})
        model.priority = notification.priority
        model.category = notification.category
        model.icon = notification.icon
        model.color = notification.color
        model.thumbnail_url = notification.thumbnail_url
        model.action_url = notification.action_url
        model.action_text = notification.action_text
        model.group_id = notification.group_id
        model.is_read = notification.is_read
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type_name=model.type_name,
            title=model.title,
            message=model.message,
            data=dict(model.data or {}),
            priority=model.priority,
            is_read=bool(model.is_read),
            created_at=ensure_app_timezone(model.created_at),
            icon=model.icon or DEFAULT_ICON,
            color=model.color or DEFAULT_COLOR,
            category=model.category or DEFAULT_CATEGORY,
            thumbnail_url=model.thumbnail_url,
            action_url=model.action_url,
            action_text=model.action_text,
            expires_at=ensure_app_timezone(model.expires_at),
            group_id=model.group_id,
        )


__all__ = [
    "FILTER_ALL",
    "FILTER_IMPORTANT",
    "FILTER_UNREAD",
    "LIST_FILTERS",
    "NotificationRepository",
]
