"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from notifyhub.domain.entities import (
    PRIORITY_NORMAL,
    Notification,
    NotificationPreference,
    NotificationType,
)

Priority = Literal["low", "normal", "high", "urgent"]


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: str
    user_id: str | None = None
    type_name: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    priority: str
    is_read: bool
    created_at: datetime | None = None
    icon: str
    color: str
    category: str
    thumbnail_url: str | None = None
    action_url: str | None = None
    action_text: str | None = None
    expires_at: datetime | None = None
    group_id: str | None = None

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationRead":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type_name=notification.type_name,
            title=notification.title,
            message=notification.message,
            data=notification.data or {},
            priority=notification.priority,
            is_read=notification.is_read,
            created_at=notification.created_at,
            icon=notification.icon,
            color=notification.color,
            category=notification.category,
            thumbnail_url=notification.thumbnail_url,
            action_url=notification.action_url,
            action_text=notification.action_text,
            expires_at=notification.expires_at,
            group_id=notification.group_id,
        )


class NotificationCreate(BaseModel):
    """Payload used by administrators to address a notification to a user."""

    user_id: str = Field(..., min_length=1)
    type_name: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    priority: Priority = PRIORITY_NORMAL
    category: str | None = None
    thumbnail_url: str | None = None
    action_url: str | None = None
    action_text: str | None = None
    expires_at: datetime | None = None
    group_id: str | None = None


class NotificationCreated(BaseModel):
    id: str


class UnreadCountRead(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class NotificationTypeRead(BaseModel):
    id: int
    name: str
    description: str = ""
    icon: str | None = None
    color: str | None = None
    category: str | None = None
    is_active: bool = True

    @classmethod
    def from_entity(cls, notification_type: NotificationType) -> "NotificationTypeRead":
        return cls(**notification_type.to_record())


class NotificationPreferenceRead(BaseModel):
    type_id: int
    email_enabled: bool
    push_enabled: bool
    in_app_enabled: bool
    muted_until: datetime | None = None

    @classmethod
    def from_entity(cls, preference: NotificationPreference) -> "NotificationPreferenceRead":
        return cls(
            type_id=preference.type_id,
            email_enabled=preference.email_enabled,
            push_enabled=preference.push_enabled,
            in_app_enabled=preference.in_app_enabled,
            muted_until=preference.muted_until,
        )


class NotificationPreferenceUpdate(BaseModel):
    """Partial update of a preference row; omitted fields keep their value."""

    email_enabled: bool | None = None
    push_enabled: bool | None = None
    in_app_enabled: bool | None = None
    muted_until: datetime | None = None

    def changes(self) -> dict[str, Any]:
        values = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in values.items()
            if value is not None or key == "muted_until"
        }


class MuteRequest(BaseModel):
    hours: float = Field(..., gt=0, le=24 * 30)


class MuteResponse(BaseModel):
    muted_until: datetime


class ArchiveRequest(BaseModel):
    days_old: int | None = Field(default=None, ge=0)


class ArchiveResponse(BaseModel):
    archived: int


__all__ = [
    "ArchiveRequest",
    "ArchiveResponse",
    "MarkAllReadResponse",
    "MuteRequest",
    "MuteResponse",
    "NotificationCreate",
    "NotificationCreated",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
    "NotificationRead",
    "NotificationTypeRead",
    "UnreadCountRead",
]
