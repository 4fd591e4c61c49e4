"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Final, Mapping

from notifyhub.utils import isoformat_or_none, parse_datetime

PRIORITY_LOW: Final[str] = "low"
PRIORITY_NORMAL: Final[str] = "normal"
PRIORITY_HIGH: Final[str] = "high"
PRIORITY_URGENT: Final[str] = "urgent"
PRIORITIES: Final[tuple[str, ...]] = (
    PRIORITY_LOW,
    PRIORITY_NORMAL,
    PRIORITY_HIGH,
    PRIORITY_URGENT,
)
IMPORTANT_PRIORITIES: Final[frozenset[str]] = frozenset({PRIORITY_HIGH, PRIORITY_URGENT})

CATEGORIES: Final[tuple[str, ...]] = (
    "study",
    "payment",
    "marketplace",
    "ads",
    "ai",
    "events",
    "messages",
    "orders",
    "approvals",
)
DEFAULT_CATEGORY: Final[str] = "messages"
DEFAULT_ICON: Final[str] = "\U0001f514"
DEFAULT_COLOR: Final[str] = "text-gray-600"

_CATEGORY_INFO: Final[dict[str, tuple[str, str]]] = {
    "study": ("\U0001f4da", "text-blue-600"),
    "payment": ("\U0001f4b0", "text-green-600"),
    "marketplace": ("\U0001f6d2", "text-orange-600"),
    "ads": ("\U0001f3af", "text-purple-600"),
    "ai": ("\U0001f916", "text-indigo-600"),
    "events": ("\U0001f4c5", "text-red-600"),
    "messages": ("\U0001f4ac", "text-gray-600"),
    "orders": ("\U0001f4e6", "text-yellow-600"),
    "approvals": ("✅", "text-green-600"),
}


def category_info(category: str | None) -> tuple[str, str]:
    """Return the ``(icon, color)`` display hints for ``category``."""

    return _CATEGORY_INFO.get(category or "", (DEFAULT_ICON, DEFAULT_COLOR))


@dataclass
class Notification:
    """Deliverable event addressed to exactly one user."""

    id: str
    type_name: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    priority: str = PRIORITY_NORMAL
    is_read: bool = False
    created_at: datetime | None = None
    icon: str = DEFAULT_ICON
    color: str = DEFAULT_COLOR
    category: str = DEFAULT_CATEGORY
    user_id: str | None = None
    thumbnail_url: str | None = None
    action_url: str | None = None
    action_text: str | None = None
    expires_at: datetime | None = None
    group_id: str | None = None
    group_count: int | None = None

    @property
    def is_urgent(self) -> bool:
        return self.priority == PRIORITY_URGENT

    def mark_read(self) -> "Notification":
        """Return a copy of the notification flagged as read."""

        return replace(self, is_read=True)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Notification":
        """Build a notification from a row or change-feed payload."""

        category = record.get("category") or DEFAULT_CATEGORY
        icon, color = category_info(category)
        return cls(
            id=str(record["id"]),
            type_name=record.get("type_name") or record.get("type") or "",
            title=record.get("title") or "",
            message=record.get("message") or "",
            data=dict(record.get("data") or {}),
            priority=record.get("priority") or PRIORITY_NORMAL,
            is_read=bool(record.get("is_read")),
            created_at=parse_datetime(record.get("created_at")),
            icon=record.get("icon") or icon,
            color=record.get("color") or color,
            category=category,
            user_id=record.get("user_id"),
            thumbnail_url=record.get("thumbnail_url"),
            action_url=record.get("action_url"),
            action_text=record.get("action_text"),
            expires_at=parse_datetime(record.get("expires_at")),
            group_id=record.get("group_id"),
            group_count=record.get("group_count"),
        )

    def to_record(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the notification."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "type_name": self.type_name,
            "title": self.title,
            "message": self.message,
            "data": dict(self.data),
            "priority": self.priority,
            "is_read": self.is_read,
            "created_at": isoformat_or_none(self.created_at),
            "icon": self.icon,
            "color": self.color,
            "category": self.category,
            "thumbnail_url": self.thumbnail_url,
            "action_url": self.action_url,
            "action_text": self.action_text,
            "expires_at": isoformat_or_none(self.expires_at),
            "group_id": self.group_id,
            "group_count": self.group_count,
        }


@dataclass
class NotificationGroup:
    """Notifications collapsed under a shared group id or category."""

    id: str
    category: str
    title: str
    count: int
    latest_notification: Notification
    notifications: list[Notification] = field(default_factory=list)
    is_expanded: bool = False


__all__ = [
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "DEFAULT_COLOR",
    "DEFAULT_ICON",
    "IMPORTANT_PRIORITIES",
    "Notification",
    "NotificationGroup",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "PRIORITY_URGENT",
    "category_info",
]
