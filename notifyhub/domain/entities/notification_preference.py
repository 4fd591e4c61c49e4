"""Domain entities describing notification types and user preferences."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Final, Mapping

from notifyhub.utils import isoformat_or_none, parse_datetime

PREFERENCE_TOGGLES: Final[tuple[str, ...]] = (
    "email_enabled",
    "push_enabled",
    "in_app_enabled",
)
PREFERENCE_FIELDS: Final[tuple[str, ...]] = PREFERENCE_TOGGLES + ("muted_until",)


@dataclass
class NotificationType:
    """Named category controlling default display hints and preferences."""

    id: int | None
    name: str
    description: str = ""
    icon: str | None = None
    color: str | None = None
    is_active: bool = True
    category: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "NotificationType":
        return cls(
            id=record.get("id"),
            name=record["name"],
            description=record.get("description") or "",
            icon=record.get("icon"),
            color=record.get("color"),
            is_active=bool(record.get("is_active", True)),
            category=record.get("category"),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "is_active": self.is_active,
            "category": self.category,
        }


@dataclass
class NotificationPreference:
    """Delivery toggles for one ``(user, notification type)`` pair.

    Missing rows are treated as a preference with every channel enabled.
    """

    user_id: str
    type_id: int
    email_enabled: bool = True
    push_enabled: bool = True
    in_app_enabled: bool = True
    muted_until: datetime | None = None
    id: str | None = None

    def is_muted(self, now: datetime) -> bool:
        return self.muted_until is not None and self.muted_until > now

    def with_changes(self, changes: Mapping[str, Any]) -> "NotificationPreference":
        """Return a copy with ``changes`` applied; unknown keys raise ``ValueError``."""

        unknown = set(changes) - set(PREFERENCE_FIELDS)
        if unknown:
            raise ValueError(
                f"Unsupported preference fields: {', '.join(sorted(unknown))}"
            )
        values = dict(changes)
        if "muted_until" in values:
            values["muted_until"] = parse_datetime(values["muted_until"])
        for toggle in PREFERENCE_TOGGLES:
            if toggle in values:
                values[toggle] = bool(values[toggle])
        return replace(self, **values)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "NotificationPreference":
        return cls(
            id=record.get("id"),
            user_id=str(record["user_id"]),
            type_id=int(record["type_id"]),
            email_enabled=bool(record.get("email_enabled", True)),
            push_enabled=bool(record.get("push_enabled", True)),
            in_app_enabled=bool(record.get("in_app_enabled", True)),
            muted_until=parse_datetime(record.get("muted_until")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type_id": self.type_id,
            "email_enabled": self.email_enabled,
            "push_enabled": self.push_enabled,
            "in_app_enabled": self.in_app_enabled,
            "muted_until": isoformat_or_none(self.muted_until),
        }


__all__ = [
    "NotificationPreference",
    "NotificationType",
    "PREFERENCE_FIELDS",
    "PREFERENCE_TOGGLES",
]
