"""Constants and value objects shared by the realtime change feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final


class ConnectionState(str, Enum):
    """Lifecycle of the client's realtime subscription."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


CHANNEL_SUBSCRIBED: Final[str] = "SUBSCRIBED"
CHANNEL_ERROR: Final[str] = "CHANNEL_ERROR"
CHANNEL_TIMED_OUT: Final[str] = "TIMED_OUT"
CHANNEL_CLOSED: Final[str] = "CLOSED"

CHANGE_INSERT: Final[str] = "INSERT"
CHANGE_UPDATE: Final[str] = "UPDATE"

EVENT_NEW: Final[str] = "new"
EVENT_UPDATE: Final[str] = "update"

NOTIFICATIONS_TABLE: Final[str] = "notifications"
NOTIFICATION_TYPES_TABLE: Final[str] = "notification_types"
PREFERENCES_TABLE: Final[str] = "user_notification_preferences"


def channel_name_for(user_id: str) -> str:
    return f"notifications:{user_id}"


def user_filter_for(user_id: str) -> str:
    return f"user_id=eq.{user_id}"


@dataclass
class ChangeEvent:
    """Row mutation delivered through the change feed."""

    event: str
    table: str
    new: dict[str, Any] = field(default_factory=dict)
    old: dict[str, Any] = field(default_factory=dict)
    schema: str = "public"

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "postgres_changes",
            "event": self.event,
            "schema": self.schema,
            "table": self.table,
            "new": self.new,
            "old": self.old,
        }

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "ChangeEvent":
        return cls(
            event=message["event"],
            table=message["table"],
            new=dict(message.get("new") or {}),
            old=dict(message.get("old") or {}),
            schema=message.get("schema") or "public",
        )


__all__ = [
    "CHANGE_INSERT",
    "CHANGE_UPDATE",
    "CHANNEL_CLOSED",
    "CHANNEL_ERROR",
    "CHANNEL_SUBSCRIBED",
    "CHANNEL_TIMED_OUT",
    "ChangeEvent",
    "ConnectionState",
    "EVENT_NEW",
    "EVENT_UPDATE",
    "NOTIFICATIONS_TABLE",
    "NOTIFICATION_TYPES_TABLE",
    "PREFERENCES_TABLE",
    "channel_name_for",
    "user_filter_for",
]
