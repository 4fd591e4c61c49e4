"""Shared fixtures for the notification backend and client tests."""

from __future__ import annotations

import asyncio
import pathlib
import sys
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notifyhub.application.use_cases.notifications import seed_notification_types
from notifyhub.domain.entities import CHANNEL_SUBSCRIBED, Notification
from notifyhub.infrastructure.backend import BackendError, BackendUser
from notifyhub.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from notifyhub.infrastructure.notifications import (
    ChangeFeedPublisher,
    NotificationConnectionManager,
)
from notifyhub.infrastructure.repositories import NotificationRepository
from notifyhub.interfaces.backend import LocalBackendClient

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    initialize_database(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def notification_types(session):
    return seed_notification_types(session)


@pytest.fixture()
def publisher() -> ChangeFeedPublisher:
    return ChangeFeedPublisher(NotificationConnectionManager())


@pytest.fixture()
def local_backend(session_factory, publisher, notification_types) -> LocalBackendClient:
    return LocalBackendClient(
        session_factory, manager=publisher.manager, publisher=publisher
    )


@pytest.fixture()
def store_notification(session):
    """Insert a notification row directly, bypassing the change feed."""

    def _store(user_id: str, *, minutes: int = 0, **fields: Any) -> Notification:
        values: dict[str, Any] = {
            "id": "",
            "user_id": user_id,
            "type_name": "system_alert",
            "title": "Heads up",
            "message": "Something happened",
            "created_at": BASE_TIME + timedelta(minutes=minutes),
        }
        values.update(fields)
        return NotificationRepository(session).create(Notification(**values))

    return _store


def make_record(notification_id: str, *, is_read: bool = False, **fields: Any) -> dict[str, Any]:
    """Raw notification row as returned by the remote procedures."""

    record = {
        "id": notification_id,
        "user_id": "user-1",
        "type_name": "system_alert",
        "title": f"Notification {notification_id}",
        "message": "Body",
        "priority": "normal",
        "is_read": is_read,
        "created_at": "2024-05-01T09:00:00+00:00",
    }
    record.update(fields)
    return record


class ScriptedChannel:
    """Realtime channel whose change events are pushed by the test."""

    def __init__(self, name: str, status: str = CHANNEL_SUBSCRIBED) -> None:
        self.name = name
        self.status = status
        self.bindings: list[tuple[str, Any]] = []
        self.status_callback = None

    def on(self, event, *, table, filter=None, callback):
        self.bindings.append((event, callback))
        return self

    async def subscribe(self, callback=None):
        self.status_callback = callback
        if callback is not None:
            callback(self.status, None)
        return self


class ScriptedBackend:
    """Backend double answering remote procedures from canned responses.

    ``pages`` are consumed in order by ``get_recent_notifications``; setting
    ``gate`` to an ``asyncio.Event`` holds every call until it is set; names in
    ``failing`` raise :class:`BackendError`.
    """

    def __init__(self, pages=None, *, unread: int = 0, user_id: str | None = "user-1") -> None:
        self.user = BackendUser(id=user_id) if user_id else None
        self.pages: list[list[dict[str, Any]]] = list(pages or [])
        self.unread = unread
        self.mark_read_result: Any = True
        self.mark_all_result: Any = 0
        self.created_id = "created-1"
        self.preferences: list[dict[str, Any]] = []
        self.types: list[dict[str, Any]] = [
            {"id": 1, "name": "system_alert", "is_active": True},
            {"id": 2, "name": "promotion", "is_active": True},
        ]
        self.failing: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.upserts: list[dict[str, Any]] = []
        self.channels: list[ScriptedChannel] = []
        self.removed: list[ScriptedChannel] = []

    async def get_user(self):
        return self.user

    async def rpc(self, name, params=None):
        self.calls.append((name, dict(params or {})))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.failing:
            raise BackendError(f"{name} failed")
        if name == "get_recent_notifications":
            return self.pages.pop(0) if self.pages else []
        if name == "get_unread_notification_count":
            return self.unread
        if name == "mark_notification_read":
            return self.mark_read_result
        if name == "mark_all_notifications_read":
            return self.mark_all_result
        if name == "create_notification":
            return self.created_id
        if name == "archive_old_notifications":
            return 0
        raise BackendError(f"Unknown remote procedure '{name}'")

    async def select(self, table, *, filters=None, order_by=None):
        if "select" in self.failing:
            raise BackendError("select failed")
        if table == "notification_types":
            return list(self.types)
        return list(self.preferences)

    async def upsert(self, table, row):
        if "upsert" in self.failing:
            raise BackendError("upsert failed")
        self.upserts.append(dict(row))

    def channel(self, name):
        channel = ScriptedChannel(name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel):
        self.removed.append(channel)

    def emit(self, event: str, record: dict[str, Any]) -> None:
        """Deliver a change event to every binding of the newest channel."""

        channel = self.channels[-1]
        for bound_event, callback in list(channel.bindings):
            if bound_event == event:
                callback({"type": "postgres_changes", "event": event, "new": record})

    def recent_calls(self) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == "get_recent_notifications"]


@pytest.fixture()
def scripted_backend() -> ScriptedBackend:
    return ScriptedBackend()
