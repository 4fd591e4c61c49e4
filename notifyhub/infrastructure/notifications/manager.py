"""Connection management helpers for the notification change feed."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ChangeFeedSubscriber(Protocol):
    """Anything able to receive JSON messages (websockets, in-process channels)."""

    async def send_json(self, data: Any) -> None: ...


class NotificationConnectionManager:
    """Manage active change-feed subscribers grouped by user."""

    def __init__(self) -> None:
        self._connections: DefaultDict[str, list[ChangeFeedSubscriber]] = defaultdict(list)

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        """Accept the websocket connection and register it for ``user_id``."""

        await websocket.accept()
        self.register(user_id, websocket)

    def register(self, user_id: str, subscriber: ChangeFeedSubscriber) -> None:
        """Add ``subscriber`` to the pool for ``user_id``."""

        connections = self._connections[user_id]
        if not any(existing is subscriber for existing in connections):
            connections.append(subscriber)

    def disconnect(self, user_id: str, subscriber: ChangeFeedSubscriber) -> None:
        """Remove ``subscriber`` from the pool for ``user_id``."""

        connections = self._connections.get(user_id)
        if connections is None:
            return
        self._connections[user_id] = [
            existing for existing in connections if existing is not subscriber
        ]
        if not self._connections[user_id]:
            self._connections.pop(user_id, None)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._connections.get(user_id, ()))

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every active subscriber for ``user_id``."""

        connections = list(self._connections.get(user_id, ()))
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception:
                logger.warning(
                    "Dropping change-feed subscriber for user %s after a failed send",
                    user_id,
                    exc_info=True,
                )
                self.disconnect(user_id, connection)


notification_manager = NotificationConnectionManager()


__all__ = [
    "ChangeFeedSubscriber",
    "NotificationConnectionManager",
    "notification_manager",
]
