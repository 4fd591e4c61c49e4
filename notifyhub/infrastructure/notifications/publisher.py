"""Publish notification row changes to change-feed subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from anyio import from_thread

from notifyhub.domain.entities import (
    CHANGE_INSERT,
    CHANGE_UPDATE,
    NOTIFICATIONS_TABLE,
    ChangeEvent,
    Notification,
)

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


class ChangeFeedPublisher:
    """Serialize notification mutations and schedule their delivery."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager
        self._pending: set[asyncio.Task] = set()

    @property
    def manager(self) -> NotificationConnectionManager:
        return self._manager

    def dispatch_insert(self, notification: Notification) -> None:
        """Schedule an ``INSERT`` change for the notification's owner."""

        event = ChangeEvent(
            event=CHANGE_INSERT,
            table=NOTIFICATIONS_TABLE,
            new=serialize_notification(notification),
        )
        self._dispatch(notification.user_id, event)

    def dispatch_update(
        self, notification: Notification, *, old: dict[str, Any] | None = None
    ) -> None:
        """Schedule an ``UPDATE`` change for the notification's owner."""

        event = ChangeEvent(
            event=CHANGE_UPDATE,
            table=NOTIFICATIONS_TABLE,
            new=serialize_notification(notification),
            old=old or {"id": notification.id},
        )
        self._dispatch(notification.user_id, event)

    async def flush(self) -> None:
        """Wait until every delivery scheduled on this loop has completed."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _dispatch(self, user_id: str | None, event: ChangeEvent) -> None:
        if not user_id:
            return
        message = event.to_message()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.send_to_user, user_id, message)
            except RuntimeError:
                logger.debug(
                    "No event loop available; %s change for user %s was not broadcast",
                    event.event,
                    user_id,
                )
        else:
            task = loop.create_task(self._manager.send_to_user(user_id, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the change-feed payload representation for ``notification``."""

    return notification.to_record()


change_feed_publisher = ChangeFeedPublisher(notification_manager)


__all__ = [
    "ChangeFeedPublisher",
    "change_feed_publisher",
    "serialize_notification",
]
