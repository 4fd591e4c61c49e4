"""Client-visible notification state kept in step with the service's event stream."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

from notifyhub.config import get_settings
from notifyhub.domain.entities import (
    EVENT_NEW,
    EVENT_UPDATE,
    PRIORITY_NORMAL,
    Notification,
    NotificationPreference,
)

from .notification_service import NotificationService

logger = logging.getLogger(__name__)

TOAST_DURATION_MS = 5000


@dataclass(frozen=True)
class NotificationStoreSnapshot:
    """Immutable view of the store handed to observers."""

    user_id: str | None
    notifications: tuple[Notification, ...]
    unread_count: int
    preferences: tuple[NotificationPreference, ...]
    is_loading: bool
    is_loading_more: bool
    has_more: bool
    error: str | None
    connection_status: bool
    has_permission: bool


Observer = Callable[[NotificationStoreSnapshot], Any]


class NotificationStore:
    """Owns the local notification list, unread counter and preferences.

    All mutations happen on the event loop that delivers the service's
    ``new``/``update`` events; there is no locking. Failures of the request
    operations are recorded in :attr:`error`, overwriting the previous message.
    """

    def __init__(self, service: NotificationService, *, page_size: int | None = None) -> None:
        self._service = service
        self._page_size = page_size or get_settings().notifications_page_size
        self._user_id: str | None = None
        self._notifications: list[Notification] = []
        self._unread_count = 0
        self._preferences: list[NotificationPreference] = []
        self._offset = 0
        self._has_more = True
        self._is_loading = False
        self._is_loading_more = False
        self._error: str | None = None
        self._connection_status = False
        self._has_permission = False
        self._listening = False
        # Ids whose unread-to-read transition is already reflected in the counter.
        self._counted_read: set[str] = set()
        self._observers: list[Observer] = []
        # Stable references so remove_listener can match them by identity.
        self._on_new = self._handle_new
        self._on_update = self._handle_update

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def preferences(self) -> list[NotificationPreference]:
        return list(self._preferences)

    @property
    def offset(self) -> int:
        """Pagination cursor used by the next ``load_more_notifications``."""

        return self._offset

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_loading_more(self) -> bool:
        return self._is_loading_more

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def connection_status(self) -> bool:
        return self._connection_status

    @property
    def has_permission(self) -> bool:
        return self._has_permission

    # -- observers ------------------------------------------------------------

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Call ``callback`` with a snapshot after every state change."""

        self._observers.append(callback)

        def unsubscribe() -> None:
            for index, registered in enumerate(self._observers):
                if registered is callback:
                    del self._observers[index]
                    return

        return unsubscribe

    def snapshot(self) -> NotificationStoreSnapshot:
        return NotificationStoreSnapshot(
            user_id=self._user_id,
            notifications=tuple(self._notifications),
            unread_count=self._unread_count,
            preferences=tuple(self._preferences),
            is_loading=self._is_loading,
            is_loading_more=self._is_loading_more,
            has_more=self._has_more,
            error=self._error,
            connection_status=self._connection_status,
            has_permission=self._has_permission,
        )

    def _changed(self) -> None:
        if not self._observers:
            return
        snapshot = self.snapshot()
        for callback in list(self._observers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Notification store observer failed")

    # -- session --------------------------------------------------------------

    async def bind_user(self, user_id: str | None) -> None:
        """React to sign-in, sign-out or a user switch."""

        if user_id == self._user_id:
            return
        if self._user_id is not None:
            self._reset()
        if user_id is None:
            self._changed()
            return
        await self._initialize(user_id)

    async def _initialize(self, user_id: str) -> None:
        self._user_id = user_id
        self._is_loading = True
        self._error = None
        self._changed()

        page, count, preferences = await asyncio.gather(
            self._service.get_recent_notifications_result(self._page_size, 0),
            self._service.get_unread_count_result(),
            self._service.get_notification_preferences_result(),
        )
        if self._user_id != user_id:
            return

        failures = [result.error for result in (page, count, preferences) if not result.ok]
        if failures:
            self._error = f"Failed to load notifications: {failures[0]}"
        notifications = page.unwrap_or([])
        self._notifications = list(notifications)
        self._unread_count = count.unwrap_or(0)
        self._preferences = list(preferences.unwrap_or([]))
        self._offset = self._page_size
        self._has_more = len(notifications) == self._page_size

        if not self._listening:
            self._service.add_listener(EVENT_NEW, self._on_new)
            self._service.add_listener(EVENT_UPDATE, self._on_update)
            self._listening = True

        self._has_permission = self._service.has_permission()
        self._connection_status = self._service.get_connection_status()
        self._is_loading = False
        self._changed()

    def _reset(self) -> None:
        if self._listening:
            self._service.remove_listener(EVENT_NEW, self._on_new)
            self._service.remove_listener(EVENT_UPDATE, self._on_update)
            self._listening = False
        self._user_id = None
        self._notifications = []
        self._counted_read = set()
        self._unread_count = 0
        self._preferences = []
        self._offset = 0
        self._has_more = True
        self._is_loading = False
        self._is_loading_more = False
        self._error = None
        self._connection_status = False

    # -- pagination -----------------------------------------------------------

    async def load_more_notifications(self) -> None:
        if self._user_id is None or self._is_loading_more or not self._has_more:
            return
        # Set before the first await so overlapping calls see it.
        self._is_loading_more = True
        user_id = self._user_id
        try:
            result = await self._service.get_recent_notifications_result(
                self._page_size, self._offset
            )
        finally:
            if self._user_id == user_id:
                self._is_loading_more = False
        if self._user_id != user_id:
            return

        if not result.ok:
            self._error = f"Failed to load more notifications: {result.error}"
            self._changed()
            return

        items = result.value or []
        if not items:
            self._has_more = False
        else:
            self._notifications.extend(items)
            self._offset += len(items)
            self._has_more = len(items) == self._page_size
        self._changed()

    async def refresh_notifications(self) -> None:
        """Replace the local list with page one and re-read the unread count."""

        if self._user_id is None:
            return
        user_id = self._user_id
        page, count = await asyncio.gather(
            self._service.get_recent_notifications_result(self._page_size, 0),
            self._service.get_unread_count_result(),
        )
        if self._user_id != user_id:
            return
        if not page.ok or not count.ok:
            self._error = f"Failed to refresh notifications: {page.error or count.error}"
            self._changed()
            return

        notifications = page.value or []
        self._notifications = list(notifications)
        self._unread_count = count.value or 0
        self._offset = self._page_size
        self._has_more = len(notifications) == self._page_size
        self._error = None
        self._changed()

    # -- mutations ------------------------------------------------------------

    async def mark_as_read(self, notification_id: str) -> bool:
        if self._user_id is None:
            return False
        result = await self._service.mark_as_read_result(notification_id)
        if not result.ok:
            self._error = f"Failed to mark notification as read: {result.error}"
            self._changed()
            return False
        if not result.value:
            return False

        # Rows outside the loaded pages may already have been read; their
        # transition is counted when the change feed reports it.
        index = self._index_of(notification_id)
        if index is not None and not self._notifications[index].is_read:
            self._notifications[index] = self._notifications[index].mark_read()
            self._count_read(notification_id)
        self._changed()
        return True

    async def mark_all_as_read(self) -> int:
        if self._user_id is None:
            return 0
        result = await self._service.mark_all_as_read_result()
        if not result.ok:
            self._error = f"Failed to mark all notifications as read: {result.error}"
            self._changed()
            return 0

        updated = result.value or 0
        if updated > 0:
            self._notifications = [
                item if item.is_read else item.mark_read() for item in self._notifications
            ]
            self._unread_count = 0
            self._changed()
        return updated

    async def update_preference(self, type_id: int, **changes: Any) -> bool:
        if self._user_id is None:
            return False
        result = await self._service.update_notification_preference_result(type_id, **changes)
        if not result.ok or not result.value:
            self._error = f"Failed to update preference: {result.error or 'rejected'}"
            self._changed()
            return False

        for index, preference in enumerate(self._preferences):
            if preference.type_id == type_id:
                self._preferences[index] = preference.with_changes(changes)
                break
        else:
            self._preferences.append(
                NotificationPreference(user_id=self._user_id, type_id=type_id).with_changes(changes)
            )
        self._changed()
        return True

    async def request_permission(self) -> bool:
        granted = await self._service.request_notification_permission()
        self._has_permission = granted
        self._changed()
        return granted

    async def create_notification(
        self,
        type_name: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        priority: str = PRIORITY_NORMAL,
    ) -> str | None:
        """Create a notification addressed to the signed-in user."""

        if self._user_id is None:
            return None
        return await self._service.create_notification(
            self._user_id, type_name, title, message, data, priority
        )

    def refresh_connection_status(self) -> bool:
        """Sample the service's connection flag.

        Live events refresh it as well; callers that want to notice a dropped
        channel while no events arrive should poll this method.
        """

        self._connection_status = self._service.get_connection_status()
        self._changed()
        return self._connection_status

    # -- change feed ----------------------------------------------------------

    def _handle_new(self, notification: Notification) -> None:
        self._notifications.insert(0, notification)
        self._unread_count += 1
        self._connection_status = self._service.get_connection_status()
        self._changed()

    def _handle_update(self, notification: Notification) -> None:
        index = self._index_of(notification.id)
        previous = None if index is None else self._notifications[index]
        if index is not None:
            self._notifications[index] = notification
        if (
            notification.is_read
            and notification.id not in self._counted_read
            and (previous is None or not previous.is_read)
        ):
            self._count_read(notification.id)
        self._connection_status = self._service.get_connection_status()
        self._changed()

    def _index_of(self, notification_id: str) -> int | None:
        for index, item in enumerate(self._notifications):
            if item.id == notification_id:
                return index
        return None

    def _count_read(self, notification_id: str) -> None:
        self._counted_read.add(notification_id)
        self._unread_count = max(0, self._unread_count - 1)


def toast_options(notification: Notification) -> dict[str, Any]:
    """Presentation hints for an in-app toast; urgent toasts stay until dismissed."""

    urgent = notification.is_urgent
    return {
        "title": notification.title,
        "description": notification.message,
        "variant": "destructive" if urgent else "default",
        "duration_ms": 0 if urgent else TOAST_DURATION_MS,
    }


@asynccontextmanager
async def notification_store(
    service: NotificationService, user_id: str | None, *, page_size: int | None = None
) -> AsyncIterator[NotificationStore]:
    """Provide a store bound to ``user_id`` for the duration of the block."""

    store = NotificationStore(service, page_size=page_size)
    await store.bind_user(user_id)
    try:
        yield store
    finally:
        await store.bind_user(None)


__all__ = [
    "NotificationStore",
    "NotificationStoreSnapshot",
    "notification_store",
    "toast_options",
]
