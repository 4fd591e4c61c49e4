"""Realtime notification client.

``NotificationService`` owns at most one change-feed subscription for the
signed-in user, fans ``new``/``update`` events out to registered listeners and
wraps the backend's notification procedures.

Request operations come in two flavours: ``*_result`` methods return a
:class:`ServiceResult` so callers can tell failures apart from empty data, and
the plain methods degrade failures to a safe default (``0``, ``False``,
``None`` or an empty list) after logging them. Neither flavour raises.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, TypeVar

from notifyhub.config import get_settings
from notifyhub.domain.entities import (
    CHANGE_INSERT,
    CHANGE_UPDATE,
    CHANNEL_SUBSCRIBED,
    EVENT_NEW,
    EVENT_UPDATE,
    NOTIFICATION_TYPES_TABLE,
    NOTIFICATIONS_TABLE,
    PREFERENCE_FIELDS,
    PREFERENCES_TABLE,
    PRIORITY_NORMAL,
    ConnectionState,
    Notification,
    NotificationGroup,
    NotificationPreference,
    NotificationType,
    category_info,
    channel_name_for,
    user_filter_for,
)
from notifyhub.infrastructure.backend import BackendClient, BackendError, RealtimeChannel
from notifyhub.infrastructure.permissions import (
    PERMISSION_DENIED,
    PERMISSION_GRANTED,
    HeadlessPermissionBridge,
    PermissionBridge,
)
from notifyhub.utils import isoformat_or_none, now_in_app_timezone

from .results import ServiceResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[Notification], Any]
Sleep = Callable[[float], Awaitable[Any]]

DEFAULT_NATIVE_ICON = "/favicon.ico"
GROUPED_NOTIFICATIONS_LIMIT = 50


class NotificationService:
    """Shared realtime connection and request gateway for notifications."""

    def __init__(
        self,
        backend: BackendClient,
        *,
        permissions: PermissionBridge | None = None,
        max_reconnect_attempts: int | None = None,
        reconnect_delay: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        settings = get_settings()
        self._backend = backend
        self._permissions = permissions or HeadlessPermissionBridge()
        self._max_reconnect_attempts = (
            settings.realtime_max_reconnect_attempts
            if max_reconnect_attempts is None
            else max_reconnect_attempts
        )
        self._reconnect_delay = (
            settings.realtime_reconnect_delay_ms / 1000
            if reconnect_delay is None
            else reconnect_delay
        )
        self._sleep = sleep
        self._listeners: dict[str, list[Listener]] = {}
        self._channel: RealtimeChannel | None = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._reconnect_task: asyncio.Task | None = None
        self._user_id: str | None = None
        self._stopped = True

    # -- connection lifecycle -------------------------------------------------

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def reconnect_task(self) -> asyncio.Task | None:
        """Pending reconnect, if one is scheduled."""

        return self._reconnect_task

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def permissions(self) -> PermissionBridge:
        return self._permissions

    def get_connection_status(self) -> bool:
        return self.is_connected

    def reconnect_delay_for(self, attempt: int) -> float:
        """Seconds to wait before reconnect ``attempt`` (1-based)."""

        return self._reconnect_delay * attempt

    async def start(self) -> ConnectionState:
        """Open the change-feed channel for the signed-in user, if any."""

        self._stopped = False
        await self._open_channel()
        return self._state

    async def switch_user(self, user_id: str | None) -> None:
        """Follow a sign-in, sign-out or user switch.

        A different user is handled as a full sign-out followed by a sign-in so
        the previous user's channel never outlives the session.
        """

        if user_id is None:
            await self.disconnect()
            return
        if self._user_id == user_id and not self._stopped and self._state is not ConnectionState.DISCONNECTED:
            return
        await self.disconnect()
        self._reconnect_attempts = 0
        await self.start()

    async def disconnect(self) -> None:
        """Tear the channel down and stop reconnecting."""

        self._stopped = True
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        await self._teardown_channel()
        self._state = ConnectionState.DISCONNECTED
        self._user_id = None

    async def _open_channel(self) -> None:
        try:
            user = await self._backend.get_user()
            await self._teardown_channel()
            if user is None:
                logger.info("No signed-in user; realtime notifications stay disconnected")
                self._state = ConnectionState.DISCONNECTED
                return

            self._user_id = user.id
            self._state = ConnectionState.CONNECTING
            user_filter = user_filter_for(user.id)
            channel = self._backend.channel(channel_name_for(user.id))
            channel.on(
                CHANGE_INSERT,
                table=NOTIFICATIONS_TABLE,
                filter=user_filter,
                callback=self._handle_insert,
            )
            channel.on(
                CHANGE_UPDATE,
                table=NOTIFICATIONS_TABLE,
                filter=user_filter,
                callback=self._handle_update,
            )
            self._channel = channel
            await channel.subscribe(
                lambda status, error=None: self._handle_status(channel, status, error)
            )
        except Exception:
            logger.exception("Failed to initialize realtime notifications")
            self._state = ConnectionState.DISCONNECTED
            self._schedule_reconnect()

    async def _teardown_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            await self._backend.remove_channel(channel)
        except Exception:
            logger.warning("Failed to remove realtime channel %s", channel.name, exc_info=True)

    def _handle_status(
        self, channel: RealtimeChannel, status: str, error: BaseException | None = None
    ) -> None:
        if channel is not self._channel or self._stopped:
            return
        if status == CHANNEL_SUBSCRIBED:
            self._state = ConnectionState.CONNECTED
            self._reconnect_attempts = 0
            logger.info("Notification real-time connection established for user %s", self._user_id)
            return

        self._state = ConnectionState.DISCONNECTED
        logger.info("Notification real-time connection lost (%s): %s", status, error or "no details")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> bool:
        if self._stopped:
            return False
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return False
        if self._reconnect_attempts >= self._max_reconnect_attempts:
            logger.warning(
                "Giving up on realtime notifications after %s reconnect attempts",
                self._reconnect_attempts,
            )
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; realtime reconnect not scheduled")
            return False

        self._reconnect_attempts += 1
        delay = self.reconnect_delay_for(self._reconnect_attempts)
        logger.info(
            "Reconnecting realtime notifications in %.1fs (attempt %s/%s)",
            delay,
            self._reconnect_attempts,
            self._max_reconnect_attempts,
        )
        self._reconnect_task = loop.create_task(self._reconnect_after(delay))
        return True

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        self._reconnect_task = None
        if self._stopped:
            return
        await self._open_channel()

    # -- event fan-out --------------------------------------------------------

    def add_listener(self, event: str, callback: Listener) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        """Remove the first registration of ``callback`` (compared by identity)."""

        callbacks = self._listeners.get(event)
        if not callbacks:
            return
        for index, registered in enumerate(callbacks):
            if registered is callback:
                del callbacks[index]
                return

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def _notify_listeners(self, event: str, notification: Notification) -> None:
        for callback in list(self._listeners.get(event, ())):
            try:
                callback(notification)
            except Exception:
                logger.exception("Error in notification listener for '%s'", event)

    def _handle_insert(self, payload: dict[str, Any]) -> None:
        notification = self._parse_change(payload)
        if notification is None:
            return
        self._notify_listeners(EVENT_NEW, notification)
        if self._permissions.supported and self._permissions.permission == PERMISSION_GRANTED:
            self._show_native_notification(notification)

    def _handle_update(self, payload: dict[str, Any]) -> None:
        notification = self._parse_change(payload)
        if notification is None:
            return
        self._notify_listeners(EVENT_UPDATE, notification)

    @staticmethod
    def _parse_change(payload: dict[str, Any]) -> Notification | None:
        try:
            return Notification.from_record(payload.get("new") or {})
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring malformed notification change payload: %s", payload)
            return None

    def _show_native_notification(self, notification: Notification) -> None:
        try:
            self._permissions.show(
                notification.title,
                body=notification.message,
                tag=notification.id,
                icon=notification.thumbnail_url or DEFAULT_NATIVE_ICON,
                require_interaction=notification.is_urgent,
                data=notification.to_record(),
            )
        except Exception:
            logger.exception("Failed to show native notification %s", notification.id)

    # -- request operations ---------------------------------------------------

    async def _call(
        self, description: str, request: Callable[[], Awaitable[T]]
    ) -> ServiceResult[T]:
        try:
            value = await request()
        except Exception as exc:
            logger.error("Error %s: %s", description, exc)
            return ServiceResult.failure(str(exc) or exc.__class__.__name__)
        return ServiceResult.success(value)

    async def _require_user_id(self) -> str:
        user = await self._backend.get_user()
        if user is None:
            raise BackendError("Not authenticated")
        return user.id

    async def get_unread_count_result(self) -> ServiceResult[int]:
        async def request() -> int:
            data = await self._backend.rpc("get_unread_notification_count")
            return max(0, int(data or 0))

        return await self._call("getting unread count", request)

    async def get_unread_count(self) -> int:
        return (await self.get_unread_count_result()).unwrap_or(0)

    async def get_recent_notifications_result(
        self, limit: int = 20, offset: int = 0, filter: str = "all"
    ) -> ServiceResult[list[Notification]]:
        async def request() -> list[Notification]:
            if limit < 0 or offset < 0:
                raise ValueError("limit and offset must be non-negative")
            rows = await self._backend.rpc(
                "get_recent_notifications",
                {"p_limit": limit, "p_offset": offset, "p_filter": filter},
            )
            return [Notification.from_record(row) for row in (rows or [])][:limit]

        return await self._call("getting recent notifications", request)

    async def get_recent_notifications(
        self, limit: int = 20, offset: int = 0, filter: str = "all"
    ) -> list[Notification]:
        return (await self.get_recent_notifications_result(limit, offset, filter)).unwrap_or([])

    async def get_grouped_notifications_result(self) -> ServiceResult[list[NotificationGroup]]:
        result = await self.get_recent_notifications_result(GROUPED_NOTIFICATIONS_LIMIT, 0)
        if not result.ok:
            return ServiceResult.failure(result.error or "")
        return ServiceResult.success(group_notifications(result.value or []))

    async def get_grouped_notifications(self) -> list[NotificationGroup]:
        return (await self.get_grouped_notifications_result()).unwrap_or([])

    async def mark_as_read_result(self, notification_id: str) -> ServiceResult[bool]:
        async def request() -> bool:
            data = await self._backend.rpc(
                "mark_notification_read", {"p_notification_id": notification_id}
            )
            return bool(data)

        return await self._call("marking notification as read", request)

    async def mark_as_read(self, notification_id: str) -> bool:
        return (await self.mark_as_read_result(notification_id)).unwrap_or(False)

    async def mark_all_as_read_result(self) -> ServiceResult[int]:
        async def request() -> int:
            data = await self._backend.rpc("mark_all_notifications_read")
            return max(0, int(data or 0))

        return await self._call("marking all notifications as read", request)

    async def mark_all_as_read(self) -> int:
        return (await self.mark_all_as_read_result()).unwrap_or(0)

    async def get_notification_types_result(self) -> ServiceResult[list[NotificationType]]:
        async def request() -> list[NotificationType]:
            rows = await self._backend.select(
                NOTIFICATION_TYPES_TABLE, filters={"is_active": True}, order_by="name"
            )
            return [NotificationType.from_record(row) for row in rows or []]

        return await self._call("getting notification types", request)

    async def get_notification_types(self) -> list[NotificationType]:
        return (await self.get_notification_types_result()).unwrap_or([])

    async def get_notification_preferences_result(
        self,
    ) -> ServiceResult[list[NotificationPreference]]:
        async def request() -> list[NotificationPreference]:
            user = await self._backend.get_user()
            if user is None:
                return []
            rows = await self._backend.select(PREFERENCES_TABLE, filters={"user_id": user.id})
            return [NotificationPreference.from_record(row) for row in rows or []]

        return await self._call("getting notification preferences", request)

    async def get_notification_preferences(self) -> list[NotificationPreference]:
        return (await self.get_notification_preferences_result()).unwrap_or([])

    async def update_notification_preference_result(
        self, type_id: int, **preferences: Any
    ) -> ServiceResult[bool]:
        async def request() -> bool:
            unknown = set(preferences) - set(PREFERENCE_FIELDS)
            if unknown:
                raise ValueError(f"Unsupported preference fields: {', '.join(sorted(unknown))}")
            user_id = await self._require_user_id()
            row: dict[str, Any] = {"user_id": user_id, "type_id": type_id, **preferences}
            if isinstance(row.get("muted_until"), datetime):
                row["muted_until"] = isoformat_or_none(row["muted_until"])
            await self._backend.upsert(PREFERENCES_TABLE, row)
            return True

        return await self._call("updating notification preference", request)

    async def update_notification_preference(self, type_id: int, **preferences: Any) -> bool:
        return (
            await self.update_notification_preference_result(type_id, **preferences)
        ).unwrap_or(False)

    async def mute_notifications_result(self, hours: float) -> ServiceResult[bool]:
        async def request() -> bool:
            if hours <= 0:
                raise ValueError("hours must be positive")
            user_id = await self._require_user_id()
            muted_until = isoformat_or_none(now_in_app_timezone() + timedelta(hours=hours))
            types = await self._backend.select(NOTIFICATION_TYPES_TABLE, filters={"is_active": True})
            for row in types or []:
                await self._backend.upsert(
                    PREFERENCES_TABLE,
                    {"user_id": user_id, "type_id": row["id"], "muted_until": muted_until},
                )
            return True

        return await self._call("muting notifications", request)

    async def mute_notifications(self, hours: float) -> bool:
        return (await self.mute_notifications_result(hours)).unwrap_or(False)

    async def create_notification_result(
        self,
        user_id: str,
        type_name: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        priority: str = PRIORITY_NORMAL,
        expires_at: datetime | None = None,
        *,
        category: str | None = None,
        thumbnail_url: str | None = None,
        action_url: str | None = None,
        action_text: str | None = None,
        group_id: str | None = None,
    ) -> ServiceResult[str | None]:
        async def request() -> str | None:
            result = await self._backend.rpc(
                "create_notification",
                {
                    "p_user_id": user_id,
                    "p_type_name": type_name,
                    "p_title": title,
                    "p_message": message,
                    "p_data": data or {},
                    "p_priority": priority,
                    "p_category": category,
                    "p_thumbnail_url": thumbnail_url,
                    "p_action_url": action_url,
                    "p_action_text": action_text,
                    "p_expires_at": isoformat_or_none(expires_at),
                    "p_group_id": group_id,
                },
            )
            return str(result) if result else None

        return await self._call("creating notification", request)

    async def create_notification(
        self,
        user_id: str,
        type_name: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
        priority: str = PRIORITY_NORMAL,
        expires_at: datetime | None = None,
        **options: Any,
    ) -> str | None:
        result = await self.create_notification_result(
            user_id, type_name, title, message, data, priority, expires_at, **options
        )
        return result.value if result.ok else None

    async def archive_old_notifications_result(
        self, days_old: int | None = None
    ) -> ServiceResult[int]:
        days = get_settings().notification_retention_days if days_old is None else days_old

        async def request() -> int:
            data = await self._backend.rpc("archive_old_notifications", {"p_days_old": days})
            return max(0, int(data or 0))

        return await self._call("archiving old notifications", request)

    async def archive_old_notifications(self, days_old: int | None = None) -> int:
        return (await self.archive_old_notifications_result(days_old)).unwrap_or(0)

    async def request_notification_permission(self) -> bool:
        """Ask the platform for permission to raise native notifications."""

        if not self._permissions.supported:
            logger.info("This platform does not support native notifications")
            return False
        if self._permissions.permission == PERMISSION_GRANTED:
            return True
        if self._permissions.permission == PERMISSION_DENIED:
            return False
        try:
            answer = await self._permissions.request_permission()
        except Exception:
            logger.exception("Error requesting notification permission")
            return False
        return answer == PERMISSION_GRANTED

    def has_permission(self) -> bool:
        return self._permissions.supported and self._permissions.permission == PERMISSION_GRANTED

    @staticmethod
    def category_info(category: str | None) -> tuple[str, str]:
        return category_info(category)


def group_notifications(notifications: list[Notification]) -> list[NotificationGroup]:
    """Collapse notifications by ``group_id`` (falling back to category)."""

    groups: dict[str, NotificationGroup] = {}
    for notification in notifications:
        key = notification.group_id or notification.category
        group = groups.get(key)
        if group is None:
            groups[key] = NotificationGroup(
                id=key,
                category=notification.category,
                title=notification.title,
                count=1,
                latest_notification=notification,
                notifications=[notification],
            )
            continue
        group.count += 1
        group.notifications.append(notification)
        if _created_key(notification) > _created_key(group.latest_notification):
            group.latest_notification = notification

    return sorted(
        groups.values(),
        key=lambda group: _created_key(group.latest_notification),
        reverse=True,
    )


def _created_key(notification: Notification) -> float:
    return notification.created_at.timestamp() if notification.created_at else 0.0


__all__ = ["NotificationService", "group_notifications"]
