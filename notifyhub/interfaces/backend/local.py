"""In-process implementation of the backend contract.

``LocalBackendClient`` binds the remote procedures, the preference tables and
the change feed of this package to the :class:`BackendClient` protocol so the
notification client can run against a local database.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy.orm import Session, sessionmaker

from notifyhub.application.use_cases.notifications import (
    archive_old_notifications,
    create_notification,
    get_recent_notifications,
    get_unread_notification_count,
    list_notification_preferences,
    list_notification_types,
    mark_all_notifications_read,
    mark_notification_read,
    upsert_notification_preference,
)
from notifyhub.domain.entities import (
    CHANNEL_SUBSCRIBED,
    NOTIFICATION_TYPES_TABLE,
    PREFERENCE_FIELDS,
    PREFERENCES_TABLE,
)
from notifyhub.infrastructure.backend import (
    BackendError,
    BackendUser,
    ChangeCallback,
    StatusCallback,
)
from notifyhub.infrastructure.notifications import (
    ChangeFeedPublisher,
    NotificationConnectionManager,
)
from notifyhub.utils import parse_datetime

logger = logging.getLogger(__name__)


def _row_matches(filter_expression: str | None, row: Mapping[str, Any]) -> bool:
    """Evaluate a ``column=eq.value`` filter against ``row``."""

    if not filter_expression:
        return True
    column, _, condition = filter_expression.partition("=")
    operator, _, expected = condition.partition(".")
    if operator != "eq":
        raise BackendError(f"Unsupported filter operator '{operator}'")
    return str(row.get(column)) == expected


class LocalRealtimeChannel:
    """Change-feed channel registered directly on the connection manager."""

    def __init__(self, name: str, *, manager: NotificationConnectionManager, user_id: str) -> None:
        self.name = name
        self._manager = manager
        self._user_id = user_id
        self._bindings: list[tuple[str, str, str | None, ChangeCallback]] = []
        self._status_callback: StatusCallback | None = None
        self.joined = False

    def on(
        self,
        event: str,
        *,
        table: str,
        filter: str | None = None,
        callback: ChangeCallback,
    ) -> "LocalRealtimeChannel":
        self._bindings.append((event, table, filter, callback))
        return self

    async def subscribe(self, callback: StatusCallback | None = None) -> "LocalRealtimeChannel":
        self._status_callback = callback
        self._manager.register(self._user_id, self)
        self.joined = True
        if callback is not None:
            callback(CHANNEL_SUBSCRIBED, None)
        return self

    async def unsubscribe(self) -> None:
        self._manager.disconnect(self._user_id, self)
        self.joined = False

    def report_status(self, status: str, error: BaseException | None = None) -> None:
        """Push a lifecycle status (for example ``CHANNEL_ERROR``) to the subscriber."""

        if status != CHANNEL_SUBSCRIBED:
            self._manager.disconnect(self._user_id, self)
            self.joined = False
        if self._status_callback is not None:
            self._status_callback(status, error)

    async def send_json(self, data: Any) -> None:
        if not isinstance(data, dict) or data.get("type") != "postgres_changes":
            return
        for event, table, filter_expression, callback in list(self._bindings):
            if event not in ("*", data.get("event")) or table != data.get("table"):
                continue
            if not _row_matches(filter_expression, data.get("new") or {}):
                continue
            callback(data)


class LocalBackendClient:
    """Serve the backend contract from a SQLAlchemy session factory.

    ``rpc``, ``select`` and ``upsert`` run their synchronous session work
    directly on the calling event loop. That suits the in-process SQLite
    database used by the CLI and tests; a networked database should sit behind
    a real remote backend instead.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        *,
        manager: NotificationConnectionManager | None = None,
        publisher: ChangeFeedPublisher | None = None,
        user: BackendUser | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._manager = manager or NotificationConnectionManager()
        self._publisher = publisher or ChangeFeedPublisher(self._manager)
        self._user = user
        self._channels: list[LocalRealtimeChannel] = []

    @property
    def publisher(self) -> ChangeFeedPublisher:
        return self._publisher

    @property
    def channels(self) -> list[LocalRealtimeChannel]:
        return list(self._channels)

    def sign_in(self, user_id: str, *, role: str | None = None) -> BackendUser:
        self._user = BackendUser(id=user_id, role=role)
        return self._user

    def sign_out(self) -> None:
        self._user = None

    async def get_user(self) -> BackendUser | None:
        return self._user

    async def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        handler = self._procedures().get(name)
        if handler is None:
            raise BackendError(f"Unknown remote procedure '{name}'")
        values = dict(params or {})
        try:
            with self._session_factory() as session:
                return handler(session, values)
        except BackendError:
            raise
        except Exception as exc:
            logger.debug("Remote procedure %s failed", name, exc_info=True)
            raise BackendError(str(exc)) from exc

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> Sequence[dict[str, Any]]:
        try:
            with self._session_factory() as session:
                if table == NOTIFICATION_TYPES_TABLE:
                    rows = [item.to_record() for item in list_notification_types(session)]
                elif table == PREFERENCES_TABLE:
                    user = self._require_user()
                    rows = [
                        item.to_record()
                        for item in list_notification_preferences(session, user_id=user.id)
                    ]
                else:
                    raise BackendError(f"Table '{table}' is not exposed")
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(str(exc)) from exc

        for column, expected in (filters or {}).items():
            rows = [row for row in rows if row.get(column) == expected]
        if order_by:
            rows.sort(key=lambda row: (row.get(order_by) is None, row.get(order_by)))
        return rows

    async def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        if table != PREFERENCES_TABLE:
            raise BackendError(f"Table '{table}' does not accept writes")
        user = self._require_user()
        if str(row.get("user_id", user.id)) != user.id:
            raise BackendError("Row level security: cannot write another user's preferences")
        if row.get("type_id") is None:
            raise BackendError("type_id is required")
        changes = {key: value for key, value in row.items() if key in PREFERENCE_FIELDS}
        try:
            with self._session_factory() as session:
                upsert_notification_preference(
                    session, user_id=user.id, type_id=int(row["type_id"]), changes=changes
                )
        except Exception as exc:
            raise BackendError(str(exc)) from exc

    def channel(self, name: str) -> LocalRealtimeChannel:
        user = self._require_user()
        channel = LocalRealtimeChannel(name, manager=self._manager, user_id=user.id)
        self._channels.append(channel)
        return channel

    async def remove_channel(self, channel: LocalRealtimeChannel) -> None:
        await channel.unsubscribe()
        self._channels = [existing for existing in self._channels if existing is not channel]

    def _require_user(self) -> BackendUser:
        if self._user is None:
            raise BackendError("Not authenticated")
        return self._user

    def _procedures(self) -> dict[str, Callable[[Session, dict[str, Any]], Any]]:
        return {
            "get_unread_notification_count": self._get_unread_count,
            "get_recent_notifications": self._get_recent,
            "mark_notification_read": self._mark_read,
            "mark_all_notifications_read": self._mark_all_read,
            "create_notification": self._create,
            "archive_old_notifications": self._archive,
        }

    def _get_unread_count(self, session: Session, params: dict[str, Any]) -> int:
        return get_unread_notification_count(session, user_id=self._require_user().id)

    def _get_recent(self, session: Session, params: dict[str, Any]) -> list[dict[str, Any]]:
        notifications = get_recent_notifications(
            session,
            user_id=self._require_user().id,
            limit=int(params.get("p_limit", 20)),
            offset=int(params.get("p_offset", 0)),
            filter=params.get("p_filter") or "all",
        )
        return [notification.to_record() for notification in notifications]

    def _mark_read(self, session: Session, params: dict[str, Any]) -> bool:
        return mark_notification_read(
            session,
            user_id=self._require_user().id,
            notification_id=str(params["p_notification_id"]),
            publisher=self._publisher,
        )

    def _mark_all_read(self, session: Session, params: dict[str, Any]) -> int:
        return mark_all_notifications_read(
            session, user_id=self._require_user().id, publisher=self._publisher
        )

    def _create(self, session: Session, params: dict[str, Any]) -> str:
        self._require_user()
        return create_notification(
            session,
            user_id=str(params["p_user_id"]),
            type_name=params["p_type_name"],
            title=params["p_title"],
            message=params["p_message"],
            data=params.get("p_data") or {},
            priority=params.get("p_priority") or "normal",
            category=params.get("p_category"),
            thumbnail_url=params.get("p_thumbnail_url"),
            action_url=params.get("p_action_url"),
            action_text=params.get("p_action_text"),
            expires_at=parse_datetime(params.get("p_expires_at")),
            group_id=params.get("p_group_id"),
            publisher=self._publisher,
        )

    def _archive(self, session: Session, params: dict[str, Any]) -> int:
        return archive_old_notifications(session, days_old=int(params.get("p_days_old", 30)))


__all__ = ["LocalBackendClient", "LocalRealtimeChannel"]
