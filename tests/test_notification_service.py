"""Tests for the realtime notification client."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import ScriptedBackend, ScriptedChannel, make_record
from notifyhub.application.services import NotificationService, group_notifications
from notifyhub.domain.entities import (
    CHANNEL_ERROR,
    CHANNEL_SUBSCRIBED,
    CHANNEL_TIMED_OUT,
    EVENT_NEW,
    EVENT_UPDATE,
    ConnectionState,
    Notification,
)
from notifyhub.infrastructure.backend import BackendError, BackendUser
from notifyhub.infrastructure.permissions import (
    PERMISSION_DEFAULT,
    PERMISSION_DENIED,
    PERMISSION_GRANTED,
    HeadlessPermissionBridge,
)


class FlakyBackend(ScriptedBackend):
    """Backend whose first ``failures`` subscriptions report ``status``."""

    def __init__(self, failures: int, status: str = CHANNEL_ERROR) -> None:
        super().__init__()
        self.failures = failures
        self.status = status

    def channel(self, name):
        failed = len(self.channels) < self.failures
        channel = ScriptedChannel(name, self.status if failed else CHANNEL_SUBSCRIBED)
        self.channels.append(channel)
        return channel


def _recording_sleep(delays: list[float]):
    async def _sleep(delay: float) -> None:
        delays.append(delay)

    return _sleep


async def _drain_reconnects(service: NotificationService) -> None:
    while service.reconnect_task is not None:
        await service.reconnect_task


def test_reconnect_backoff_is_linear_and_gives_up_after_five_attempts():
    backend = FlakyBackend(failures=100)
    delays: list[float] = []
    service = NotificationService(backend, sleep=_recording_sleep(delays))

    async def scenario():
        await service.start()
        await _drain_reconnects(service)

    asyncio.run(scenario())

    assert delays == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert len(backend.channels) == 6
    assert service.connection_state is ConnectionState.DISCONNECTED
    assert service.is_connected is False
    assert service.reconnect_attempts == 5
    # Every replaced channel was torn down before the next one opened.
    assert backend.removed == backend.channels[:5]


@pytest.mark.parametrize("failures", [1, 3, 5])
def test_successful_reconnect_resets_attempt_counter(failures):
    backend = FlakyBackend(failures=failures, status=CHANNEL_TIMED_OUT)
    delays: list[float] = []
    service = NotificationService(backend, sleep=_recording_sleep(delays))

    async def scenario():
        await service.start()
        await _drain_reconnects(service)

    asyncio.run(scenario())

    assert delays == [float(attempt) for attempt in range(1, failures + 1)]
    assert service.is_connected is True
    assert service.reconnect_attempts == 0


def test_reconnect_delay_uses_configured_unit():
    service = NotificationService(ScriptedBackend(), reconnect_delay=0.25)

    assert [service.reconnect_delay_for(attempt) for attempt in (1, 2, 5)] == [0.25, 0.5, 1.25]


def test_start_without_user_stays_disconnected():
    backend = ScriptedBackend(user_id=None)
    service = NotificationService(backend)

    state = asyncio.run(service.start())

    assert state is ConnectionState.DISCONNECTED
    assert backend.channels == []
    assert service.reconnect_task is None


def test_exception_while_opening_schedules_reconnect():
    backend = ScriptedBackend()
    backend.get_user = AsyncMock(side_effect=[BackendError("offline"), BackendUser(id="user-1")])
    delays: list[float] = []
    service = NotificationService(backend, sleep=_recording_sleep(delays))

    async def scenario():
        await service.start()
        await _drain_reconnects(service)

    asyncio.run(scenario())

    assert delays == [1.0]
    assert service.is_connected is True


def test_status_from_replaced_channel_is_ignored():
    backend = ScriptedBackend()
    service = NotificationService(backend, sleep=_recording_sleep([]))

    async def scenario():
        await service.start()
        first = backend.channels[0]
        backend.user = BackendUser(id="user-2")
        await service.switch_user("user-2")
        first.status_callback(CHANNEL_ERROR, None)
        return service.reconnect_task

    pending = asyncio.run(scenario())

    assert pending is None
    assert service.is_connected is True
    assert service.user_id == "user-2"
    assert [channel.name for channel in backend.removed] == ["notifications:user-1"]


def test_disconnect_cancels_reconnect_and_stays_down():
    backend = FlakyBackend(failures=100)
    service = NotificationService(backend, sleep=asyncio.sleep, reconnect_delay=60)

    async def scenario():
        await service.start()
        task = service.reconnect_task
        await service.disconnect()
        await asyncio.sleep(0)
        return task

    task = asyncio.run(scenario())

    assert task is not None and task.cancelled()
    assert service.reconnect_task is None
    assert service.connection_state is ConnectionState.DISCONNECTED
    assert len(backend.channels) == 1
    assert backend.removed == backend.channels


def test_switch_user_replaces_channel(local_backend):
    local_backend.sign_in("user-1")
    service = NotificationService(local_backend)

    async def scenario():
        await service.start()
        local_backend.sign_in("user-2")
        await service.switch_user("user-2")

    asyncio.run(scenario())

    assert service.user_id == "user-2"
    assert [channel.name for channel in local_backend.channels] == ["notifications:user-2"]
    assert local_backend.publisher.manager.subscriber_count("user-1") == 0
    assert local_backend.publisher.manager.subscriber_count("user-2") == 1


def test_switch_user_to_none_disconnects(local_backend):
    local_backend.sign_in("user-1")
    service = NotificationService(local_backend)

    async def scenario():
        await service.start()
        local_backend.sign_out()
        await service.switch_user(None)

    asyncio.run(scenario())

    assert service.connection_state is ConnectionState.DISCONNECTED
    assert local_backend.channels == []


def test_local_channel_error_reconnects_on_a_fresh_channel(local_backend):
    local_backend.sign_in("user-1")
    delays: list[float] = []
    service = NotificationService(local_backend, sleep=_recording_sleep(delays), reconnect_delay=1.0)

    async def scenario():
        await service.start()
        [dropped] = local_backend.channels
        dropped.report_status(CHANNEL_ERROR, RuntimeError("socket closed"))
        status_after_drop = service.get_connection_status()
        await _drain_reconnects(service)
        return dropped, status_after_drop

    dropped, status_after_drop = asyncio.run(scenario())

    assert status_after_drop is False
    assert delays == [1.0]
    assert service.get_connection_status() is True
    assert service.reconnect_attempts == 0
    [current] = local_backend.channels
    assert current is not dropped
    assert dropped.joined is False
    assert local_backend.publisher.manager.subscriber_count("user-1") == 1


def test_listeners_receive_events_in_order_and_are_isolated(caplog):
    backend = ScriptedBackend()
    service = NotificationService(backend)
    received: list[str] = []

    def broken(notification: Notification) -> None:
        raise RuntimeError("listener bug")

    service.add_listener(EVENT_NEW, lambda n: received.append(f"first:{n.id}"))
    service.add_listener(EVENT_NEW, broken)
    service.add_listener(EVENT_NEW, lambda n: received.append(f"last:{n.id}"))

    async def scenario():
        await service.start()
        backend.emit("INSERT", make_record("n-1"))

    asyncio.run(scenario())

    assert received == ["first:n-1", "last:n-1"]
    assert "Error in notification listener for 'new'" in caplog.text


def test_remove_listener_removes_first_identical_registration():
    service = NotificationService(ScriptedBackend())
    callback = MagicMock()
    service.add_listener(EVENT_UPDATE, callback)
    service.add_listener(EVENT_UPDATE, callback)

    service.remove_listener(EVENT_UPDATE, callback)
    service.remove_listener(EVENT_UPDATE, MagicMock())
    service.remove_listener("unknown", callback)

    assert service.listener_count(EVENT_UPDATE) == 1


def test_update_events_reach_update_listeners_only():
    backend = ScriptedBackend()
    service = NotificationService(backend)
    new_listener, update_listener = MagicMock(), MagicMock()
    service.add_listener(EVENT_NEW, new_listener)
    service.add_listener(EVENT_UPDATE, update_listener)

    async def scenario():
        await service.start()
        backend.emit("UPDATE", make_record("n-1", is_read=True))

    asyncio.run(scenario())

    new_listener.assert_not_called()
    updated = update_listener.call_args.args[0]
    assert updated.id == "n-1" and updated.is_read is True


def test_live_notification_reaches_listener_through_local_backend(local_backend):
    local_backend.sign_in("user-1")
    service = NotificationService(local_backend)
    received: list[Notification] = []
    service.add_listener(EVENT_NEW, received.append)

    async def scenario():
        await service.start()
        notification_id = await service.create_notification(
            "user-1", "payment", "Payment approved", "Your payment was approved"
        )
        await local_backend.publisher.flush()
        return notification_id

    notification_id = asyncio.run(scenario())

    assert service.is_connected is True
    assert [notification.id for notification in received] == [notification_id]
    assert received[0].category == "payment"


@pytest.mark.parametrize(
    ("priority", "thumbnail", "expected_icon", "sticky"),
    [
        ("urgent", None, "/favicon.ico", True),
        ("normal", "https://cdn.example.com/a.png", "https://cdn.example.com/a.png", False),
    ],
)
def test_native_notification_shown_when_permission_granted(priority, thumbnail, expected_icon, sticky):
    backend = ScriptedBackend()
    bridge = MagicMock()
    bridge.supported = True
    bridge.permission = PERMISSION_GRANTED
    service = NotificationService(backend, permissions=bridge)

    async def scenario():
        await service.start()
        backend.emit("INSERT", make_record("n-9", priority=priority, thumbnail_url=thumbnail))

    asyncio.run(scenario())

    bridge.show.assert_called_once()
    kwargs = bridge.show.call_args.kwargs
    assert bridge.show.call_args.args == ("Notification n-9",)
    assert kwargs["tag"] == "n-9"
    assert kwargs["icon"] == expected_icon
    assert kwargs["require_interaction"] is sticky


def test_native_notification_skipped_without_permission():
    backend = ScriptedBackend()
    bridge = MagicMock()
    bridge.supported = True
    bridge.permission = PERMISSION_DEFAULT
    service = NotificationService(backend, permissions=bridge)

    async def scenario():
        await service.start()
        backend.emit("INSERT", make_record("n-1"))

    asyncio.run(scenario())

    bridge.show.assert_not_called()


@pytest.mark.parametrize(
    ("supported", "permission", "answer", "expected", "prompted"),
    [
        (False, PERMISSION_DENIED, PERMISSION_GRANTED, False, False),
        (True, PERMISSION_DENIED, PERMISSION_GRANTED, False, False),
        (True, PERMISSION_GRANTED, PERMISSION_DENIED, True, False),
        (True, PERMISSION_DEFAULT, PERMISSION_GRANTED, True, True),
        (True, PERMISSION_DEFAULT, PERMISSION_DENIED, False, True),
    ],
)
def test_request_notification_permission(supported, permission, answer, expected, prompted):
    bridge = MagicMock()
    bridge.supported = supported
    bridge.permission = permission
    bridge.request_permission = AsyncMock(return_value=answer)
    service = NotificationService(ScriptedBackend(), permissions=bridge)

    assert asyncio.run(service.request_notification_permission()) is expected
    assert bridge.request_permission.await_count == (1 if prompted else 0)


def test_request_notification_permission_swallows_errors():
    bridge = MagicMock()
    bridge.supported = True
    bridge.permission = PERMISSION_DEFAULT
    bridge.request_permission = AsyncMock(side_effect=RuntimeError("no prompt available"))
    service = NotificationService(ScriptedBackend(), permissions=bridge)

    assert asyncio.run(service.request_notification_permission()) is False


def test_headless_bridge_is_the_default():
    service = NotificationService(ScriptedBackend())

    assert isinstance(service.permissions, HeadlessPermissionBridge)
    assert service.has_permission() is False


def _failing_backend() -> MagicMock:
    backend = MagicMock()
    backend.get_user = AsyncMock(return_value=BackendUser(id="user-1"))
    backend.rpc = AsyncMock(side_effect=BackendError("backend unavailable"))
    backend.select = AsyncMock(side_effect=BackendError("backend unavailable"))
    backend.upsert = AsyncMock(side_effect=BackendError("backend unavailable"))
    return backend


@pytest.mark.parametrize(
    ("operation", "args", "kwargs", "default"),
    [
        ("get_unread_count", (), {}, 0),
        ("get_recent_notifications", (), {}, []),
        ("get_grouped_notifications", (), {}, []),
        ("mark_as_read", ("n-1",), {}, False),
        ("mark_all_as_read", (), {}, 0),
        ("get_notification_types", (), {}, []),
        ("get_notification_preferences", (), {}, []),
        ("update_notification_preference", (1,), {"email_enabled": False}, False),
        ("mute_notifications", (2,), {}, False),
        ("create_notification", ("user-1", "system_alert", "Title", "Body"), {}, None),
        ("archive_old_notifications", (), {}, 0),
    ],
)
def test_request_operations_resolve_to_safe_defaults(operation, args, kwargs, default):
    service = NotificationService(_failing_backend())

    result = asyncio.run(getattr(service, operation)(*args, **kwargs))

    assert result == default


@pytest.mark.parametrize(
    "operation",
    ["get_unread_count_result", "get_recent_notifications_result", "mark_all_as_read_result"],
)
def test_result_variants_report_failure_reason(operation):
    service = NotificationService(_failing_backend())

    result = asyncio.run(getattr(service, operation)())

    assert result.ok is False
    assert result.error == "backend unavailable"


def test_result_variant_distinguishes_empty_success():
    backend = ScriptedBackend(pages=[[]])
    service = NotificationService(backend)

    result = asyncio.run(service.get_recent_notifications_result())

    assert result.ok is True
    assert result.value == []


def test_get_recent_notifications_passes_pagination_parameters():
    backend = ScriptedBackend(pages=[[make_record("a"), make_record("b")]])
    service = NotificationService(backend)

    notifications = asyncio.run(service.get_recent_notifications(limit=5, offset=10, filter="unread"))

    assert [item.id for item in notifications] == ["a", "b"]
    assert backend.recent_calls() == [{"p_limit": 5, "p_offset": 10, "p_filter": "unread"}]


def test_negative_pagination_is_rejected_without_backend_call():
    backend = ScriptedBackend()
    service = NotificationService(backend)

    result = asyncio.run(service.get_recent_notifications_result(limit=-1))

    assert result.ok is False
    assert backend.calls == []


def test_update_preference_without_user_fails():
    backend = ScriptedBackend(user_id=None)
    service = NotificationService(backend)

    assert asyncio.run(service.update_notification_preference(1, push_enabled=False)) is False
    assert backend.upserts == []


def test_update_preference_rejects_unknown_fields():
    backend = ScriptedBackend()
    service = NotificationService(backend)

    result = asyncio.run(service.update_notification_preference_result(1, sms_enabled=True))

    assert result.ok is False
    assert "sms_enabled" in result.error
    assert backend.upserts == []


def test_update_preference_upserts_row_for_current_user():
    backend = ScriptedBackend()
    service = NotificationService(backend)

    assert asyncio.run(service.update_notification_preference(2, in_app_enabled=False)) is True
    assert backend.upserts == [{"user_id": "user-1", "type_id": 2, "in_app_enabled": False}]


def test_mute_notifications_sets_deadline_on_every_active_type():
    backend = ScriptedBackend()
    service = NotificationService(backend)

    assert asyncio.run(service.mute_notifications(8)) is True
    assert [row["type_id"] for row in backend.upserts] == [1, 2]
    assert all(row["muted_until"] for row in backend.upserts)


def test_create_notification_forwards_parameters():
    backend = ScriptedBackend()
    service = NotificationService(backend)

    notification_id = asyncio.run(
        service.create_notification(
            "user-2", "promotion", "Sale", "50% off", {"code": "HALF"}, "high", action_url="/shop"
        )
    )

    assert notification_id == "created-1"
    name, params = backend.calls[-1]
    assert name == "create_notification"
    assert params["p_user_id"] == "user-2"
    assert params["p_priority"] == "high"
    assert params["p_data"] == {"code": "HALF"}
    assert params["p_action_url"] == "/shop"
    assert params["p_expires_at"] is None


def test_group_notifications_orders_groups_by_newest_member():
    notifications = [
        Notification.from_record(make_record("a", group_id="g1", created_at="2024-05-01T08:00:00+00:00")),
        Notification.from_record(make_record("b", category="payment", created_at="2024-05-01T10:00:00+00:00")),
        Notification.from_record(make_record("c", group_id="g1", created_at="2024-05-01T11:00:00+00:00")),
    ]

    groups = group_notifications(notifications)

    assert [group.id for group in groups] == ["g1", "payment"]
    assert groups[0].count == 2
    assert groups[0].latest_notification.id == "c"


def test_category_info_falls_back_to_bell():
    icon, color = NotificationService.category_info("unknown-category")

    assert (icon, color) == NotificationService.category_info(None)
