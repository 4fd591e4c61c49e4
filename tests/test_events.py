"""Tests for the platform event notification triggers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from notifyhub.application.use_cases.notifications import (
    describe_time_until,
    get_recent_notifications,
    notify_achievement_unlocked,
    notify_admin_announcement,
    notify_book_sold,
    notify_event_reminder,
    notify_multiple_users,
    notify_new_study_material,
    notify_payment_approved,
    notify_payment_rejected,
    notify_pro_plan_expiry,
    notify_promo_discount,
    notify_purchase_request,
    pro_plan_expiry_priority,
)
from notifyhub.infrastructure.notifications import ChangeFeedPublisher

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def publisher_mock():
    return MagicMock(spec=ChangeFeedPublisher)


def _only_notification(session, user_id="user-1"):
    [notification] = get_recent_notifications(session, user_id=user_id)
    return notification


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(days=2, hours=3), "in 2 days"),
        (timedelta(days=1), "in 1 day"),
        (timedelta(hours=1, minutes=10), "in 1 hour"),
        (timedelta(minutes=5), "in 5 minutes"),
        (timedelta(seconds=30), "now"),
        (timedelta(minutes=-10), "now"),
    ],
)
def test_describe_time_until(delta, expected):
    assert describe_time_until(NOW + delta, NOW) == expected


@pytest.mark.parametrize(
    ("days", "priority"),
    [(1, "urgent"), (3, "urgent"), (4, "high"), (7, "high"), (8, "normal"), (30, "normal")],
)
def test_pro_plan_expiry_priority(days, priority):
    assert pro_plan_expiry_priority(days) == priority


def test_study_material_notification(session, notification_types, publisher_mock):
    notify_new_study_material(
        session,
        user_id="user-1",
        material_title="Organic Chemistry Notes",
        subject="Chemistry",
        grade="12",
        uploader_name="Asha",
        publisher=publisher_mock,
    )

    notification = _only_notification(session)
    assert notification.type_name == "study_alert"
    assert notification.category == "study"
    assert notification.message == "New Chemistry material for Grade 12 has been uploaded by Asha"
    assert notification.action_url == "/study-materials"
    publisher_mock.dispatch_insert.assert_called_once()


def test_marketplace_notifications(session, notification_types, publisher_mock):
    notify_book_sold(
        session, user_id="seller", book_title="Calculus", price=450, buyer_name="Ravi",
        publisher=publisher_mock,
    )
    notify_purchase_request(
        session, user_id="seller-2", book_title="Calculus", buyer_name="Ravi", offer_price=400.5,
        publisher=publisher_mock,
    )

    sold = _only_notification(session, "seller")
    request = _only_notification(session, "seller-2")
    assert sold.priority == "high"
    assert sold.message.endswith("has been sold for ₹450")
    assert request.message == 'Ravi wants to buy "Calculus" for ₹400.5'
    assert request.priority == "normal"


def test_payment_notifications(session, notification_types, publisher_mock):
    notify_payment_approved(
        session, user_id="user-1", amount=999, payment_method="UPI", publisher=publisher_mock
    )
    notify_payment_rejected(
        session, user_id="user-2", amount=999, reason="Blurry receipt", publisher=publisher_mock
    )

    approved = _only_notification(session, "user-1")
    rejected = _only_notification(session, "user-2")
    assert approved.title == "Payment Approved"
    assert approved.category == "payment"
    assert approved.data == {"amount": 999, "payment_method": "UPI"}
    assert rejected.message == "Your payment of ₹999 was rejected: Blurry receipt"
    assert rejected.action_text == "Try Again"


def test_event_reminder_mentions_time_until(session, notification_types, publisher_mock):
    notify_event_reminder(
        session,
        user_id="user-1",
        event_name="Science Fair",
        event_time=NOW + timedelta(hours=3),
        event_location="Main Hall",
        now=NOW,
        publisher=publisher_mock,
    )

    notification = _only_notification(session)
    assert notification.title == "Event Reminder: Science Fair"
    assert "starting in 3 hours at Main Hall" in notification.message
    assert notification.data["time_until"] == "in 3 hours"


def test_achievement_and_announcement(session, notification_types, publisher_mock):
    notify_achievement_unlocked(
        session,
        user_id="user-1",
        achievement_name="Bookworm",
        achievement_description="Read 10 books",
        points_earned=50,
        publisher=publisher_mock,
    )
    notify_admin_announcement(
        session,
        user_id="user-2",
        title="Maintenance",
        message="Back at noon",
        priority="urgent",
        publisher=publisher_mock,
    )

    achievement = _only_notification(session, "user-1")
    announcement = _only_notification(session, "user-2")
    assert achievement.data["points_earned"] == 50
    assert achievement.priority == "high"
    assert announcement.title == "Announcement: Maintenance"
    assert announcement.priority == "urgent"


def test_pro_plan_expiry_and_promo(session, notification_types, publisher_mock):
    notify_pro_plan_expiry(
        session,
        user_id="user-1",
        expiry_date=datetime(2024, 5, 3, 10, 0, tzinfo=timezone.utc),
        days_until_expiry=2,
        publisher=publisher_mock,
    )
    notify_promo_discount(
        session,
        user_id="user-2",
        discount_percent=25,
        promo_code="SAVE25",
        valid_until=datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc),
        publisher=publisher_mock,
    )

    expiry = _only_notification(session, "user-1")
    promo = _only_notification(session, "user-2")
    assert expiry.priority == "urgent"
    assert "2024-05-03" in expiry.message
    assert promo.category == "ads"
    assert "Use code: SAVE25" in promo.message


def test_notify_multiple_users_skips_duplicates(session, notification_types, publisher_mock):
    created = notify_multiple_users(
        session,
        user_ids=["a", "b", "a", "", "c"],
        type_name="admin_announcement",
        title="Hello",
        message="Welcome aboard",
        publisher=publisher_mock,
    )

    assert len(created) == 3
    assert len(set(created)) == 3
    assert publisher_mock.dispatch_insert.call_count == 3
    for user_id in ("a", "b", "c"):
        assert _only_notification(session, user_id).title == "Hello"
