"""Utility helpers to generate domain notifications for platform events."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.orm import Session

from notifyhub.domain.entities import (
    PRIORITY_HIGH,
    PRIORITY_NORMAL,
    PRIORITY_URGENT,
)
from notifyhub.infrastructure.notifications import ChangeFeedPublisher
from notifyhub.utils import ensure_app_timezone, now_in_app_timezone

from .procedures import create_notification

logger = logging.getLogger(__name__)


def _persist_notification(
    session: Session,
    *,
    user_id: str,
    type_name: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    priority: str = PRIORITY_NORMAL,
    action_url: str | None = None,
    action_text: str | None = None,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return create_notification(
        session,
        user_id=user_id,
        type_name=type_name,
        title=title,
        message=message,
        data=data or {},
        priority=priority,
        action_url=action_url,
        action_text=action_text,
        publisher=publisher,
    )


def _format_amount(amount: float) -> str:
    return f"₹{amount:g}"


def describe_time_until(when: datetime, now: datetime | None = None) -> str:
    """Return a short English phrase such as ``"in 2 days"`` or ``"now"``."""

    current = ensure_app_timezone(now) if now else now_in_app_timezone()
    seconds = (ensure_app_timezone(when) - current).total_seconds()
    if seconds <= 0:
        return "now"
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)

    if days > 0:
        return f"in {days} day{'s' if days > 1 else ''}"
    if hours > 0:
        return f"in {hours} hour{'s' if hours > 1 else ''}"
    if minutes > 0:
        return f"in {minutes} minute{'s' if minutes > 1 else ''}"
    return "now"


def notify_new_study_material(
    session: Session,
    *,
    user_id: str,
    material_title: str,
    subject: str,
    grade: str,
    uploader_name: str,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    """Tell a student that new material was uploaded for their grade."""

    return _persist_notification(
        session,
        user_id=user_id,
        type_name="study_alert",
        title="New Study Material Available",
        message=f"New {subject} material for Grade {grade} has been uploaded by {uploader_name}",
        data={
            "material_title": material_title,
            "subject": subject,
            "grade": grade,
            "uploader": uploader_name,
        },
        action_url="/study-materials",
        action_text="View Material",
        publisher=publisher,
    )


def notify_book_sold(
    session: Session,
    *,
    user_id: str,
    book_title: str,
    price: float,
    buyer_name: str,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="marketplace_update",
        title="Book Sold!",
        message=(
            f'Congratulations! Your book "{book_title}" has been sold for '
            f"{_format_amount(price)}"
        ),
        data={"book_title": book_title, "price": price, "buyer": buyer_name},
        priority=PRIORITY_HIGH,
        action_url="/marketplace",
        action_text="View Sale",
        publisher=publisher,
    )


def notify_purchase_request(
    session: Session,
    *,
    user_id: str,
    book_title: str,
    buyer_name: str,
    offer_price: float,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="marketplace_update",
        title="New Purchase Request",
        message=f'{buyer_name} wants to buy "{book_title}" for {_format_amount(offer_price)}',
        data={"book_title": book_title, "buyer": buyer_name, "offer_price": offer_price},
        action_url="/marketplace",
        action_text="Review Request",
        publisher=publisher,
    )


def notify_payment_approved(
    session: Session,
    *,
    user_id: str,
    amount: float,
    payment_method: str,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    """Inform the payer that the uploaded receipt was approved."""

    return _persist_notification(
        session,
        user_id=user_id,
        type_name="payment",
        title="Payment Approved",
        message=(
            f"Your payment of {_format_amount(amount)} has been approved and "
            "credited to your wallet"
        ),
        data={"amount": amount, "payment_method": payment_method},
        priority=PRIORITY_HIGH,
        action_url="/wallet",
        action_text="View Wallet",
        publisher=publisher,
    )


def notify_payment_rejected(
    session: Session,
    *,
    user_id: str,
    amount: float,
    reason: str,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="payment",
        title="Payment Rejected",
        message=f"Your payment of {_format_amount(amount)} was rejected: {reason}",
        data={"amount": amount, "reason": reason},
        priority=PRIORITY_HIGH,
        action_url="/checkout",
        action_text="Try Again",
        publisher=publisher,
    )


def notify_event_reminder(
    session: Session,
    *,
    user_id: str,
    event_name: str,
    event_time: datetime,
    event_location: str,
    now: datetime | None = None,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    time_until = describe_time_until(event_time, now)
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="event_reminder",
        title=f"Event Reminder: {event_name}",
        message=f"Don't forget! {event_name} is starting {time_until} at {event_location}",
        data={
            "event_name": event_name,
            "event_time": ensure_app_timezone(event_time).isoformat(),
            "event_location": event_location,
            "time_until": time_until,
        },
        action_url="/events",
        action_text="View Event",
        publisher=publisher,
    )


def notify_achievement_unlocked(
    session: Session,
    *,
    user_id: str,
    achievement_name: str,
    achievement_description: str,
    points_earned: int,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="achievement",
        title=f"Achievement Unlocked: {achievement_name}",
        message=(
            f"Congratulations! You've earned the {achievement_name} achievement "
            f"and {points_earned} points!"
        ),
        data={
            "achievement_name": achievement_name,
            "achievement_description": achievement_description,
            "points_earned": points_earned,
        },
        priority=PRIORITY_HIGH,
        action_url="/dashboard/achievements",
        action_text="View Achievement",
        publisher=publisher,
    )


def pro_plan_expiry_priority(days_until_expiry: int) -> str:
    if days_until_expiry <= 3:
        return PRIORITY_URGENT
    if days_until_expiry <= 7:
        return PRIORITY_HIGH
    return PRIORITY_NORMAL


def notify_pro_plan_expiry(
    session: Session,
    *,
    user_id: str,
    expiry_date: datetime,
    days_until_expiry: int,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    """Warn a subscriber that the Pro plan is about to lapse."""

    expiry = ensure_app_timezone(expiry_date)
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="system_alert",
        title="Pro Plan Expiring Soon",
        message=(
            f"Your Pro plan will expire on {expiry.date().isoformat()}. "
            "Renew now to continue enjoying premium features!"
        ),
        data={"expiry_date": expiry.isoformat(), "days_until_expiry": days_until_expiry},
        priority=pro_plan_expiry_priority(days_until_expiry),
        action_url="/subscription",
        action_text="Renew Now",
        publisher=publisher,
    )


def notify_promo_discount(
    session: Session,
    *,
    user_id: str,
    discount_percent: int,
    promo_code: str,
    valid_until: datetime,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    valid = ensure_app_timezone(valid_until)
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="promotion",
        title=f"Special Discount: {discount_percent}% Off",
        message=(
            f"Limited time offer! Get {discount_percent}% off on Pro plan upgrade. "
            f"Use code: {promo_code}. Valid until {valid.date().isoformat()}"
        ),
        data={
            "discount_percent": discount_percent,
            "promo_code": promo_code,
            "valid_until": valid.isoformat(),
        },
        action_url="/subscription",
        action_text="Get Discount",
        publisher=publisher,
    )


def notify_admin_announcement(
    session: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    priority: str = PRIORITY_NORMAL,
    publisher: ChangeFeedPublisher | None = None,
) -> str:
    return _persist_notification(
        session,
        user_id=user_id,
        type_name="admin_announcement",
        title=f"Announcement: {title}",
        message=message,
        data={"title": title, "message": message},
        priority=priority,
        publisher=publisher,
    )


def notify_multiple_users(
    session: Session,
    *,
    user_ids: Iterable[str],
    type_name: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    priority: str = PRIORITY_NORMAL,
    publisher: ChangeFeedPublisher | None = None,
) -> list[str]:
    """Create the same notification for every distinct user in ``user_ids``."""

    created: list[str] = []
    seen: set[str] = set()
    for user_id in user_ids:
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)
        created.append(
            _persist_notification(
                session,
                user_id=user_id,
                type_name=type_name,
                title=title,
                message=message,
                data=data,
                priority=priority,
                publisher=publisher,
            )
        )
    logger.info("Sent %s '%s' notifications", len(created), type_name)
    return created


__all__ = [
    "describe_time_until",
    "notify_achievement_unlocked",
    "notify_admin_announcement",
    "notify_book_sold",
    "notify_event_reminder",
    "notify_multiple_users",
    "notify_new_study_material",
    "notify_payment_approved",
    "notify_payment_rejected",
    "notify_pro_plan_expiry",
    "notify_promo_discount",
    "notify_purchase_request",
    "pro_plan_expiry_priority",
]
