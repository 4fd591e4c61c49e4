"""Public helpers for storing, reading and emitting notifications."""

from .events import (
    describe_time_until,
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
from .preferences import (
    DEFAULT_NOTIFICATION_TYPES,
    list_notification_preferences,
    list_notification_types,
    mute_notifications,
    seed_notification_types,
    upsert_notification_preference,
)
from .procedures import (
    archive_old_notifications,
    create_notification,
    get_recent_notifications,
    get_unread_notification_count,
    mark_all_notifications_read,
    mark_notification_read,
)

__all__ = [
    "archive_old_notifications",
    "create_notification",
    "get_recent_notifications",
    "get_unread_notification_count",
    "mark_all_notifications_read",
    "mark_notification_read",
    "DEFAULT_NOTIFICATION_TYPES",
    "list_notification_preferences",
    "list_notification_types",
    "mute_notifications",
    "seed_notification_types",
    "upsert_notification_preference",
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
