"""SQLAlchemy model for persisted notifications."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, JSON, String, Text

from notifyhub.infrastructure.database import Base
from notifyhub.utils import now_in_app_naive_datetime


def _new_notification_id() -> str:
    return str(uuid4())


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=_new_notification_id)
    user_id = Column(String(64), nullable=False, index=True)
    type_name = Column(String(80), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    priority = Column(String(10), nullable=False, default="normal")
    category = Column(String(30), nullable=False, default="messages")
    icon = Column(String(32), nullable=True)
    color = Column(String(40), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    action_url = Column(String(500), nullable=True)
    action_text = Column(String(80), nullable=True)
    group_id = Column(String(64), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    read_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=True)
    archived_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationModel"]
