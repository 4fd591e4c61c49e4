"""SQLAlchemy models for notification types and per-user preferences."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from notifyhub.infrastructure.database import Base


class NotificationTypeModel(Base):
    """Catalog of notification categories a user can tune."""

    __tablename__ = "notification_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(80), nullable=False, unique=True)
    description = Column(String(255), nullable=False, default="")
    icon = Column(String(32), nullable=True)
    color = Column(String(40), nullable=True)
    category = Column(String(30), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class UserNotificationPreferenceModel(Base):
    """Delivery toggles for one user and notification type."""

    __tablename__ = "user_notification_preferences"
    __table_args__ = (
        UniqueConstraint("user_id", "type_id", name="uq_preference_user_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey("notification_types.id"), nullable=False)
    email_enabled = Column(Boolean, nullable=False, default=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    in_app_enabled = Column(Boolean, nullable=False, default=True)
    muted_until = Column(DateTime(), nullable=True)

    notification_type = relationship("NotificationTypeModel", lazy="joined")


__all__ = ["NotificationTypeModel", "UserNotificationPreferenceModel"]
