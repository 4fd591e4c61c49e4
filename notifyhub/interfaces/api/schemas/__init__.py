from .notification import (
    ArchiveRequest,
    ArchiveResponse,
    MarkAllReadResponse,
    MuteRequest,
    MuteResponse,
    NotificationCreate,
    NotificationCreated,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    NotificationTypeRead,
    UnreadCountRead,
)

__all__ = [
    "ArchiveRequest",
    "ArchiveResponse",
    "MarkAllReadResponse",
    "MuteRequest",
    "MuteResponse",
    "NotificationCreate",
    "NotificationCreated",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
    "NotificationRead",
    "NotificationTypeRead",
    "UnreadCountRead",
]
