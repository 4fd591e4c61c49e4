"""Backend collaborator contract consumed by the notification client."""

from .client import (
    BackendClient,
    BackendError,
    BackendUser,
    ChangeCallback,
    RealtimeChannel,
    StatusCallback,
)

__all__ = [
    "BackendClient",
    "BackendError",
    "BackendUser",
    "ChangeCallback",
    "RealtimeChannel",
    "StatusCallback",
]
