"""Backend implementations usable by the notification client."""

from .local import LocalBackendClient, LocalRealtimeChannel

__all__ = ["LocalBackendClient", "LocalRealtimeChannel"]
