"""Contract the notification client expects from the backend platform."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, Sequence

StatusCallback = Callable[[str, "BaseException | None"], None]
ChangeCallback = Callable[[dict[str, Any]], None]


class BackendError(Exception):
    """Raised when a backend call is rejected or cannot be completed."""


@dataclass(frozen=True)
class BackendUser:
    """Identity of the authenticated session."""

    id: str
    role: str | None = None

    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"


class RealtimeChannel(Protocol):
    """Subscription to a filtered stream of row changes."""

    name: str

    def on(
        self,
        event: str,
        *,
        table: str,
        filter: str | None = None,
        callback: ChangeCallback,
    ) -> "RealtimeChannel": ...

    async def subscribe(self, callback: StatusCallback | None = None) -> "RealtimeChannel": ...


class BackendClient(Protocol):
    """Authenticated access to remote procedures, tables and the change feed."""

    async def get_user(self) -> BackendUser | None: ...

    async def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Any: ...

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
    ) -> Sequence[dict[str, Any]]: ...

    async def upsert(self, table: str, row: Mapping[str, Any]) -> None: ...

    def channel(self, name: str) -> RealtimeChannel: ...

    async def remove_channel(self, channel: RealtimeChannel) -> None: ...


__all__ = [
    "BackendClient",
    "BackendError",
    "BackendUser",
    "ChangeCallback",
    "RealtimeChannel",
    "StatusCallback",
]
