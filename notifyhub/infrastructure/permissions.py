"""Bridges to the platform's native notification permission API."""

from __future__ import annotations

import logging
from typing import Any, Final, Protocol

logger = logging.getLogger(__name__)

PERMISSION_DEFAULT: Final[str] = "default"
PERMISSION_GRANTED: Final[str] = "granted"
PERMISSION_DENIED: Final[str] = "denied"


class PermissionBridge(Protocol):
    """Native notification capability of the host platform."""

    @property
    def supported(self) -> bool: ...

    @property
    def permission(self) -> str: ...

    async def request_permission(self) -> str: ...

    def show(
        self,
        title: str,
        *,
        body: str,
        tag: str,
        icon: str,
        require_interaction: bool,
        data: dict[str, Any],
    ) -> None: ...


class HeadlessPermissionBridge:
    """Platform without native notifications (servers, workers, tests)."""

    supported = False
    permission = PERMISSION_DENIED

    async def request_permission(self) -> str:
        return PERMISSION_DENIED

    def show(self, title: str, **_options: Any) -> None:
        return None


class LoggingPermissionBridge:
    """Grants on request and writes native notifications to the log."""

    supported = True

    def __init__(self, permission: str = PERMISSION_DEFAULT) -> None:
        self.permission = permission

    async def request_permission(self) -> str:
        if self.permission == PERMISSION_DEFAULT:
            self.permission = PERMISSION_GRANTED
        return self.permission

    def show(
        self,
        title: str,
        *,
        body: str,
        tag: str,
        icon: str,
        require_interaction: bool,
        data: dict[str, Any],
    ) -> None:
        logger.info(
            "[notification %s]%s %s: %s",
            tag,
            " (sticky)" if require_interaction else "",
            title,
            body,
        )


__all__ = [
    "HeadlessPermissionBridge",
    "LoggingPermissionBridge",
    "PERMISSION_DEFAULT",
    "PERMISSION_DENIED",
    "PERMISSION_GRANTED",
    "PermissionBridge",
]
