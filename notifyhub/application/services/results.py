"""Tagged outcome of a backend request made by the notification client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Either a value (``ok``) or the reason the request failed."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "ServiceResult[T]":
        return cls(error=reason or "Unknown error")

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when the request failed or returned nothing."""

        if not self.ok or self.value is None:
            return default
        return self.value


__all__ = ["ServiceResult"]
