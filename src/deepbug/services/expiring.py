"""Lazy expiry shared by sessions and bans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ExpiringRecord(Generic[T]):
    """A value that stops existing once ``expires_at`` (epoch seconds) has passed.

    ``expires_at=None`` never expires. Nothing sweeps these records; callers check
    on read and clean up the backing store themselves when ``get`` returns None.
    """

    value: T
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def get(self, now: float) -> T | None:
        if self.is_expired(now):
            return None
        return self.value
