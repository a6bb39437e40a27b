"""Login throttling with fixed lockout windows.

Each identifier (an email, or ``admin_<email>`` for the admin surface) gets a
counter of attempts. Once the counter reaches the configured maximum the next
attempt locks the identifier out for the lockout duration; the first attempt
after the lockout expires starts a fresh window.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock

from deepbug.core.settings import settings
from deepbug.db.time import Clock

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    last_attempt: float
    locked_until: float | None = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Answer to "may this identifier try again now?"."""

    allowed: bool
    remaining_seconds: int | None = None


class RateLimitTable:
    """Mutable identifier -> record mapping owned by a single limiter."""

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self.lock = Lock()

    def get(self, identifier: str) -> RateLimitRecord | None:
        return self._records.get(identifier)

    def put(self, identifier: str, record: RateLimitRecord) -> None:
        self._records[identifier] = record

    def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._records


class RateLimiter:
    """Fixed-window attempt counter with lockout, keyed by identifier."""

    def __init__(
        self,
        table: RateLimitTable | None = None,
        *,
        max_attempts: int | None = None,
        lockout_seconds: int | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.table = table if table is not None else RateLimitTable()
        self.max_attempts = max_attempts if max_attempts is not None else settings.max_login_attempts
        self.lockout_seconds = (
            lockout_seconds if lockout_seconds is not None else settings.lockout_duration_seconds
        )
        self._clock = clock

    def check(self, identifier: str) -> RateLimitDecision:
        """Record an attempt for ``identifier`` and decide whether it may proceed."""
        now = self._clock()
        with self.table.lock:
            record = self.table.get(identifier)

            if record is None:
                self.table.put(identifier, RateLimitRecord(count=1, last_attempt=now))
                return RateLimitDecision(allowed=True)

            if record.locked_until is not None and now < record.locked_until:
                return RateLimitDecision(
                    allowed=False,
                    remaining_seconds=math.ceil(record.locked_until - now),
                )

            if record.locked_until is not None:
                # Lockout served; start a fresh window.
                self.table.put(identifier, RateLimitRecord(count=1, last_attempt=now))
                return RateLimitDecision(allowed=True)

            if record.count >= self.max_attempts:
                record.locked_until = now + self.lockout_seconds
                logger.warning("Locking out %s for %d seconds", identifier, self.lockout_seconds)
                return RateLimitDecision(allowed=False, remaining_seconds=self.lockout_seconds)

            record.count += 1
            record.last_attempt = now
            return RateLimitDecision(allowed=True)

    def reset(self, identifier: str) -> None:
        """Forget every attempt for ``identifier`` (called after a successful login)."""
        with self.table.lock:
            self.table.delete(identifier)


def admin_identifier(email: str) -> str:
    """Namespace admin attempts so they never share a counter with user attempts."""
    return f"admin_{email}"


_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide rate limiter."""
    return _rate_limiter
