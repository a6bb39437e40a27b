"""Client-scoped session slots for users and administrators.

Each client (browser) owns two independent slots, one for a signed-in user and
one for a signed-in administrator. A slot holds at most one JSON-encoded
``SessionRecord`` in a key-value store; expired records are dropped on read.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import redis
from pydantic import BaseModel, ValidationError

from deepbug.core.settings import settings
from deepbug.db.time import Clock
from deepbug.services.expiring import ExpiringRecord

logger = logging.getLogger(__name__)

USER_SESSION_KEY = "deepbug_session"
ADMIN_SESSION_KEY = "deepbug_admin_session"


class SessionRecord(BaseModel):
    """Persisted session payload; times are epoch seconds."""

    subject_id: str
    subject_data: dict[str, Any]
    issued_at: float
    expires_at: float


class KeyValueStorage(Protocol):
    """Minimal string key-value interface the session slots rely on."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage; sessions vanish with the process.

    Entries expire ``ttl_seconds`` after their last write, mirroring the Redis
    ``ex=`` expiry. Expired entries are pruned on every write, so keys of
    clients that never return do not accumulate.
    """

    def __init__(self, *, ttl_seconds: int | None = None, clock: Clock = time.time) -> None:
        self._data: dict[str, ExpiringRecord[str]] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._data)

    def _prune(self, now: float) -> None:
        expired = [key for key, entry in self._data.items() if entry.is_expired(now)]
        for key in expired:
            del self._data[key]

    def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value = entry.get(self._clock())
        if value is None:
            del self._data[key]
        return value

    def set(self, key: str, value: str) -> None:
        now = self._clock()
        self._prune(now)
        expires_at = now + self._ttl_seconds if self._ttl_seconds is not None else None
        self._data[key] = ExpiringRecord(value, expires_at)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStorage:
    """Redis-backed storage shared by every worker process."""

    def __init__(self, client: redis.Redis, *, ttl_seconds: int | None = None) -> None:
        self._redis = client
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, *, ttl_seconds: int | None = None) -> RedisStorage:
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)

    def get(self, key: str) -> str | None:
        value = self._redis.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        # Redis expiry only reclaims space; the record's own expires_at decides validity.
        self._redis.set(key, value, ex=self._ttl_seconds)

    def delete(self, key: str) -> None:
        self._redis.delete(key)


class SessionSlot:
    """One named slot holding at most one session record."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        *,
        timeout_seconds: int,
        clock: Clock = time.time,
    ) -> None:
        self._storage = storage
        self.key = key
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def set(self, subject_id: str, subject_data: dict[str, Any]) -> SessionRecord:
        now = self._clock()
        record = SessionRecord(
            subject_id=subject_id,
            subject_data=subject_data,
            issued_at=now,
            expires_at=now + self._timeout_seconds,
        )
        self._storage.set(self.key, record.model_dump_json())
        return record

    def get(self) -> SessionRecord | None:
        raw = self._storage.get(self.key)
        if raw is None:
            return None

        try:
            record = SessionRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session under %s", self.key)
            self.clear()
            return None

        live = ExpiringRecord(record, record.expires_at).get(self._clock())
        if live is None:
            self.clear()
        return live

    def clear(self) -> None:
        self._storage.delete(self.key)

    def is_valid(self) -> bool:
        return self.get() is not None


class SessionStore:
    """The user and admin slots of one client."""

    def __init__(
        self,
        storage: KeyValueStorage,
        namespace: str = "",
        *,
        timeout_seconds: int | None = None,
        clock: Clock = time.time,
    ) -> None:
        timeout = timeout_seconds if timeout_seconds is not None else settings.session_timeout_seconds
        prefix = f"{namespace}:" if namespace else ""
        self.user = SessionSlot(
            storage, f"{prefix}{USER_SESSION_KEY}", timeout_seconds=timeout, clock=clock
        )
        self.admin = SessionSlot(
            storage, f"{prefix}{ADMIN_SESSION_KEY}", timeout_seconds=timeout, clock=clock
        )

    def set_user_session(self, user_id: str, user_data: dict[str, Any]) -> SessionRecord:
        return self.user.set(user_id, user_data)

    def get_user_session(self) -> SessionRecord | None:
        return self.user.get()

    def clear_user_session(self) -> None:
        self.user.clear()

    def is_valid_session(self) -> bool:
        return self.user.is_valid()

    def set_admin_session(self, admin_id: str, admin_data: dict[str, Any]) -> SessionRecord:
        return self.admin.set(admin_id, admin_data)

    def get_admin_session(self) -> SessionRecord | None:
        return self.admin.get()

    def clear_admin_session(self) -> None:
        self.admin.clear()

    def is_valid_admin_session(self) -> bool:
        return self.admin.is_valid()


_storage: KeyValueStorage | None = None


def get_session_storage() -> KeyValueStorage:
    """Return the process-wide session storage selected by ``SESSION_BACKEND``."""
    global _storage
    if _storage is None:
        if settings.session_backend == "redis":
            _storage = RedisStorage.from_url(
                settings.redis_url,
                ttl_seconds=settings.session_timeout_seconds,
            )
        else:
            _storage = MemoryStorage(ttl_seconds=settings.session_timeout_seconds)
    return _storage
