# src/deepbug/db/time.py
"""Time utilities for database models and expiry checks."""

from collections.abc import Callable
from datetime import UTC, datetime

# Seconds since the epoch; injected wherever expiry is evaluated.
Clock = Callable[[], float]


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends that drop the zone."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def from_timestamp(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, UTC)
