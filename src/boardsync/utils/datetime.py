"""Timestamp helpers for the ``created_at`` wire format.

Rows carry ISO 8601 strings. Naive values (e.g. from a hand-written YAML
seed) are taken to be UTC so that timestamps from every source compare.
"""

from datetime import UTC, datetime


def now_utc() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso(dt: datetime) -> str:
    return ensure_utc(dt).isoformat()


def from_iso(value: str) -> datetime:
    """Parse a ``created_at`` string, accepting a trailing ``Z``."""
    return ensure_utc(datetime.fromisoformat(value))


def timestamp() -> str:
    """Current time as a wire timestamp."""
    return to_iso(now_utc())
