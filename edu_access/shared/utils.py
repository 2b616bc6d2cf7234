"""Small helpers shared across layers: identifiers and UTC time."""
from datetime import UTC, datetime

from cuid2 import cuid_wrapper

_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """Collision-resistant id used as primary key for non-structural rows"""
    value = _cuid()
    assert isinstance(value, str)
    return value


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime to aware UTC.

    Some drivers (SQLite) hand back naive datetimes for timezone-aware
    columns; those are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
