"""Common types and time helpers shared across models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import TypeAlias

LocationId: TypeAlias = str


class Units(StrEnum):
    METRIC = "metric"
    IMPERIAL = "imperial"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(dt: datetime | None) -> str | None:
    """Serialise a datetime as UTC ISO text with fixed microsecond width.

    The fixed width keeps lexical order equal to chronological order in SQLite.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_timestamp(iso_str: str | None) -> datetime | None:
    """Parse an ISO timestamp, assuming UTC when no offset is given."""
    if not iso_str:
        return None
    try:
        dt = datetime.fromisoformat(iso_str)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt
