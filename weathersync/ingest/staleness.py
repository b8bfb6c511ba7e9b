"""Staleness checks for tracked locations."""

from datetime import UTC, datetime

from weathersync.models.location import TrackedLocation


def is_location_stale(
    location: TrackedLocation, max_age_minutes: int, now: datetime | None = None
) -> bool:
    """A location is stale when it never synced or its last sync is too old."""
    return is_stale(location.last_sync_at, max_age_minutes, now)


def is_stale(
    last_sync_at: datetime | None, max_age_minutes: int, now: datetime | None = None
) -> bool:
    return sync_age_minutes(last_sync_at, now) > max_age_minutes


def sync_age_minutes(
    last_sync_at: datetime | None, now: datetime | None = None
) -> float:
    """Minutes since the last sync, or infinity when never synced."""
    if last_sync_at is None:
        return float("inf")
    if now is None:
        now = datetime.now(UTC)
    if last_sync_at.tzinfo is None:
        last_sync_at = last_sync_at.replace(tzinfo=UTC)
    return (now - last_sync_at).total_seconds() / 60
