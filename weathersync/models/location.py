"""Tracked location model and its sync status."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from weathersync.models.common import LocationId, utc_now


class SyncStatus(StrEnum):
    NEVER_SYNCED = "NEVER_SYNCED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass
class TrackedLocation:
    id: LocationId
    name: str
    country: str
    latitude: float
    longitude: float
    display_name: str | None = None
    favorite: bool = False
    last_sync_at: datetime | None = None
    sync_status: SyncStatus = SyncStatus.NEVER_SYNCED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        self.sync_status = SyncStatus(self.sync_status)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def mark_in_progress(self) -> None:
        self.sync_status = SyncStatus.IN_PROGRESS

    def mark_success(self, synced_at: datetime) -> None:
        self.last_sync_at = synced_at
        self.sync_status = SyncStatus.SUCCESS

    def mark_failed(self) -> None:
        # last_sync_at keeps pointing at the last successful fetch
        self.sync_status = SyncStatus.FAILED
