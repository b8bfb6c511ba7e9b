"""Location CRUD with duplicate detection and cascading delete."""

import logging
import sqlite3
import uuid

from weathersync.errors import DuplicateError, NotFoundError
from weathersync.models.common import LocationId
from weathersync.models.location import SyncStatus, TrackedLocation
from weathersync.storage.location_registry import LocationRegistry
from weathersync.storage.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class LocationService:
    def __init__(self, registry: LocationRegistry, snapshots: SnapshotStore):
        self.registry = registry
        self.snapshots = snapshots

    def create_location(
        self,
        name: str,
        country: str,
        latitude: float,
        longitude: float,
        display_name: str | None = None,
        favorite: bool = False,
    ) -> TrackedLocation:
        name, country = name.strip(), country.strip()
        if not name or not country:
            raise ValueError("name and country are required")
        logger.info("Creating location: %s, %s", name, country)
        if self.registry.exists_by_name_and_country(name, country):
            raise DuplicateError("Location", f"{name}, {country}")

        location = TrackedLocation(
            id=uuid.uuid4().hex,
            name=name,
            country=country,
            latitude=latitude,
            longitude=longitude,
            display_name=display_name,
            favorite=favorite,
            sync_status=SyncStatus.NEVER_SYNCED,
        )
        try:
            self.registry.save(location)
        except sqlite3.IntegrityError as e:
            # Lost a race with a concurrent create of the same place
            raise DuplicateError("Location", f"{name}, {country}") from e
        logger.info("Location created with ID: %s", location.id)
        return location

    def get_all(self) -> list[TrackedLocation]:
        return self.registry.find_all()

    def get(self, location_id: LocationId) -> TrackedLocation:
        location = self.registry.find_by_id(location_id)
        if location is None:
            raise NotFoundError("Location", location_id)
        return location

    def get_favorites(self) -> list[TrackedLocation]:
        return self.registry.find_favorites()

    def search(self, query: str) -> list[TrackedLocation]:
        return self.registry.search_by_name(query)

    def update_location(
        self,
        location_id: LocationId,
        display_name: str | None = None,
        favorite: bool | None = None,
    ) -> TrackedLocation:
        """User edits touch only the display name and favorite flag.

        Sync status and timestamp belong to the sync engine and are left as
        they are in the database.
        """
        if not self.registry.update_user_fields(location_id, display_name, favorite):
            raise NotFoundError("Location", location_id)
        logger.info("Location updated: %s", location_id)
        return self.get(location_id)

    def delete_location(self, location_id: LocationId) -> int:
        """Delete a location and all its snapshots. Returns snapshots removed.

        The row goes first, so an in-flight sync finds it missing when it
        records its result and drops its own snapshot.
        """
        location = self.get(location_id)
        with self.registry.db.transaction():
            self.registry.delete(location_id)
            deleted = self.snapshots.delete_by_location(location_id)
        logger.info("Deleted %d weather snapshots for location %s", deleted, location_id)
        logger.info("Location deleted: %s (%s)", location.name, location_id)
        return deleted
