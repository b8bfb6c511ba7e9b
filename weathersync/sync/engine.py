"""Weather sync engine: fetch, detect conflicts, persist, update bookkeeping.

Per-location state machine:

    NEVER_SYNCED -> IN_PROGRESS -> SUCCESS | FAILED
    SUCCESS | FAILED -> IN_PROGRESS (next attempt)

Provider and persistence failures are recorded on the location and returned
as a failed SyncResult, so one bad location never aborts a batch. Only a
direct ``sync_one`` on an unknown id raises.

Concurrent on-demand and scheduled syncs of the same location are not
locked against each other; the last write of status/timestamp wins.
"""

import dataclasses
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from weathersync.config.schema import AppConfig, SyncConfig
from weathersync.errors import ErrorKind, NotFoundError, WeatherSyncError
from weathersync.ingest.geocoding_cache import GeocodingCache
from weathersync.ingest.provider_client import ProviderClient
from weathersync.ingest.staleness import is_location_stale
from weathersync.models.common import LocationId, utc_now
from weathersync.models.location import TrackedLocation
from weathersync.models.snapshot import GeocodingResult, WeatherSnapshot
from weathersync.models.sync import SyncResult, SyncRunSummary
from weathersync.services.preference_service import PreferenceService
from weathersync.storage import sync_run_repo
from weathersync.storage.database import Database
from weathersync.storage.location_registry import LocationRegistry
from weathersync.storage.snapshot_store import SnapshotStore
from weathersync.sync.conflict_detector import ConflictDetector

logger = logging.getLogger(__name__)

MAX_HISTORY_PAGE_SIZE = 100


class WeatherSyncEngine:
    def __init__(
        self,
        provider: ProviderClient,
        snapshots: SnapshotStore,
        registry: LocationRegistry,
        preferences: PreferenceService,
        detector: ConflictDetector | None = None,
        config: SyncConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        on_run_complete: Callable[[SyncRunSummary], object] | None = None,
    ):
        self.provider = provider
        self.snapshots = snapshots
        self.registry = registry
        self.preferences = preferences
        self.detector = detector or ConflictDetector()
        self.config = config or SyncConfig()
        self._clock = clock
        self._on_run_complete = on_run_complete

    # --- Sync operations ---

    def sync_one(self, location_id: LocationId) -> SyncResult:
        """Sync a single location on demand. Raises NotFoundError for unknown ids."""
        location = self.registry.find_by_id(location_id)
        if location is None:
            raise NotFoundError("Location", location_id)
        return self._perform_sync(location)

    def sync_all(self) -> list[SyncResult]:
        """Sync every tracked location, one result per location."""
        locations = self.registry.find_all()
        logger.info("Starting sync for %d locations", len(locations))
        return self._run_batch("all", locations)

    def scheduled_sync(self) -> list[SyncResult]:
        """Sync only stale locations. No provider calls when nothing is stale."""
        logger.info("Starting scheduled sync...")
        stale = self.stale_locations()
        if not stale:
            logger.info("No stale locations found. Skipping sync.")
            return []
        logger.info("Found %d stale locations to sync", len(stale))
        return self._run_batch("scheduled", stale)

    def stale_locations(self, now: datetime | None = None) -> list[TrackedLocation]:
        now = now or self._clock()
        return [loc for loc in self.registry.find_all() if self.is_stale(loc, now)]

    def is_stale(self, location: TrackedLocation, now: datetime | None = None) -> bool:
        return is_location_stale(
            location, self.config.stale_threshold_minutes, now or self._clock()
        )

    # --- Read operations ---

    def get_latest_weather(self, location_id: LocationId) -> WeatherSnapshot:
        snapshot = self.snapshots.find_latest_by_location(location_id)
        if snapshot is None:
            raise NotFoundError("Weather data", location_id)
        return snapshot

    def get_history(
        self, location_id: LocationId, page: int = 0, size: int = 10
    ) -> list[WeatherSnapshot]:
        """Paginated snapshot history, newest first."""
        if page < 0:
            raise ValueError("page must be >= 0")
        if not 1 <= size <= MAX_HISTORY_PAGE_SIZE:
            raise ValueError(f"size must be between 1 and {MAX_HISTORY_PAGE_SIZE}")
        return self.snapshots.find_by_location(location_id, page, size)

    def get_weather_in_range(
        self, location_id: LocationId, start: datetime, end: datetime
    ) -> list[WeatherSnapshot]:
        if start > end:
            raise ValueError("start must not be after end")
        return self.snapshots.find_in_range(location_id, start, end)

    def search_cities(self, query: str) -> list[GeocodingResult]:
        return self.provider.search_locations(query)

    # --- Internals ---

    def _run_batch(self, trigger: str, locations: list[TrackedLocation]) -> list[SyncResult]:
        start = time.monotonic()
        workers = min(self.config.max_workers, len(locations))
        if workers <= 1:
            results = [self._perform_sync(loc) for loc in locations]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sync") as pool:
                results = list(pool.map(self._perform_sync, locations))

        summary = SyncRunSummary.from_results(trigger, results, time.monotonic() - start)
        logger.info(
            "Sync complete: %d/%d successful (%d conflicts, %d rate limited)",
            summary.succeeded, summary.total, summary.conflicts, summary.rate_limited,
        )
        if self._on_run_complete is not None:
            try:
                self._on_run_complete(summary)
            except Exception:
                logger.exception("Failed to record %s sync run", trigger)
        return results

    def _perform_sync(self, location: TrackedLocation) -> SyncResult:
        try:
            location.mark_in_progress()
            if not self.registry.update_sync_status(location):
                raise NotFoundError("Location", location.id)

            units = self.preferences.effective_units()
            shell = self.provider.fetch_weather(location.latitude, location.longitude, units)

            previous = self.snapshots.find_latest_by_location(location.id)
            now = self._clock()
            conflict = self.detector.detect(previous, shell, now)
            if conflict.conflict_detected:
                logger.warning(
                    "Conflict detected for location %s: %s", location.id, conflict.description
                )

            snapshot = dataclasses.replace(
                shell,
                location_id=location.id,
                fetched_at=now,
                conflict_detected=conflict.conflict_detected,
                conflict_description=conflict.description,
            )
            saved = self.snapshots.save(snapshot)

            location.mark_success(now)
            if not self.registry.update_sync_status(location):
                # Deleted while we were fetching; drop the orphaned snapshot
                self.snapshots.delete_by_location(location.id)
                raise NotFoundError("Location", location.id)

            logger.info(
                "Successfully synced weather for: %s (snapshot %s)", location.name, saved.id
            )
            return SyncResult(
                location_id=location.id,
                location_name=location.name,
                success=True,
                message="Weather data synced successfully",
                synced_at=now,
                conflict_detected=conflict.conflict_detected,
                conflict_description=conflict.description,
            )

        except WeatherSyncError as e:
            logger.error("Failed to sync weather for %s: %s", location.name, e.message)
            return self._fail(location, e.message, e.kind)
        except Exception as e:
            logger.exception("Unexpected error syncing weather for %s", location.name)
            return self._fail(location, str(e), None)

    def _fail(
        self, location: TrackedLocation, message: str, kind: ErrorKind | None
    ) -> SyncResult:
        location.mark_failed()
        try:
            self.registry.update_sync_status(location)
        except Exception:
            logger.exception("Could not record FAILED status for %s", location.id)
        return SyncResult(
            location_id=location.id,
            location_name=location.name,
            success=False,
            message=f"Sync failed: {message}",
            synced_at=self._clock(),
            conflict_detected=False,
            error_kind=kind,
        )


def build_engine(config: AppConfig, db: Database) -> WeatherSyncEngine:
    """Wire an engine and its collaborators from config."""
    cache = GeocodingCache(
        ttl_seconds=config.cache.geocoding_ttl_seconds,
        max_entries=config.cache.geocoding_max_entries,
    )
    provider = ProviderClient(
        base_url=config.provider.base_url,
        geocoding_url=config.provider.geocoding_url,
        timeout=config.provider.timeout_seconds,
        user_agent=config.provider.user_agent,
        cache=cache,
    )
    return WeatherSyncEngine(
        provider=provider,
        snapshots=SnapshotStore(db),
        registry=LocationRegistry(db),
        preferences=PreferenceService(db, config.preferences.default_units),
        detector=ConflictDetector(
            threshold_degrees=config.conflict.threshold_degrees,
            window_hours=config.conflict.window_hours,
        ),
        config=config.sync,
        on_run_complete=lambda summary: sync_run_repo.record_sync_run(db, summary),
    )
