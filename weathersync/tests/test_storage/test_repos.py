"""Tests for location, snapshot, preference and sync run repositories."""

import pytest

from weathersync.models.common import Units
from weathersync.models.location import SyncStatus
from weathersync.models.snapshot import (
    CurrentWeather,
    DailyForecast,
    HourlyForecast,
    WeatherSnapshot,
)
from weathersync.models.sync import SyncRunSummary
from weathersync.storage import preference_repo, sync_run_repo
from weathersync.storage.database import Database
from weathersync.storage.location_registry import LocationRegistry
from weathersync.storage.snapshot_store import SnapshotStore
from weathersync.tests.factories import at, make_location, make_snapshot


class TestLocationRegistry:
    def test_save_and_find(self, registry: LocationRegistry):
        loc = make_location(display_name="Vic Falls", favorite=True)
        registry.save(loc)

        found = registry.find_by_id("loc-vf")
        assert found is not None
        assert found.name == "Victoria Falls"
        assert found.country == "Zimbabwe"
        assert found.latitude == -17.9243
        assert found.display_name == "Vic Falls"
        assert found.favorite is True
        assert found.sync_status == SyncStatus.NEVER_SYNCED
        assert found.last_sync_at is None

    def test_find_missing(self, registry: LocationRegistry):
        assert registry.find_by_id("nope") is None

    def test_save_is_upsert_and_bumps_updated_at(self, registry: LocationRegistry):
        loc = make_location()
        loc.updated_at = at(1)
        registry.save(loc)
        loc.display_name = "The Smoke That Thunders"
        registry.save(loc)

        assert registry.count() == 1
        found = registry.find_by_id("loc-vf")
        assert found.display_name == "The Smoke That Thunders"
        assert found.updated_at > at(1)

    def test_find_all_ordered_by_name(self, registry: LocationRegistry):
        registry.save(make_location("3", "tokyo", "Japan"))
        registry.save(make_location("1", "Harare", "Zimbabwe"))
        registry.save(make_location("2", "London", "United Kingdom"))
        assert [loc.name for loc in registry.find_all()] == ["Harare", "London", "tokyo"]

    def test_favorites_and_search(self, registry: LocationRegistry):
        registry.save(make_location("1", "Harare", "Zimbabwe", favorite=True))
        registry.save(make_location("2", "London", "United Kingdom", display_name="Home"))
        registry.save(make_location("3", "New York", "United States"))

        assert [loc.id for loc in registry.find_favorites()] == ["1"]
        assert [loc.id for loc in registry.search_by_name("lon")] == ["2"]
        assert [loc.id for loc in registry.search_by_name("HOME")] == ["2"]
        assert registry.search_by_name("%") == []

    def test_exists_by_name_and_country(self, registry: LocationRegistry):
        registry.save(make_location())
        assert registry.exists_by_name_and_country("victoria falls", "ZIMBABWE")
        assert not registry.exists_by_name_and_country("Victoria Falls", "Zambia")

    def test_update_sync_status(self, registry: LocationRegistry):
        loc = make_location()
        registry.save(loc)

        loc.mark_success(at(12))
        assert registry.update_sync_status(loc) is True
        assert registry.find_by_id("loc-vf").last_sync_at == at(12)

        loc.mark_failed()
        loc.last_sync_at = None
        registry.update_sync_status(loc)
        found = registry.find_by_id("loc-vf")
        assert found.sync_status == SyncStatus.FAILED
        # Only a success moves the timestamp
        assert found.last_sync_at == at(12)
        assert registry.find_by_status(SyncStatus.FAILED)[0].id == "loc-vf"

    def test_update_sync_status_never_inserts(self, registry: LocationRegistry):
        loc = make_location()
        loc.mark_in_progress()
        assert registry.update_sync_status(loc) is False
        assert registry.find_by_id("loc-vf") is None

    def test_update_user_fields_leaves_sync_columns(self, registry: LocationRegistry):
        loc = make_location(display_name="Vic")
        loc.mark_success(at(12))
        registry.save(loc)

        assert registry.update_user_fields("loc-vf", favorite=True) is True
        found = registry.find_by_id("loc-vf")
        assert found.favorite is True
        assert found.display_name == "Vic"
        assert found.sync_status == SyncStatus.SUCCESS
        assert found.last_sync_at == at(12)

        registry.update_user_fields("loc-vf", display_name="Falls")
        found = registry.find_by_id("loc-vf")
        assert found.display_name == "Falls"
        assert found.favorite is True

        assert registry.update_user_fields("nope", favorite=True) is False
        assert registry.find_by_id("nope") is None

    def test_delete(self, registry: LocationRegistry):
        registry.save(make_location())
        assert registry.delete("loc-vf") is True
        assert registry.delete("loc-vf") is False
        assert registry.count() == 0


class TestSnapshotStore:
    def test_save_requires_stamp(self, snapshots: SnapshotStore):
        with pytest.raises(ValueError):
            snapshots.save(make_snapshot(20.0))

    def test_save_preserves_every_value(self, snapshots: SnapshotStore):
        snapshot = WeatherSnapshot(
            current=CurrentWeather(
                temperature=-3.25,
                apparent_temperature=-7.5,
                humidity=88.0,
                precipitation=1.2,
                weather_code=71,
                weather_description="Slight snow fall",
                wind_speed=19.4,
            ),
            hourly=(HourlyForecast("2024-11-05T00:00", -2.0, 71, "Slight snow fall"),),
            daily=(
                DailyForecast("2024-11-05", 0.5, -4.0, 71, "Slight snow fall"),
                DailyForecast("2024-11-06", None, None, None, "Unknown"),
            ),
            units=Units.IMPERIAL,
            timezone="Asia/Tokyo",
            location_id="loc-tyo",
            fetched_at=at(9, 15),
            conflict_detected=True,
            conflict_description="Temperature changed by 12.0 degrees",
        )

        saved = snapshots.save(snapshot)
        loaded = snapshots.find_latest_by_location("loc-tyo")

        assert saved.id is not None
        assert snapshot.id is None
        assert loaded == saved

    def test_snapshot_without_current(self, snapshots: SnapshotStore):
        snapshot = WeatherSnapshot(current=None, location_id="loc-vf", fetched_at=at(12))
        snapshots.save(snapshot)
        assert snapshots.find_latest_by_location("loc-vf").current is None

    def test_latest_and_pagination(self, snapshots: SnapshotStore):
        for hour in (9, 11, 10):
            snapshots.save(make_snapshot(float(hour), location_id="loc-vf", fetched_at=at(hour)))
        snapshots.save(make_snapshot(99.0, location_id="loc-other", fetched_at=at(23)))

        assert snapshots.find_latest_by_location("loc-vf").temperature == 11.0
        page = snapshots.find_by_location("loc-vf", page=0, size=2)
        assert [s.temperature for s in page] == [11.0, 10.0]
        assert snapshots.count_by_location("loc-vf") == 3
        assert snapshots.find_latest_by_location("missing") is None

    def test_delete_by_location(self, snapshots: SnapshotStore):
        for hour in (9, 10):
            snapshots.save(make_snapshot(1.0, location_id="loc-vf", fetched_at=at(hour)))
        snapshots.save(make_snapshot(1.0, location_id="loc-lon", fetched_at=at(9)))

        assert snapshots.delete_by_location("loc-vf") == 2
        assert snapshots.count_by_location("loc-vf") == 0
        assert snapshots.count_by_location("loc-lon") == 1


class TestPreferenceRepo:
    def test_create_and_update(self, db: Database):
        assert preference_repo.get_preferences(db) is None
        created = preference_repo.create_preferences(
            db,
            {
                "units": "metric",
                "refresh_interval_minutes": 30,
                "wind_speed_unit": "kmh",
                "precipitation_unit": "mm",
                "theme": "dark",
            },
        )
        assert created["user_id"] == "default"
        assert created["default_location_id"] is None

        updated = preference_repo.update_preferences(db, {"theme": "light"})
        assert updated["theme"] == "light"
        assert updated["units"] == "metric"

    def test_unknown_field_rejected(self, db: Database):
        with pytest.raises(KeyError):
            preference_repo.update_preferences(db, {"favorite_colour": "blue"})


class TestSyncRunRepo:
    def test_record_and_fetch(self, db: Database):
        assert sync_run_repo.get_latest_sync_run(db) is None

        sync_run_repo.record_sync_run(
            db, SyncRunSummary(trigger="all", total=5, succeeded=4, failed=1)
        )
        sync_run_repo.record_sync_run(
            db, SyncRunSummary(trigger="scheduled", total=2, succeeded=2, conflicts=1)
        )

        latest = sync_run_repo.get_latest_sync_run(db)
        assert latest["trigger"] == "scheduled"
        assert latest["conflicts"] == 1
        recent = sync_run_repo.get_recent_sync_runs(db, limit=10)
        assert [r["trigger"] for r in recent] == ["scheduled", "all"]
