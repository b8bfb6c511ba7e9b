"""Shared test fixtures."""

import json
from pathlib import Path

import pytest
import yaml

from weathersync.config.schema import AppConfig
from weathersync.storage.database import Database
from weathersync.storage.location_registry import LocationRegistry
from weathersync.storage.snapshot_store import SnapshotStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def db(tmp_path: Path):
    """A migrated temporary database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def registry(db: Database) -> LocationRegistry:
    return LocationRegistry(db)


@pytest.fixture
def snapshots(db: Database) -> SnapshotStore:
    return SnapshotStore(db)


@pytest.fixture
def default_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "sync": {"interval_minutes": 15, "stale_threshold_minutes": 45},
        "conflict": {"threshold_degrees": 8.0},
        "preferences": {"default_units": "imperial"},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def forecast_body() -> dict:
    with open(FIXTURES_DIR / "open_meteo_forecast.json") as f:
        return json.load(f)


@pytest.fixture
def geocoding_body() -> dict:
    with open(FIXTURES_DIR / "open_meteo_geocoding.json") as f:
        return json.load(f)

