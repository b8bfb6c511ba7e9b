"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field

from weathersync.models.common import Units


class LocationSeed(BaseModel):
    model_config = {"extra": "forbid"}

    name: str
    country: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    display_name: str | None = None
    favorite: bool = False


class ProviderConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = "https://api.open-meteo.com/v1"
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1"
    timeout_seconds: float = Field(default=10.0, gt=0.0, le=120.0)
    user_agent: str = "weathersync/0.1.0"


class SyncConfig(BaseModel):
    model_config = {"extra": "forbid"}

    interval_minutes: int = Field(default=30, ge=1)
    stale_threshold_minutes: int = Field(default=60, ge=1)
    max_workers: int = Field(default=4, ge=1, le=8)


class ConflictConfig(BaseModel):
    model_config = {"extra": "forbid"}

    threshold_degrees: float = Field(default=10.0, gt=0.0)
    window_hours: float = Field(default=6.0, gt=0.0)


class CacheConfig(BaseModel):
    model_config = {"extra": "forbid"}

    geocoding_ttl_seconds: int = Field(default=3600, ge=1)
    geocoding_max_entries: int = Field(default=256, ge=1)


class PreferencesConfig(BaseModel):
    model_config = {"extra": "forbid"}

    default_units: Units = Units.METRIC


class AppConfig(BaseModel):
    model_config = {"extra": "forbid"}

    provider: ProviderConfig = ProviderConfig()
    sync: SyncConfig = SyncConfig()
    conflict: ConflictConfig = ConflictConfig()
    cache: CacheConfig = CacheConfig()
    preferences: PreferencesConfig = PreferencesConfig()
    locations: list[LocationSeed] = []
