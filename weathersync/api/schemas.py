"""Request and response DTOs for the JSON API (camelCase on the wire)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from weathersync.models.common import Units
from weathersync.models.location import TrackedLocation
from weathersync.models.snapshot import GeocodingResult, WeatherSnapshot
from weathersync.models.sync import SyncResult


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CurrentWeatherResponse(ApiModel):
    temperature: float | None
    apparent_temperature: float | None
    humidity: float | None
    precipitation: float | None
    weather_code: int | None
    weather_description: str
    wind_speed: float | None


class HourlyForecastResponse(ApiModel):
    time: str
    temperature: float | None
    weather_code: int | None
    weather_description: str


class DailyForecastResponse(ApiModel):
    date: str
    temperature_max: float | None
    temperature_min: float | None
    weather_code: int | None
    weather_description: str


class SnapshotResponse(ApiModel):
    id: int | None
    location_id: str | None
    current: CurrentWeatherResponse | None
    hourly_forecast: list[HourlyForecastResponse]
    daily_forecast: list[DailyForecastResponse]
    units: Units
    timezone: str
    fetched_at: datetime | None
    conflict_detected: bool
    conflict_description: str | None

    @classmethod
    def from_snapshot(cls, snapshot: WeatherSnapshot) -> "SnapshotResponse":
        c = snapshot.current
        return cls(
            id=snapshot.id,
            location_id=snapshot.location_id,
            current=None if c is None else CurrentWeatherResponse(
                temperature=c.temperature,
                apparent_temperature=c.apparent_temperature,
                humidity=c.humidity,
                precipitation=c.precipitation,
                weather_code=c.weather_code,
                weather_description=c.weather_description,
                wind_speed=c.wind_speed,
            ),
            hourly_forecast=[
                HourlyForecastResponse(
                    time=h.time,
                    temperature=h.temperature,
                    weather_code=h.weather_code,
                    weather_description=h.weather_description,
                )
                for h in snapshot.hourly
            ],
            daily_forecast=[
                DailyForecastResponse(
                    date=d.date,
                    temperature_max=d.temperature_max,
                    temperature_min=d.temperature_min,
                    weather_code=d.weather_code,
                    weather_description=d.weather_description,
                )
                for d in snapshot.daily
            ],
            units=snapshot.units,
            timezone=snapshot.timezone,
            fetched_at=snapshot.fetched_at,
            conflict_detected=snapshot.conflict_detected,
            conflict_description=snapshot.conflict_description,
        )


class SyncResponse(ApiModel):
    location_id: str
    location_name: str
    success: bool
    message: str
    synced_at: datetime
    conflict_detected: bool
    conflict_description: str | None
    error_code: str | None = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        return cls(
            location_id=result.location_id,
            location_name=result.location_name,
            success=result.success,
            message=result.message,
            synced_at=result.synced_at,
            conflict_detected=result.conflict_detected,
            conflict_description=result.conflict_description,
            error_code=None if result.error_kind is None else result.error_kind.value,
        )


class LocationCreateRequest(ApiModel):
    name: str = Field(min_length=1)
    country: str = Field(min_length=1)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    display_name: str | None = None
    favorite: bool = False


class LocationUpdateRequest(ApiModel):
    display_name: str | None = None
    favorite: bool | None = None


class LocationResponse(ApiModel):
    id: str
    name: str
    country: str
    latitude: float
    longitude: float
    display_name: str | None
    favorite: bool
    last_sync_at: datetime | None
    sync_status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_location(cls, location: TrackedLocation) -> "LocationResponse":
        return cls(
            id=location.id,
            name=location.name,
            country=location.country,
            latitude=location.latitude,
            longitude=location.longitude,
            display_name=location.display_name,
            favorite=location.favorite,
            last_sync_at=location.last_sync_at,
            sync_status=location.sync_status.value,
            created_at=location.created_at,
            updated_at=location.updated_at,
        )


class GeocodingResponse(ApiModel):
    name: str
    country: str
    country_code: str
    latitude: float
    longitude: float
    admin1: str

    @classmethod
    def from_result(cls, result: GeocodingResult) -> "GeocodingResponse":
        return cls(
            name=result.name,
            country=result.country,
            country_code=result.country_code,
            latitude=result.latitude,
            longitude=result.longitude,
            admin1=result.admin1,
        )


class PreferenceResponse(ApiModel):
    user_id: str
    units: Units
    refresh_interval_minutes: int
    wind_speed_unit: str
    precipitation_unit: str
    default_location_id: str | None
    theme: str
    created_at: datetime
    updated_at: datetime


class PreferenceUpdateRequest(ApiModel):
    units: Units | None = None
    refresh_interval_minutes: int | None = Field(default=None, ge=0)
    wind_speed_unit: str | None = None
    precipitation_unit: str | None = None
    default_location_id: str | None = None
    theme: str | None = None
