"""Weather snapshot models produced by the provider client."""

from dataclasses import dataclass
from datetime import datetime

from weathersync.models.common import LocationId, Units


@dataclass(frozen=True)
class CurrentWeather:
    temperature: float | None = None
    apparent_temperature: float | None = None
    humidity: float | None = None
    precipitation: float | None = None
    weather_code: int | None = None
    weather_description: str = "Unknown"
    wind_speed: float | None = None


@dataclass(frozen=True)
class HourlyForecast:
    time: str
    temperature: float | None
    weather_code: int | None
    weather_description: str


@dataclass(frozen=True)
class DailyForecast:
    date: str  # YYYY-MM-DD
    temperature_max: float | None
    temperature_min: float | None
    weather_code: int | None
    weather_description: str


@dataclass(frozen=True)
class WeatherSnapshot:
    """One immutable fetch result.

    A shell fresh from the provider has no id, location_id or fetched_at.
    The sync engine stamps those via ``dataclasses.replace``.
    """

    current: CurrentWeather | None
    hourly: tuple[HourlyForecast, ...] = ()
    daily: tuple[DailyForecast, ...] = ()
    units: Units = Units.METRIC
    timezone: str = "UTC"
    id: int | None = None
    location_id: LocationId | None = None
    fetched_at: datetime | None = None
    conflict_detected: bool = False
    conflict_description: str | None = None

    @property
    def temperature(self) -> float | None:
        if self.current is None:
            return None
        return self.current.temperature


@dataclass(frozen=True)
class GeocodingResult:
    name: str
    country: str
    country_code: str
    latitude: float
    longitude: float
    admin1: str  # state / province
