"""Open-Meteo forecast and geocoding client with domain error translation."""

import logging
from typing import Any

import httpx

from weathersync.errors import (
    InvalidCityError,
    InvalidResponseError,
    ProviderUnavailableError,
    RateLimitedError,
)
from weathersync.ingest.geocoding_cache import GeocodingCache
from weathersync.ingest.weather_codes import describe
from weathersync.models.common import Units
from weathersync.models.snapshot import (
    CurrentWeather,
    DailyForecast,
    GeocodingResult,
    HourlyForecast,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)

FORECAST_BASE_URL = "https://api.open-meteo.com/v1"
GEOCODING_BASE_URL = "https://geocoding-api.open-meteo.com/v1"
DEFAULT_USER_AGENT = "weathersync/0.1.0"

FORECAST_API = "Open-Meteo"
GEOCODING_API = "Open-Meteo Geocoding"

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,"
    "precipitation,weather_code,wind_speed_10m"
)
HOURLY_FIELDS = "temperature_2m,weather_code"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min"
GEOCODING_RESULT_COUNT = 10


def unit_params(units: Units | str) -> dict[str, str]:
    """Provider unit parameters for an effective unit system."""
    if Units(units) == Units.METRIC:
        return {
            "temperature_unit": "celsius",
            "wind_speed_unit": "kmh",
            "precipitation_unit": "mm",
        }
    return {
        "temperature_unit": "fahrenheit",
        "wind_speed_unit": "mph",
        "precipitation_unit": "inch",
    }


class ProviderClient:
    def __init__(
        self,
        base_url: str = FORECAST_BASE_URL,
        geocoding_url: str = GEOCODING_BASE_URL,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        cache: GeocodingCache | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.geocoding_url = geocoding_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.cache = cache

    def fetch_weather(
        self, latitude: float, longitude: float, units: Units | str
    ) -> WeatherSnapshot:
        """Fetch current, hourly and daily weather for a coordinate.

        Returns a snapshot shell without location id or fetch time.
        """
        units = Units(units)
        params: dict[str, Any] = {
            "latitude": latitude,
            "longitude": longitude,
            "current": CURRENT_FIELDS,
            "hourly": HOURLY_FIELDS,
            "daily": DAILY_FIELDS,
            **unit_params(units),
            "timezone": "auto",
        }
        logger.info(
            "Fetching weather for lat=%s, lon=%s, units=%s",
            latitude, longitude, units.value,
        )
        body = self._get_json(f"{self.base_url}/forecast", params, FORECAST_API)
        return parse_weather_response(body, units)

    def search_locations(self, query: str) -> list[GeocodingResult]:
        """Geocode a free-text city name. Results are cached per query."""
        if not query or not query.strip():
            raise InvalidCityError(query or "")

        if self.cache is not None:
            cached = self.cache.get(query)
            if cached is not None:
                logger.debug("Geocoding cache hit for %r", query)
                return list(cached)

        logger.info("Searching locations for: %s", query)
        params = {
            "name": query.strip(),
            "count": GEOCODING_RESULT_COUNT,
            "language": "en",
            "format": "json",
        }
        body = self._get_json(f"{self.geocoding_url}/search", params, GEOCODING_API)
        results = parse_geocoding_response(body)
        if not results:
            raise InvalidCityError(query)

        if self.cache is not None:
            self.cache.put(query, tuple(results))
        return results

    def ping(self) -> bool:
        """Cheap reachability probe. Never raises."""
        try:
            resp = httpx.get(
                f"{self.base_url}/forecast",
                params={"latitude": 0, "longitude": 0, "current": "temperature_2m"},
                headers=self._headers(),
                timeout=self.timeout,
            )
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}

    def _get_json(self, url: str, params: dict[str, Any], api_name: str) -> dict:
        try:
            resp = httpx.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            logger.error("%s request timed out after %.1fs: %s", api_name, self.timeout, url)
            raise ProviderUnavailableError(api_name, f"Timeout: {e}") from e
        except httpx.RequestError as e:
            logger.error("%s request failed: %s -> %s", api_name, url, e)
            raise ProviderUnavailableError(api_name, f"Network failure: {e}") from e

        status = resp.status_code
        if status == 429:
            logger.warning("%s rate limited the request: %s", api_name, url)
            raise RateLimitedError(api_name, resp.headers.get("Retry-After"))
        if 400 <= status < 500:
            logger.error("%s %d: %s -> %s", api_name, status, url, resp.text)
            raise InvalidResponseError(api_name, f"Client error {status}: {resp.text}", status)
        if status >= 500:
            logger.error("%s %d: %s -> %s", api_name, status, url, resp.text)
            raise ProviderUnavailableError(api_name, f"Server error {status}: {resp.text}", status)

        if not resp.content or not resp.content.strip():
            raise ProviderUnavailableError(api_name, "Empty response received", status)
        try:
            body = resp.json()
        except ValueError as e:
            raise ProviderUnavailableError(api_name, f"Unparseable response: {e}", status) from e
        if not isinstance(body, dict):
            raise ProviderUnavailableError(api_name, "Unexpected response shape", status)
        return body


def parse_weather_response(body: dict, units: Units | str) -> WeatherSnapshot:
    """Shape a forecast response into a snapshot shell."""
    current_node = body.get("current")
    current = None
    if isinstance(current_node, dict):
        code = _int(current_node, "weather_code")
        current = CurrentWeather(
            temperature=_float(current_node, "temperature_2m"),
            apparent_temperature=_float(current_node, "apparent_temperature"),
            humidity=_float(current_node, "relative_humidity_2m"),
            precipitation=_float(current_node, "precipitation"),
            weather_code=code,
            weather_description=describe(code),
            wind_speed=_float(current_node, "wind_speed_10m"),
        )

    hourly: list[HourlyForecast] = []
    hourly_node = body.get("hourly")
    if isinstance(hourly_node, dict):
        times = hourly_node.get("time") or []
        temps = hourly_node.get("temperature_2m") or []
        codes = hourly_node.get("weather_code") or []
        for i, t in enumerate(times):
            code = _as_int(_at(codes, i))
            hourly.append(
                HourlyForecast(
                    time=str(t),
                    temperature=_as_float(_at(temps, i)),
                    weather_code=code,
                    weather_description=describe(code),
                )
            )

    daily: list[DailyForecast] = []
    daily_node = body.get("daily")
    if isinstance(daily_node, dict):
        dates = daily_node.get("time") or []
        maxes = daily_node.get("temperature_2m_max") or []
        mins = daily_node.get("temperature_2m_min") or []
        codes = daily_node.get("weather_code") or []
        for i, d in enumerate(dates):
            code = _as_int(_at(codes, i))
            daily.append(
                DailyForecast(
                    date=str(d),
                    temperature_max=_as_float(_at(maxes, i)),
                    temperature_min=_as_float(_at(mins, i)),
                    weather_code=code,
                    weather_description=describe(code),
                )
            )

    timezone = body.get("timezone") or "UTC"
    return WeatherSnapshot(
        current=current,
        hourly=tuple(hourly),
        daily=tuple(daily),
        units=Units(units),
        timezone=str(timezone),
    )


def parse_geocoding_response(body: dict) -> list[GeocodingResult]:
    results = []
    for node in body.get("results") or []:
        if not isinstance(node, dict):
            continue
        results.append(
            GeocodingResult(
                name=_text(node, "name"),
                country=_text(node, "country"),
                country_code=_text(node, "country_code"),
                latitude=_float(node, "latitude") or 0.0,
                longitude=_float(node, "longitude") or 0.0,
                admin1=_text(node, "admin1"),
            )
        )
    return results


def _at(values: list, i: int) -> Any:
    if not isinstance(values, list) or i >= len(values):
        return None
    return values[i]


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(node: dict, key: str) -> float | None:
    return _as_float(node.get(key))


def _int(node: dict, key: str) -> int | None:
    return _as_int(node.get(key))


def _text(node: dict, key: str) -> str:
    value = node.get(key)
    return "" if value is None else str(value)
