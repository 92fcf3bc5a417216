"""Open-Meteo adapters: keyless forecast API plus geocoding for place names."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

import httpx

from ..error_classifier import ProviderErrorDetail
from ..exceptions import DomainError, ErrorKind
from ..models import Coordinates
from .base import DEFAULT_TIMEOUT_SECONDS, CurrentConditionsClient, ForecastClient, ProviderAdapter
from .models import (
    Astro,
    CurrentConditions,
    Forecast,
    ForecastCurrent,
    ForecastDay,
    ForecastHour,
    ForecastLocation,
)
from .normalize import (
    as_float,
    as_int,
    as_str,
    format_clock,
    kph_to_mps,
    local_date,
    map_condition,
    parse_localtime,
    placeholder_sun_times,
    round_temp,
)

OPENMETEO_BASE_URL = "https://api.open-meteo.com/v1"
GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"

CURRENT_PARAMS = (
    "temperature_2m,apparent_temperature,relative_humidity_2m,weather_code,wind_speed_10m"
)
DAILY_PARAMS = (
    "weather_code,temperature_2m_max,temperature_2m_min,temperature_2m_mean,"
    "precipitation_probability_max,wind_speed_10m_max,relative_humidity_2m_mean,"
    "sunrise,sunset"
)
HOURLY_PARAMS = (
    "temperature_2m,weather_code,precipitation_probability,wind_speed_10m,relative_humidity_2m"
)

# WMO weather interpretation codes, worded so map_condition picks the right bucket.
WMO_DESCRIPTIONS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow flurries",
    86: "Heavy snow flurries",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: Any) -> str:
    value = as_int(code)
    if value is None:
        return ""
    return WMO_DESCRIPTIONS.get(value, "")


def _get_at(data: dict[str, Any], key: str, index: int) -> Any:
    """Safely get value at index from a column array, returning None if missing."""
    col = data.get(key)
    if not isinstance(col, list) or index >= len(col):
        return None
    return col[index]


def _local_iso_to_epoch(value: Any, offset: int) -> int | None:
    local = parse_localtime(value) if isinstance(value, str) else None
    if local is None:
        return None
    return int(local.replace(tzinfo=UTC).timestamp()) - offset


class _OpenMeteoAdapter(ProviderAdapter):
    provider_name = "openmeteo"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        geocoding_url: str = GEOCODING_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(http_client=http_client, timeout_seconds=timeout_seconds, logger=logger)
        self.base_url = (base_url or OPENMETEO_BASE_URL).rstrip("/")
        self.geocoding_url = geocoding_url

    def extract_error_payload(self, payload: dict[str, Any]) -> ProviderErrorDetail | None:
        if payload.get("error") is not True:
            return None
        reason = as_str(payload.get("reason"))
        if reason is None:
            return None
        return ProviderErrorDetail(message=reason)

    async def geocode(self, name: str) -> tuple[Coordinates, str, str]:
        """Resolve a place name to coordinates, display name and country."""
        payload = await self._get_json(
            self.geocoding_url,
            {"name": name, "count": 1, "language": "en", "format": "json"},
            context="geocoding",
        )
        results = payload.get("results")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise DomainError(kind=ErrorKind.LOCATION_NOT_FOUND)
        first = results[0]
        try:
            coords = Coordinates(lat=first["latitude"], lon=first["longitude"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._normalization_failed("geocoding", exc) from exc
        return coords, as_str(first.get("name")) or name, as_str(first.get("country")) or ""

    @staticmethod
    def _coords_label(lat: float, lon: float) -> str:
        return f"{lat:.2f}, {lon:.2f}"


class OpenMeteoCurrentClient(_OpenMeteoAdapter, CurrentConditionsClient):
    """Current conditions from the Open-Meteo forecast endpoint."""

    async def fetch_by_coords(self, lat: float, lon: float) -> CurrentConditions:
        return await self._fetch(Coordinates(lat=lat, lon=lon), self._coords_label(lat, lon), "")

    async def fetch_by_city(self, name: str) -> CurrentConditions:
        coords, city, country = await self.geocode(name)
        return await self._fetch(coords, city, country)

    async def _fetch(self, coords: Coordinates, city: str, country: str) -> CurrentConditions:
        payload = await self._get_json(
            f"{self.base_url}/forecast",
            {
                "latitude": coords.lat,
                "longitude": coords.lon,
                "current": CURRENT_PARAMS,
                "daily": "sunrise,sunset",
                "timezone": "auto",
                "forecast_days": 1,
                "wind_speed_unit": "kmh",
            },
            context="current conditions",
        )
        try:
            return self.normalize(payload, city=city, country=country)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._normalization_failed("current conditions", exc) from exc

    def normalize(self, payload: dict[str, Any], *, city: str, country: str) -> CurrentConditions:
        current = payload["current"]
        daily = payload.get("daily") or {}
        offset = as_int(payload.get("utc_offset_seconds")) or 0
        observed_at = _local_iso_to_epoch(current.get("time"), offset)
        if observed_at is None:
            raise ValueError("current block has no parseable time")

        sunrise = _local_iso_to_epoch(_get_at(daily, "sunrise", 0), offset)
        sunset = _local_iso_to_epoch(_get_at(daily, "sunset", 0), offset)
        if sunrise is None or sunset is None:
            sunrise, sunset = placeholder_sun_times(
                local_date(current.get("time"), observed_at, offset), offset
            )

        text = describe_weather_code(current.get("weather_code"))
        return CurrentConditions(
            provider=self.provider_name,
            city=city,
            country=country,
            temperature=round_temp(current["temperature_2m"]),
            feels_like=round_temp(
                current.get("apparent_temperature", current["temperature_2m"])
            ),
            condition=map_condition(text),
            description=text.lower(),
            humidity=as_int(current.get("relative_humidity_2m")) or 0,
            wind_speed=kph_to_mps(current.get("wind_speed_10m") or 0),
            sunrise=sunrise,
            sunset=sunset,
            timezone_offset=offset,
            observed_at=observed_at,
            coordinates=Coordinates(lat=payload["latitude"], lon=payload["longitude"]),
        )


class OpenMeteoForecastClient(_OpenMeteoAdapter, ForecastClient):
    """Daily and hourly forecast from the Open-Meteo forecast endpoint.

    Open-Meteo serves no alerts and air quality lives on a separate API, so
    `air_quality` is always None and `alerts` always empty.
    """

    async def fetch_by_coords(self, lat: float, lon: float, days: int = 5) -> Forecast:
        return await self._fetch(
            Coordinates(lat=lat, lon=lon), self._coords_label(lat, lon), "", days
        )

    async def fetch_by_city(self, name: str, days: int = 5) -> Forecast:
        coords, city, country = await self.geocode(name)
        return await self._fetch(coords, city, country, days)

    async def _fetch(self, coords: Coordinates, city: str, country: str, days: int) -> Forecast:
        payload = await self._get_json(
            f"{self.base_url}/forecast",
            {
                "latitude": coords.lat,
                "longitude": coords.lon,
                "current": CURRENT_PARAMS,
                "daily": DAILY_PARAMS,
                "hourly": HOURLY_PARAMS,
                "timezone": "auto",
                "forecast_days": days,
                "wind_speed_unit": "kmh",
            },
            context="forecast",
        )
        try:
            return self.normalize(payload, city=city, country=country)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._normalization_failed("forecast", exc) from exc

    def normalize(self, payload: dict[str, Any], *, city: str, country: str) -> Forecast:
        offset = as_int(payload.get("utc_offset_seconds")) or 0
        current = payload.get("current")
        hours_by_date = self._group_hours(payload.get("hourly") or {}, offset)
        daily = payload.get("daily") or {}

        days: list[ForecastDay] = []
        for index, raw_date in enumerate(daily.get("time") or []):
            day = date.fromisoformat(raw_date)
            days.append(self._normalize_day(daily, index, day, offset, hours_by_date.get(day, ())))

        return Forecast(
            provider=self.provider_name,
            location=ForecastLocation(
                name=city,
                country=country,
                coordinates=Coordinates(lat=payload["latitude"], lon=payload["longitude"]),
                localtime=as_str(current.get("time")) if isinstance(current, dict) else None,
                timezone_offset=offset,
            ),
            current=self._normalize_current(current) if isinstance(current, dict) else None,
            days=tuple(days),
            air_quality=None,
            alerts=(),
        )

    @staticmethod
    def _normalize_current(current: dict[str, Any]) -> ForecastCurrent:
        text = describe_weather_code(current.get("weather_code"))
        return ForecastCurrent(
            temperature=round_temp(current["temperature_2m"]),
            feels_like=round_temp(current.get("apparent_temperature", current["temperature_2m"])),
            condition=map_condition(text),
            condition_text=text,
            humidity=as_int(current.get("relative_humidity_2m")),
            wind_speed=kph_to_mps(current.get("wind_speed_10m") or 0),
        )

    @staticmethod
    def _normalize_day(
        daily: dict[str, Any],
        index: int,
        day: date,
        offset: int,
        hours: tuple[ForecastHour, ...],
    ) -> ForecastDay:
        max_temp = as_float(_get_at(daily, "temperature_2m_max", index))
        min_temp = as_float(_get_at(daily, "temperature_2m_min", index))
        if max_temp is None or min_temp is None:
            raise ValueError(f"daily temperatures missing for {day.isoformat()}")
        mean_temp = as_float(_get_at(daily, "temperature_2m_mean", index))
        if mean_temp is None:
            mean_temp = (max_temp + min_temp) / 2
        text = describe_weather_code(_get_at(daily, "weather_code", index))
        sunrise = parse_localtime(_get_at(daily, "sunrise", index))
        sunset = parse_localtime(_get_at(daily, "sunset", index))
        midnight = datetime(day.year, day.month, day.day, tzinfo=UTC)
        return ForecastDay(
            date=day,
            date_epoch=int(midnight.timestamp()),
            max_temp=round_temp(max_temp),
            min_temp=round_temp(min_temp),
            avg_temp=round_temp(mean_temp),
            condition=map_condition(text),
            condition_text=text,
            chance_of_rain=as_int(_get_at(daily, "precipitation_probability_max", index)),
            chance_of_snow=None,
            max_wind=kph_to_mps(_get_at(daily, "wind_speed_10m_max", index) or 0),
            avg_humidity=as_int(_get_at(daily, "relative_humidity_2m_mean", index)),
            astro=Astro(
                sunrise=format_clock(sunrise) if sunrise else None,
                sunset=format_clock(sunset) if sunset else None,
            ),
            hours=hours,
        )

    @staticmethod
    def _group_hours(hourly: dict[str, Any], offset: int) -> dict[date, tuple[ForecastHour, ...]]:
        grouped: dict[date, list[ForecastHour]] = {}
        for index, raw_time in enumerate(hourly.get("time") or []):
            local = parse_localtime(raw_time)
            temperature = _get_at(hourly, "temperature_2m", index)
            if local is None or temperature is None:
                continue
            text = describe_weather_code(_get_at(hourly, "weather_code", index))
            hour = ForecastHour(
                time=local.strftime("%Y-%m-%d %H:%M"),
                time_epoch=int(local.replace(tzinfo=UTC).timestamp()) - offset,
                temperature=round_temp(temperature),
                condition=map_condition(text),
                condition_text=text,
                chance_of_rain=as_int(_get_at(hourly, "precipitation_probability", index)),
                wind_speed=kph_to_mps(_get_at(hourly, "wind_speed_10m", index) or 0),
                humidity=as_int(_get_at(hourly, "relative_humidity_2m", index)),
            )
            grouped.setdefault(local.date(), []).append(hour)
        return {day: tuple(hours) for day, hours in grouped.items()}
