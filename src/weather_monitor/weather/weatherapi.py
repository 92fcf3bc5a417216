"""WeatherAPI.com adapters for current conditions and forecast."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from ..error_classifier import ProviderErrorDetail
from ..exceptions import DomainError, ErrorKind
from ..models import Coordinates
from .base import DEFAULT_TIMEOUT_SECONDS, CurrentConditionsClient, ForecastClient, ProviderAdapter
from .models import (
    AirQuality,
    Astro,
    CurrentConditions,
    Forecast,
    ForecastCurrent,
    ForecastDay,
    ForecastHour,
    ForecastLocation,
    WeatherAlert,
)
from .normalize import (
    as_float,
    as_int,
    as_str,
    kph_to_mps,
    local_date,
    map_condition,
    placeholder_sun_times,
    round_temp,
    timezone_offset_from_localtime,
)

WEATHERAPI_BASE_URL = "https://api.weatherapi.com/v1"

# https://www.weatherapi.com/docs/#intro-error-codes
WEATHERAPI_ERROR_KINDS: dict[int, ErrorKind] = {
    1002: ErrorKind.INVALID_API_KEY,
    1003: ErrorKind.INVALID_REQUEST,
    1005: ErrorKind.INVALID_REQUEST,
    1006: ErrorKind.LOCATION_NOT_FOUND,
    2006: ErrorKind.INVALID_API_KEY,
    2007: ErrorKind.RATE_LIMITED,
    2008: ErrorKind.INVALID_API_KEY,
    2009: ErrorKind.INVALID_API_KEY,
}


class _WeatherAPIAdapter(ProviderAdapter):
    provider_name = "weatherapi"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(http_client=http_client, timeout_seconds=timeout_seconds, logger=logger)
        self._api_key = api_key
        self.base_url = (base_url or WEATHERAPI_BASE_URL).rstrip("/")

    def extract_error_payload(self, payload: dict[str, Any]) -> ProviderErrorDetail | None:
        error = payload.get("error")
        if not isinstance(error, dict):
            return None
        message = as_str(error.get("message"))
        if message is None:
            return None
        code = error.get("code")
        kind = WEATHERAPI_ERROR_KINDS.get(code) if isinstance(code, int) else None
        return ProviderErrorDetail(message=message, kind=kind)

    @staticmethod
    def _coords_query(lat: float, lon: float) -> str:
        return f"{lat},{lon}"


class WeatherAPICurrentClient(_WeatherAPIAdapter, CurrentConditionsClient):
    """Current conditions from `GET {base}/current.json`."""

    async def fetch_by_coords(self, lat: float, lon: float) -> CurrentConditions:
        return await self._fetch(self._coords_query(lat, lon))

    async def fetch_by_city(self, name: str) -> CurrentConditions:
        return await self._fetch(name)

    async def _fetch(self, query: str) -> CurrentConditions:
        payload = await self._get_json(
            f"{self.base_url}/current.json",
            {"key": self._api_key, "q": query, "aqi": "no"},
            context="current conditions",
        )
        try:
            return self.normalize(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._normalization_failed("current conditions", exc) from exc

    def normalize(self, payload: dict[str, Any]) -> CurrentConditions:
        """Map a current.json body onto the canonical record."""
        location = payload["location"]
        current = payload["current"]
        condition = current.get("condition") or {}
        text = as_str(condition.get("text")) or ""

        localtime = as_str(location.get("localtime"))
        offset = (
            timezone_offset_from_localtime(localtime, location.get("localtime_epoch"))
            if location.get("tz_id")
            else 0
        )
        observed_at = as_int(current.get("last_updated_epoch"))
        if observed_at is None:
            observed_at = as_int(location.get("localtime_epoch"))
        if observed_at is None:
            raise ValueError("current conditions payload has no observation time")
        # current.json carries no astronomy block.
        sunrise, sunset = placeholder_sun_times(local_date(localtime, observed_at, offset), offset)

        return CurrentConditions(
            provider=self.provider_name,
            city=location["name"],
            country=location.get("country") or "",
            temperature=round_temp(current["temp_c"]),
            feels_like=round_temp(current.get("feelslike_c", current["temp_c"])),
            condition=map_condition(text),
            description=text.lower(),
            icon=as_str(condition.get("icon")),
            humidity=as_int(current.get("humidity")) or 0,
            wind_speed=kph_to_mps(current.get("wind_kph") or 0),
            sunrise=sunrise,
            sunset=sunset,
            timezone_offset=offset,
            observed_at=observed_at,
            coordinates=Coordinates(lat=location["lat"], lon=location["lon"]),
        )


class WeatherAPIForecastClient(_WeatherAPIAdapter, ForecastClient):
    """Forecast, air quality and alerts from `GET {base}/forecast.json`."""

    async def fetch_by_coords(self, lat: float, lon: float, days: int = 5) -> Forecast:
        return await self._fetch(self._coords_query(lat, lon), days)

    async def fetch_by_city(self, name: str, days: int = 5) -> Forecast:
        return await self._fetch(name, days)

    async def _fetch(self, query: str, days: int) -> Forecast:
        payload = await self._get_json(
            f"{self.base_url}/forecast.json",
            {"key": self._api_key, "q": query, "days": days, "aqi": "yes", "alerts": "yes"},
            context="forecast",
        )
        try:
            return self.normalize(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._normalization_failed("forecast", exc) from exc

    def normalize(self, payload: dict[str, Any]) -> Forecast:
        """Map a forecast.json body onto the canonical record."""
        location = payload["location"]
        current = payload.get("current")
        raw_days = (payload.get("forecast") or {}).get("forecastday") or []
        raw_alerts = (payload.get("alerts") or {}).get("alert") or []

        localtime = as_str(location.get("localtime"))
        offset = (
            timezone_offset_from_localtime(localtime, location.get("localtime_epoch"))
            if location.get("tz_id")
            else 0
        )

        return Forecast(
            provider=self.provider_name,
            location=ForecastLocation(
                name=location["name"],
                country=location.get("country") or "",
                coordinates=Coordinates(lat=location["lat"], lon=location["lon"]),
                localtime=localtime,
                timezone_offset=offset,
            ),
            current=self._normalize_current(current) if isinstance(current, dict) else None,
            days=tuple(self._normalize_day(day) for day in raw_days if isinstance(day, dict)),
            air_quality=self._normalize_air_quality(current),
            alerts=tuple(
                self._normalize_alert(alert) for alert in raw_alerts if isinstance(alert, dict)
            ),
        )

    @staticmethod
    def _normalize_current(current: dict[str, Any]) -> ForecastCurrent:
        text = as_str((current.get("condition") or {}).get("text")) or ""
        return ForecastCurrent(
            temperature=round_temp(current["temp_c"]),
            feels_like=round_temp(current.get("feelslike_c", current["temp_c"])),
            condition=map_condition(text),
            condition_text=text,
            humidity=as_int(current.get("humidity")),
            wind_speed=kph_to_mps(current.get("wind_kph") or 0),
        )

    def _normalize_day(self, raw: dict[str, Any]) -> ForecastDay:
        day = raw["day"]
        astro = raw.get("astro") or {}
        condition = day.get("condition") or {}
        text = as_str(condition.get("text")) or ""
        return ForecastDay(
            date=date.fromisoformat(raw["date"]),
            date_epoch=int(raw["date_epoch"]),
            max_temp=round_temp(day["maxtemp_c"]),
            min_temp=round_temp(day["mintemp_c"]),
            avg_temp=round_temp(day["avgtemp_c"]),
            condition=map_condition(text),
            condition_text=text,
            condition_icon=as_str(condition.get("icon")),
            chance_of_rain=as_int(day.get("daily_chance_of_rain")),
            chance_of_snow=as_int(day.get("daily_chance_of_snow")),
            max_wind=kph_to_mps(day.get("maxwind_kph") or 0),
            avg_humidity=as_int(day.get("avghumidity")),
            astro=Astro(
                sunrise=as_str(astro.get("sunrise")),
                sunset=as_str(astro.get("sunset")),
                moonrise=as_str(astro.get("moonrise")),
                moonset=as_str(astro.get("moonset")),
                moon_phase=as_str(astro.get("moon_phase")),
            ),
            hours=tuple(
                self._normalize_hour(hour)
                for hour in raw.get("hour") or []
                if isinstance(hour, dict)
            ),
        )

    @staticmethod
    def _normalize_hour(hour: dict[str, Any]) -> ForecastHour:
        condition = hour.get("condition") or {}
        text = as_str(condition.get("text")) or ""
        return ForecastHour(
            time=hour["time"],
            time_epoch=int(hour["time_epoch"]),
            temperature=round_temp(hour["temp_c"]),
            condition=map_condition(text),
            condition_text=text,
            condition_icon=as_str(condition.get("icon")),
            chance_of_rain=as_int(hour.get("chance_of_rain")),
            chance_of_snow=as_int(hour.get("chance_of_snow")),
            wind_speed=kph_to_mps(hour.get("wind_kph") or 0),
            humidity=as_int(hour.get("humidity")),
        )

    @staticmethod
    def _normalize_air_quality(current: Any) -> AirQuality | None:
        if not isinstance(current, dict):
            return None
        air = current.get("air_quality")
        if not isinstance(air, dict) or not air:
            return None
        return AirQuality(
            pm2_5=as_float(air.get("pm2_5")),
            pm10=as_float(air.get("pm10")),
            co=as_float(air.get("co")),
            no2=as_float(air.get("no2")),
            so2=as_float(air.get("so2")),
            o3=as_float(air.get("o3")),
            us_epa_index=as_int(air.get("us-epa-index")),
            gb_defra_index=as_int(air.get("gb-defra-index")),
        )

    @staticmethod
    def _normalize_alert(alert: dict[str, Any]) -> WeatherAlert:
        return WeatherAlert(
            headline=as_str(alert.get("headline")),
            severity=as_str(alert.get("severity")),
            urgency=as_str(alert.get("urgency")),
            areas=as_str(alert.get("areas")),
            category=as_str(alert.get("category")),
            certainty=as_str(alert.get("certainty")),
            event=as_str(alert.get("event")),
            note=as_str(alert.get("note")),
            effective=as_str(alert.get("effective")),
            expires=as_str(alert.get("expires")),
            description=as_str(alert.get("desc")),
            instruction=as_str(alert.get("instruction")),
        )
