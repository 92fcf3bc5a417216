"""Canonical current-conditions and forecast records produced by every adapter."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict

from ..models import Coordinates

Condition = Literal["Clear", "Clouds", "Rain", "Thunderstorm", "Snow", "Mist"]
CONDITIONS: tuple[Condition, ...] = ("Clear", "Clouds", "Rain", "Thunderstorm", "Snow", "Mist")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class CurrentConditions(_Frozen):
    """Current weather in canonical units: integer Celsius, wind in m/s, epoch seconds."""

    provider: str
    city: str
    country: str
    temperature: int
    feels_like: int
    condition: Condition
    description: str
    icon: str | None = None
    humidity: int
    wind_speed: float
    sunrise: int
    sunset: int
    timezone_offset: int
    observed_at: int
    coordinates: Coordinates


class ForecastHour(_Frozen):
    time: str
    time_epoch: int
    temperature: int
    condition: Condition
    condition_text: str
    condition_icon: str | None = None
    chance_of_rain: int | None = None
    chance_of_snow: int | None = None
    wind_speed: float
    humidity: int | None = None


class Astro(_Frozen):
    sunrise: str | None = None
    sunset: str | None = None
    moonrise: str | None = None
    moonset: str | None = None
    moon_phase: str | None = None


class ForecastDay(_Frozen):
    date: dt.date
    date_epoch: int
    max_temp: int
    min_temp: int
    avg_temp: int
    condition: Condition
    condition_text: str
    condition_icon: str | None = None
    chance_of_rain: int | None = None
    chance_of_snow: int | None = None
    max_wind: float
    avg_humidity: int | None = None
    astro: Astro = Astro()
    hours: tuple[ForecastHour, ...] = ()


class AirQuality(_Frozen):
    """Pollutant concentrations (ug/m3) and the US-EPA index (1 good .. 6 hazardous)."""

    pm2_5: float | None = None
    pm10: float | None = None
    co: float | None = None
    no2: float | None = None
    so2: float | None = None
    o3: float | None = None
    us_epa_index: int | None = None
    gb_defra_index: int | None = None


class WeatherAlert(_Frozen):
    headline: str | None = None
    severity: str | None = None
    urgency: str | None = None
    areas: str | None = None
    category: str | None = None
    certainty: str | None = None
    event: str | None = None
    note: str | None = None
    effective: str | None = None
    expires: str | None = None
    description: str | None = None
    instruction: str | None = None


class ForecastLocation(_Frozen):
    name: str
    country: str
    coordinates: Coordinates
    localtime: str | None = None
    timezone_offset: int = 0


class ForecastCurrent(_Frozen):
    temperature: int
    feels_like: int
    condition: Condition
    condition_text: str
    humidity: int | None = None
    wind_speed: float


class Forecast(_Frozen):
    """Multi-day forecast with optional air quality and alert records."""

    provider: str
    location: ForecastLocation
    current: ForecastCurrent | None = None
    days: tuple[ForecastDay, ...] = ()
    air_quality: AirQuality | None = None
    alerts: tuple[WeatherAlert, ...] = ()
