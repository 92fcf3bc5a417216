"""Provider adapters and the canonical weather schema."""

from .base import CurrentConditionsClient, ForecastClient
from .factory import PROVIDERS, build_clients
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
from .openmeteo import OpenMeteoCurrentClient, OpenMeteoForecastClient
from .weatherapi import WeatherAPICurrentClient, WeatherAPIForecastClient

__all__ = [
    "PROVIDERS",
    "AirQuality",
    "Astro",
    "CurrentConditions",
    "CurrentConditionsClient",
    "Forecast",
    "ForecastClient",
    "ForecastCurrent",
    "ForecastDay",
    "ForecastHour",
    "ForecastLocation",
    "OpenMeteoCurrentClient",
    "OpenMeteoForecastClient",
    "WeatherAPICurrentClient",
    "WeatherAPIForecastClient",
    "WeatherAlert",
    "build_clients",
]
