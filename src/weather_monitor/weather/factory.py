"""Select the adapter pair for the configured upstream provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from .base import CurrentConditionsClient, ForecastClient
from .openmeteo import OpenMeteoCurrentClient, OpenMeteoForecastClient
from .weatherapi import WeatherAPICurrentClient, WeatherAPIForecastClient

PROVIDERS: dict[str, tuple[type[CurrentConditionsClient], type[ForecastClient]]] = {
    "weatherapi": (WeatherAPICurrentClient, WeatherAPIForecastClient),
    "openmeteo": (OpenMeteoCurrentClient, OpenMeteoForecastClient),
}


def _provider_kwargs(settings: Settings) -> dict[str, Any]:
    if settings.weather_provider == "weatherapi":
        return {"api_key": settings.weatherapi_key, "base_url": settings.weather_base_url}
    return {"base_url": settings.weather_base_url}


def build_clients(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> tuple[CurrentConditionsClient, ForecastClient]:
    """Build the current-conditions and forecast adapters for `settings.weather_provider`.

    When `http_client` is omitted each adapter creates and owns a client with
    the configured timeout.
    """
    current_cls, forecast_cls = PROVIDERS[settings.weather_provider]
    kwargs = _provider_kwargs(settings)
    kwargs["timeout_seconds"] = settings.weather_timeout_seconds
    kwargs["logger"] = logger
    return (
        current_cls(http_client=http_client, **kwargs),
        forecast_cls(http_client=http_client, **kwargs),
    )
