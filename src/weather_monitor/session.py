"""Wires geolocation and both controllers into one user-facing session."""

from __future__ import annotations

import asyncio
import logging

import httpx

from .config import Settings
from .controller import ForecastController, Sleep, WeatherController
from .exceptions import GeoLocationError
from .geolocation import GeoFixProvider
from .models import GeoFix
from .weather.factory import build_clients


class WeatherSession:
    """One screen's worth of state: a position, current conditions, and a forecast.

    The session never raises for classified failures; they are recorded on the
    controller or geolocation provider that produced them.
    """

    def __init__(
        self,
        weather: WeatherController,
        forecast: ForecastController,
        geo: GeoFixProvider,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.weather = weather
        self.forecast = forecast
        self.geo = geo
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        sleep: Sleep = asyncio.sleep,
        days: int | None = None,
    ) -> WeatherSession:
        current_client, forecast_client = build_clients(
            settings, http_client=http_client, logger=logger
        )
        shared = {
            "refresh_interval_seconds": settings.refresh_interval_seconds,
            "retain_stale_on_error": settings.weather_retain_stale_on_error,
            "logger": logger,
            "sleep": sleep,
        }
        return cls(
            WeatherController(current_client, **shared),
            ForecastController(
                forecast_client, days=days or settings.weather_forecast_days, **shared
            ),
            GeoFixProvider.from_settings(settings, logger=logger),
            logger=logger,
        )

    @property
    def loading(self) -> bool:
        return self.geo.loading or self.weather.loading or self.forecast.loading

    @property
    def error_message(self) -> str | None:
        """First message to show, preferring fetch errors over geolocation ones."""
        return self.weather.error_message or self.forecast.error_message or self.geo.error_message

    async def start(self) -> GeoFix | None:
        """Acquire a position and, if nothing is loaded yet, fetch weather for it."""
        fix = await self._acquire(retry=False)
        if fix is not None and self.weather.data is None and self.forecast.data is None:
            await self.fetch_coords(fix.coordinates.lat, fix.coordinates.lon)
        return fix

    async def search(self, city: str) -> None:
        await asyncio.gather(self.weather.fetch_by_city(city), self.forecast.fetch_by_city(city))

    async def use_my_location(self) -> None:
        """Fetch for the known position, re-acquiring it first if none is known."""
        fix = self.geo.fix
        if fix is None:
            fix = await self._acquire(retry=True)
            if fix is None:
                return
        await self.fetch_coords(fix.coordinates.lat, fix.coordinates.lon)

    async def retry(self) -> None:
        """Re-run the last request of each controller, or fall back to the known position."""
        fix = self.geo.fix
        pending = []
        for controller in (self.weather, self.forecast):
            if controller.memory is not None:
                pending.append(controller.refresh())
            elif fix is not None:
                pending.append(
                    controller.fetch_by_coords(fix.coordinates.lat, fix.coordinates.lon)
                )
        if pending:
            await asyncio.gather(*pending)
        else:
            self.logger.info("Nothing to retry: no remembered location and no position.")

    async def close(self) -> None:
        await self.weather.close()
        await self.forecast.close()
        await self.geo.close()
        await self.weather.client.aclose()
        await self.forecast.client.aclose()

    async def _acquire(self, *, retry: bool) -> GeoFix | None:
        try:
            if retry:
                return await self.geo.retry()
            return await self.geo.acquire()
        except GeoLocationError as exc:
            self.logger.info("No position available: %s", exc.reason)
            return None

    async def fetch_coords(self, lat: float, lon: float) -> None:
        await asyncio.gather(
            self.weather.fetch_by_coords(lat, lon), self.forecast.fetch_by_coords(lat, lon)
        )
