"""Tests for the geolocation-to-controllers composition layer."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from weather_monitor.controller import ForecastController, WeatherController
from weather_monitor.exceptions import DomainError, ErrorKind, PositionError
from weather_monitor.geolocation import GeoFixProvider, PositionReading, StaticPositionSource
from weather_monitor.models import CityQuery, CoordsQuery
from weather_monitor.session import WeatherSession
from weather_monitor.weather import OpenMeteoCurrentClient, OpenMeteoForecastClient
from weather_fakes import (
    FakeCurrentClient,
    FakeForecastClient,
    ManualSleep,
    ScriptedPositionSource,
    make_current,
    make_forecast,
    mock_http,
)

LOGGER = logging.getLogger("test_session")


def _make_session(
    source,
    current_client: FakeCurrentClient | None = None,
    forecast_client: FakeForecastClient | None = None,
) -> WeatherSession:
    sleep = ManualSleep()
    return WeatherSession(
        WeatherController(
            current_client or FakeCurrentClient(make_current()), logger=LOGGER, sleep=sleep
        ),
        ForecastController(
            forecast_client or FakeForecastClient(make_forecast()),
            days=3,
            logger=LOGGER,
            sleep=sleep,
        ),
        GeoFixProvider(source, logger=LOGGER),
        logger=LOGGER,
    )


@pytest.mark.asyncio
async def test_start_fetches_both_for_acquired_position() -> None:
    current_client = FakeCurrentClient(make_current())
    forecast_client = FakeForecastClient(make_forecast())
    session = _make_session(
        StaticPositionSource(51.5074, -0.1278), current_client, forecast_client
    )

    fix = await session.start()

    assert fix is not None
    assert current_client.calls == [("coords", 51.5074, -0.1278)]
    assert forecast_client.calls == [("coords", 51.5074, -0.1278, 3)]
    assert session.weather.memory == CoordsQuery(lat=51.5074, lon=-0.1278)
    assert session.loading is False
    await session.close()


@pytest.mark.asyncio
async def test_start_does_not_replace_existing_data() -> None:
    current_client = FakeCurrentClient(make_current("Paris"))
    session = _make_session(StaticPositionSource(51.5, -0.1), current_client)

    await session.search("Paris")
    await session.start()

    assert current_client.calls == [("city", "Paris")]
    assert session.weather.memory == CityQuery(name="Paris")
    await session.close()


@pytest.mark.asyncio
async def test_start_without_geolocation_reports_failure_and_fetches_nothing() -> None:
    current_client = FakeCurrentClient(make_current())
    session = _make_session(None, current_client)

    assert await session.start() is None

    assert current_client.calls == []
    assert session.geo.failure is not None
    assert session.geo.failure.reason == "unsupported"
    assert session.error_message == "Geolocation is not supported on this system."
    await session.close()


@pytest.mark.asyncio
async def test_use_my_location_retries_after_permission_denied() -> None:
    source = ScriptedPositionSource(
        PositionError(PositionError.PERMISSION_DENIED),
        PositionReading(lat=48.8566, lon=2.3522, accuracy_m=20.0),
    )
    current_client = FakeCurrentClient(make_current("Paris"))
    session = _make_session(source, current_client)

    await session.start()
    assert session.geo.permission_denied is True
    assert current_client.calls == []

    await session.use_my_location()

    assert session.geo.permission_denied is False
    assert current_client.calls == [("coords", 48.8566, 2.3522)]
    assert len(source.requests) == 2
    await session.close()


@pytest.mark.asyncio
async def test_use_my_location_reuses_known_fix() -> None:
    source = ScriptedPositionSource(PositionReading(lat=1.0, lon=2.0, accuracy_m=10.0))
    current_client = FakeCurrentClient(make_current())
    session = _make_session(source, current_client)

    await session.start()
    await session.search("Paris")
    await session.use_my_location()

    assert len(source.requests) == 1
    assert current_client.calls[-1] == ("coords", 1.0, 2.0)
    await session.close()


@pytest.mark.asyncio
async def test_retry_refreshes_memory_after_failure() -> None:
    current_client = FakeCurrentClient(
        make_current("Paris"),
        DomainError(kind=ErrorKind.NETWORK_UNAVAILABLE),
        make_current("Paris"),
    )
    session = _make_session(None, current_client)

    await session.search("Paris")
    await session.weather.refresh()
    assert session.error_message is not None

    await session.retry()

    assert session.weather.status == "ready"
    assert current_client.calls == [("city", "Paris")] * 3
    await session.close()


@pytest.mark.asyncio
async def test_retry_falls_back_to_known_position() -> None:
    current_client = FakeCurrentClient(DomainError(kind=ErrorKind.RATE_LIMITED), make_current())
    session = _make_session(StaticPositionSource(10.0, 20.0), current_client)

    await session.start()
    assert session.weather.memory is None

    await session.retry()

    assert current_client.calls == [("coords", 10.0, 20.0)] * 2
    assert session.weather.status == "ready"
    await session.close()


@pytest.mark.asyncio
async def test_close_tears_down_controllers_geolocation_and_clients() -> None:
    current_client = FakeCurrentClient(make_current())
    forecast_client = FakeForecastClient(make_forecast())
    source = ScriptedPositionSource(PositionReading(lat=1.0, lon=2.0))
    session = _make_session(source, current_client, forecast_client)
    await session.start()

    await session.close()

    assert session.weather.closed is True
    assert session.forecast.closed is True
    assert session.weather.refresh_armed is False
    assert source.closed is True
    assert current_client.closed is True
    assert forecast_client.closed is True


@pytest.mark.asyncio
async def test_from_settings_wires_configured_provider() -> None:
    settings = SimpleNamespace(
        weather_provider="openmeteo",
        weatherapi_key=None,
        weather_base_url=None,
        weather_timeout_seconds=5.0,
        refresh_interval_seconds=120.0,
        weather_retain_stale_on_error=True,
        weather_forecast_days=4,
        geo_source="none",
        geo_high_accuracy=False,
        geo_timeout_ms=1000,
        geo_max_cache_age_ms=0,
        weather_default_lat=None,
        weather_default_lon=None,
    )

    session = WeatherSession.from_settings(settings, http_client=mock_http(), logger=LOGGER)

    assert isinstance(session.weather.client, OpenMeteoCurrentClient)
    assert isinstance(session.forecast.client, OpenMeteoForecastClient)
    assert session.forecast.days == 4
    assert session.weather.refresh_interval_seconds == 120.0
    assert session.weather.retain_stale_on_error is True
    assert session.geo.source is None
    assert session.geo.options.timeout_ms == 1000
    await session.close()
