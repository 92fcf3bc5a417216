"""Contract tests for the Open-Meteo adapters with mocked HTTP."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import pytest

from weather_monitor.exceptions import DomainError, ErrorKind
from weather_monitor.weather.normalize import map_condition
from weather_monitor.weather.openmeteo import (
    GEOCODING_URL,
    OpenMeteoCurrentClient,
    OpenMeteoForecastClient,
    describe_weather_code,
)
from weather_fakes import json_response, mock_http

LOGGER = logging.getLogger("test_openmeteo_provider")

BERLIN_GEOCODE: dict[str, Any] = {
    "results": [
        {"name": "Berlin", "country": "Germany", "latitude": 52.52, "longitude": 13.41}
    ]
}

CURRENT_PAYLOAD: dict[str, Any] = {
    "latitude": 52.52,
    "longitude": 13.42,
    "utc_offset_seconds": 3600,
    "timezone": "Europe/Berlin",
    "current": {
        "time": "2024-01-15T14:30",
        "temperature_2m": 3.5,
        "apparent_temperature": -0.4,
        "relative_humidity_2m": 87,
        "weather_code": 61,
        "wind_speed_10m": 18.0,
    },
    "daily": {
        "time": ["2024-01-15"],
        "sunrise": ["2024-01-15T08:10"],
        "sunset": ["2024-01-15T16:20"],
    },
}

FORECAST_PAYLOAD: dict[str, Any] = {
    "latitude": 52.52,
    "longitude": 13.42,
    "utc_offset_seconds": 3600,
    "current": CURRENT_PAYLOAD["current"],
    "daily": {
        "time": ["2024-01-15", "2024-01-16"],
        "weather_code": [3, 95],
        "temperature_2m_max": [5.2, 7.8],
        "temperature_2m_min": [-1.5, 2.0],
        "temperature_2m_mean": [1.9, None],
        "precipitation_probability_max": [10, 80],
        "wind_speed_10m_max": [21.6, 36.0],
        "relative_humidity_2m_mean": [80, 90],
        "sunrise": ["2024-01-15T08:10", "2024-01-16T08:09"],
        "sunset": ["2024-01-15T16:20", "2024-01-16T16:22"],
    },
    "hourly": {
        "time": ["2024-01-15T00:00", "2024-01-15T01:00", "2024-01-16T00:00"],
        "temperature_2m": [1.0, 0.5, 3.0],
        "weather_code": [3, 3, 61],
        "precipitation_probability": [0, 5, 60],
        "wind_speed_10m": [7.2, 7.2, 10.8],
        "relative_humidity_2m": [85, 86, 90],
    },
}


def test_weather_codes_map_to_expected_conditions() -> None:
    assert map_condition(describe_weather_code(0)) == "Clear"
    assert map_condition(describe_weather_code(2)) == "Clouds"
    assert map_condition(describe_weather_code(45)) == "Mist"
    assert map_condition(describe_weather_code(81)) == "Rain"
    assert map_condition(describe_weather_code(86)) == "Snow"
    assert map_condition(describe_weather_code(96)) == "Thunderstorm"
    assert describe_weather_code(None) == ""


@pytest.mark.asyncio
async def test_current_by_coords_normalizes_payload() -> None:
    http = mock_http(json_response(CURRENT_PAYLOAD))
    client = OpenMeteoCurrentClient(http_client=http, logger=LOGGER)

    current = await client.fetch_by_coords(52.52, 13.42)

    assert current.provider == "openmeteo"
    assert current.city == "52.52, 13.42"
    assert current.temperature == 4
    assert current.feels_like == 0
    assert current.condition == "Rain"
    assert current.description == "slight rain"
    assert current.humidity == 87
    assert current.wind_speed == 5.0
    assert current.timezone_offset == 3600
    assert current.observed_at == 1705329000 - 3600
    assert current.sunrise == 1705276800 + 8 * 3600 + 10 * 60 - 3600
    assert current.sunset == 1705276800 + 16 * 3600 + 20 * 60 - 3600

    params = http.get.call_args.kwargs["params"]
    assert params["latitude"] == 52.52
    assert params["longitude"] == 13.42
    assert params["timezone"] == "auto"


@pytest.mark.asyncio
async def test_current_by_city_geocodes_first() -> None:
    http = mock_http(json_response(BERLIN_GEOCODE), json_response(CURRENT_PAYLOAD))
    client = OpenMeteoCurrentClient(http_client=http, logger=LOGGER)

    current = await client.fetch_by_city("Berlin")

    assert current.city == "Berlin"
    assert current.country == "Germany"
    geocode_call, forecast_call = http.get.call_args_list
    assert geocode_call.args[0] == GEOCODING_URL
    assert geocode_call.kwargs["params"]["name"] == "Berlin"
    assert forecast_call.kwargs["params"]["latitude"] == 52.52
    assert forecast_call.kwargs["params"]["longitude"] == 13.41


@pytest.mark.asyncio
async def test_unknown_city_is_location_not_found() -> None:
    http = mock_http(json_response({"generationtime_ms": 0.2}))
    client = OpenMeteoCurrentClient(http_client=http, logger=LOGGER)

    with pytest.raises(DomainError) as exc_info:
        await client.fetch_by_city("Unknownplace123")

    assert exc_info.value.kind is ErrorKind.LOCATION_NOT_FOUND
    assert http.get.call_count == 1


@pytest.mark.asyncio
async def test_error_reason_is_kept_verbatim() -> None:
    reason = "Latitude must be in range of -90 to 90°. Given: 100.0."
    http = mock_http(json_response({"error": True, "reason": reason}, status_code=400))
    client = OpenMeteoCurrentClient(http_client=http, logger=LOGGER)

    with pytest.raises(DomainError) as exc_info:
        await client.fetch_by_coords(100.0, 13.4)

    assert exc_info.value.message == reason
    assert exc_info.value.kind is ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_forecast_groups_hours_under_days() -> None:
    http = mock_http(json_response(FORECAST_PAYLOAD))
    client = OpenMeteoForecastClient(http_client=http, logger=LOGGER)

    forecast = await client.fetch_by_coords(52.52, 13.42, days=2)

    assert http.get.call_args.kwargs["params"]["forecast_days"] == 2
    assert forecast.air_quality is None
    assert forecast.alerts == ()
    assert forecast.location.timezone_offset == 3600
    assert forecast.current is not None
    assert forecast.current.condition == "Rain"

    first, second = forecast.days
    assert first.date == date(2024, 1, 15)
    assert first.max_temp == 5
    assert first.min_temp == -1
    assert first.avg_temp == 2
    assert first.condition == "Clouds"
    assert first.chance_of_rain == 10
    assert first.max_wind == 6.0
    assert first.astro.sunrise == "08:10 AM"
    assert first.astro.sunset == "04:20 PM"
    assert len(first.hours) == 2

    assert second.condition == "Thunderstorm"
    assert second.avg_temp == 5
    (hour,) = second.hours
    assert hour.time == "2024-01-16 00:00"
    assert hour.time_epoch == 1705363200 - 3600
    assert hour.condition == "Rain"
    assert hour.wind_speed == 3.0


@pytest.mark.asyncio
async def test_forecast_by_city_uses_geocoded_name() -> None:
    http = mock_http(json_response(BERLIN_GEOCODE), json_response(FORECAST_PAYLOAD))
    client = OpenMeteoForecastClient(http_client=http, logger=LOGGER)

    forecast = await client.fetch_by_city("Berlin", days=2)

    assert forecast.location.name == "Berlin"
    assert forecast.location.country == "Germany"


def test_normalizing_same_payload_twice_gives_identical_records() -> None:
    current_client = OpenMeteoCurrentClient(http_client=mock_http(), logger=LOGGER)
    forecast_client = OpenMeteoForecastClient(http_client=mock_http(), logger=LOGGER)

    first_current = current_client.normalize(CURRENT_PAYLOAD, city="Berlin", country="Germany")
    second_current = current_client.normalize(CURRENT_PAYLOAD, city="Berlin", country="Germany")
    first_forecast = forecast_client.normalize(FORECAST_PAYLOAD, city="Berlin", country="Germany")
    second_forecast = forecast_client.normalize(
        FORECAST_PAYLOAD, city="Berlin", country="Germany"
    )

    assert first_current.model_dump_json() == second_current.model_dump_json()
    assert first_forecast.model_dump_json() == second_forecast.model_dump_json()


@pytest.mark.asyncio
async def test_daily_block_of_wrong_type_is_unknown() -> None:
    payload = {**FORECAST_PAYLOAD, "daily": ["2024-01-15"]}
    client = OpenMeteoForecastClient(http_client=mock_http(json_response(payload)), logger=LOGGER)

    with pytest.raises(DomainError) as exc_info:
        await client.fetch_by_coords(52.52, 13.42)

    assert exc_info.value.kind is ErrorKind.UNKNOWN
