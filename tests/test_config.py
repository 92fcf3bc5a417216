"""Tests for settings loading and validation."""

from __future__ import annotations

import pytest

from weather_monitor.config import Settings, load_settings
from weather_monitor.exceptions import ConfigError

ENV_VARS = (
    "WEATHER_PROVIDER",
    "WEATHERAPI_KEY",
    "WEATHER_BASE_URL",
    "WEATHER_TIMEOUT_SECONDS",
    "WEATHER_REFRESH_INTERVAL_MS",
    "WEATHER_FORECAST_DAYS",
    "WEATHER_RETAIN_STALE_ON_ERROR",
    "WEATHER_DEFAULT_LAT",
    "WEATHER_DEFAULT_LON",
    "GEO_SOURCE",
    "GEO_TIMEOUT_MS",
    "GEO_MAX_CACHE_AGE_MS",
    "GEO_HIGH_ACCURACY",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_key_is_config_error() -> None:
    with pytest.raises(ConfigError, match="WEATHERAPI_KEY is required"):
        load_settings(_env_file=None)


@pytest.mark.parametrize("placeholder", ["your_api_key_here", "YOUR_API_KEY", "changeme"])
def test_placeholder_key_is_config_error(
    monkeypatch: pytest.MonkeyPatch, placeholder: str
) -> None:
    monkeypatch.setenv("WEATHERAPI_KEY", placeholder)
    with pytest.raises(ConfigError, match="placeholder"):
        load_settings(_env_file=None)


def test_defaults_with_key_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEATHERAPI_KEY", "abc123")

    settings = load_settings(_env_file=None)

    assert settings.weatherapi_key == "abc123"
    assert settings.weather_provider == "weatherapi"
    assert settings.weather_timeout_seconds == 15.0
    assert settings.refresh_interval_seconds == 300.0
    assert settings.weather_forecast_days == 5
    assert settings.weather_retain_stale_on_error is False
    assert settings.geo_source == "ip"
    assert settings.geo_timeout_ms == 10_000
    assert settings.log_level == "INFO"
    assert "abc123" not in repr(settings)


def test_openmeteo_needs_no_key() -> None:
    settings = load_settings(_env_file=None, WEATHER_PROVIDER="openmeteo")
    assert settings.weatherapi_key is None


def test_safe_summary_omits_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEATHERAPI_KEY", "abc123")
    summary = load_settings(_env_file=None).safe_summary()

    assert summary["api_key_configured"] is True
    assert "abc123" not in str(summary)


def test_env_overrides_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEATHER_PROVIDER", "openmeteo")
    monkeypatch.setenv("WEATHER_REFRESH_INTERVAL_MS", "60000")
    monkeypatch.setenv("WEATHER_RETAIN_STALE_ON_ERROR", "true")
    monkeypatch.setenv("GEO_SOURCE", "static")
    monkeypatch.setenv("WEATHER_DEFAULT_LAT", "48.8566")
    monkeypatch.setenv("WEATHER_DEFAULT_LON", "2.3522")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(_env_file=None)

    assert settings.refresh_interval_seconds == 60.0
    assert settings.weather_retain_stale_on_error is True
    assert settings.geo_source == "static"
    assert settings.weather_default_lat == 48.8566
    assert settings.log_level == "DEBUG"


def test_empty_coordinates_are_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEATHER_DEFAULT_LAT", "")
    monkeypatch.setenv("WEATHER_DEFAULT_LON", "")

    settings = load_settings(_env_file=None, WEATHER_PROVIDER="openmeteo")

    assert settings.weather_default_lat is None
    assert settings.weather_default_lon is None


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"WEATHER_DEFAULT_LAT": 48.8}, "must be set together"),
        ({"WEATHER_DEFAULT_LAT": 95.0, "WEATHER_DEFAULT_LON": 2.0}, "between -90 and 90"),
        ({"WEATHER_DEFAULT_LAT": 45.0, "WEATHER_DEFAULT_LON": 200.0}, "between -180 and 180"),
        ({"GEO_SOURCE": "static"}, "requires WEATHER_DEFAULT_LAT"),
        ({"WEATHER_FORECAST_DAYS": 15}, "between 1 and 14"),
        ({"WEATHER_REFRESH_INTERVAL_MS": 0}, "WEATHER_REFRESH_INTERVAL_MS must be > 0"),
        ({"WEATHER_TIMEOUT_SECONDS": 0}, "WEATHER_TIMEOUT_SECONDS must be > 0"),
        ({"GEO_TIMEOUT_MS": -1}, "GEO_TIMEOUT_MS must be > 0"),
        ({"WEATHER_BASE_URL": "ftp://example.test"}, "must start with http"),
    ],
)
def test_invalid_values_are_config_errors(overrides: dict, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_settings(_env_file=None, WEATHER_PROVIDER="openmeteo", **overrides)


def test_field_names_are_accepted_as_well_as_aliases() -> None:
    settings = Settings(_env_file=None, weather_provider="openmeteo", weather_forecast_days=3)
    assert settings.weather_forecast_days == 3
