"""Typed settings loader for the weather monitor."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

PLACEHOLDER_API_KEYS = frozenset(
    {
        "your_api_key_here",
        "your_api_key",
        "your_weatherapi_key",
        "your_weatherapi_key_here",
        "changeme",
        "change_me",
        "xxx",
        "placeholder",
    }
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    weather_provider: Literal["weatherapi", "openmeteo"] = Field(
        default="weatherapi", alias="WEATHER_PROVIDER"
    )
    weatherapi_key: str | None = Field(default=None, alias="WEATHERAPI_KEY", repr=False)
    weather_base_url: str | None = Field(default=None, alias="WEATHER_BASE_URL")
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_refresh_interval_ms: int = Field(default=300_000, alias="WEATHER_REFRESH_INTERVAL_MS")
    weather_forecast_days: int = Field(default=5, alias="WEATHER_FORECAST_DAYS")
    weather_retain_stale_on_error: bool = Field(
        default=False, alias="WEATHER_RETAIN_STALE_ON_ERROR"
    )
    weather_default_lat: float | None = Field(default=None, alias="WEATHER_DEFAULT_LAT")
    weather_default_lon: float | None = Field(default=None, alias="WEATHER_DEFAULT_LON")

    geo_source: Literal["ip", "static", "none"] = Field(default="ip", alias="GEO_SOURCE")
    geo_timeout_ms: int = Field(default=10_000, alias="GEO_TIMEOUT_MS")
    geo_max_cache_age_ms: int = Field(default=300_000, alias="GEO_MAX_CACHE_AGE_MS")
    geo_high_accuracy: bool = Field(default=False, alias="GEO_HIGH_ACCURACY")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    @field_validator(
        "weather_default_lat",
        "weather_default_lon",
        "weather_base_url",
        "weatherapi_key",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_settings(self) -> Settings:
        """Validate provider credentials, intervals, and default coordinates."""
        if self.weather_provider == "weatherapi":
            key = (self.weatherapi_key or "").strip()
            if not key:
                raise ValueError("WEATHERAPI_KEY is required when WEATHER_PROVIDER='weatherapi'.")
            if key.lower() in PLACEHOLDER_API_KEYS:
                raise ValueError(
                    "WEATHERAPI_KEY is still a placeholder value; set a real API key."
                )
        if self.weather_base_url is not None and not self.weather_base_url.startswith(
            ("http://", "https://")
        ):
            raise ValueError("WEATHER_BASE_URL must start with http:// or https://.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.weather_refresh_interval_ms <= 0:
            raise ValueError("WEATHER_REFRESH_INTERVAL_MS must be > 0.")
        if not (1 <= self.weather_forecast_days <= 14):
            raise ValueError("WEATHER_FORECAST_DAYS must be between 1 and 14.")
        if self.geo_timeout_ms <= 0:
            raise ValueError("GEO_TIMEOUT_MS must be > 0.")
        if self.geo_max_cache_age_ms < 0:
            raise ValueError("GEO_MAX_CACHE_AGE_MS must be >= 0.")

        has_default_lat = self.weather_default_lat is not None
        has_default_lon = self.weather_default_lon is not None
        if has_default_lat != has_default_lon:
            raise ValueError("WEATHER_DEFAULT_LAT and WEATHER_DEFAULT_LON must be set together.")
        if has_default_lat and not (-90 <= self.weather_default_lat <= 90):
            raise ValueError("WEATHER_DEFAULT_LAT must be between -90 and 90.")
        if has_default_lon and not (-180 <= self.weather_default_lon <= 180):
            raise ValueError("WEATHER_DEFAULT_LON must be between -180 and 180.")
        if self.geo_source == "static" and not has_default_lat:
            raise ValueError(
                "GEO_SOURCE='static' requires WEATHER_DEFAULT_LAT and WEATHER_DEFAULT_LON."
            )
        return self

    @property
    def refresh_interval_seconds(self) -> float:
        return self.weather_refresh_interval_ms / 1000.0

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "provider": self.weather_provider,
            "api_key_configured": bool(self.weatherapi_key),
            "base_url": self.weather_base_url,
            "timeout_seconds": self.weather_timeout_seconds,
            "refresh_interval_ms": self.weather_refresh_interval_ms,
            "forecast_days": self.weather_forecast_days,
            "retain_stale_on_error": self.weather_retain_stale_on_error,
            "geo_source": self.geo_source,
            "geo_timeout_ms": self.geo_timeout_ms,
            "geo_max_cache_age_ms": self.geo_max_cache_age_ms,
        }


def load_settings(**overrides: Any) -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
