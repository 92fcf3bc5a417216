"""Application exception classes."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed taxonomy of user-presentable failure kinds."""

    MISSING_INPUT = "missing_input"
    INVALID_REQUEST = "invalid_request"
    LOCATION_NOT_FOUND = "location_not_found"
    INVALID_API_KEY = "invalid_api_key"
    RATE_LIMITED = "rate_limited"
    NETWORK_UNAVAILABLE = "network_unavailable"
    UNKNOWN = "unknown"
    GEO_UNSUPPORTED = "geo_unsupported"
    GEO_PERMISSION_DENIED = "geo_permission_denied"
    GEO_POSITION_UNAVAILABLE = "geo_position_unavailable"
    GEO_TIMEOUT = "geo_timeout"
    GEO_UNKNOWN = "geo_unknown"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MISSING_INPUT: "Please enter a city name.",
    ErrorKind.INVALID_REQUEST: "Invalid request. Please check the city name and try again.",
    ErrorKind.LOCATION_NOT_FOUND: "Location not found. Please check the name and try again.",
    ErrorKind.INVALID_API_KEY: "Invalid API key. Please check your configuration.",
    ErrorKind.RATE_LIMITED: "API rate limit exceeded. Please try again later.",
    ErrorKind.NETWORK_UNAVAILABLE: (
        "No response from server. Please check your internet connection."
    ),
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
    ErrorKind.GEO_UNSUPPORTED: "Geolocation is not supported on this system.",
    ErrorKind.GEO_PERMISSION_DENIED: (
        "Location permission denied. Please search for a city manually."
    ),
    ErrorKind.GEO_POSITION_UNAVAILABLE: "Location information is unavailable.",
    ErrorKind.GEO_TIMEOUT: "Location request timed out.",
    ErrorKind.GEO_UNKNOWN: "An unknown error occurred while getting your location.",
}


class WeatherMonitorError(Exception):
    """Base class for all weather_monitor errors."""


class ConfigError(WeatherMonitorError):
    """Raised when configuration is invalid or incomplete."""


class DomainError(WeatherMonitorError):
    """Classified failure with a stable, user-presentable message."""

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: int | None = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.message = message or ERROR_MESSAGES[self.kind]
        self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class GeoLocationError(DomainError):
    """Raised by geolocation acquisition; carries the failure reason."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message, kind=ErrorKind(f"geo_{reason}"))


class PositionError(WeatherMonitorError):
    """Raised by a position source using W3C geolocation error codes."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"position error code {code}")
        self.code = code
