"""Position acquisition with classified failures and one-shot retry."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from .config import Settings
from .exceptions import ERROR_MESSAGES, ErrorKind, GeoLocationError, PositionError
from .models import AccuracyTier, Coordinates, GeoFailure, GeoFailureReason, GeoFix
from .observable import Listeners

IP_LOOKUP_URL = "http://ip-api.com/json/?fields=status,message,lat,lon,city,country"
PRECISE_ACCURACY_METERS = 100.0
IP_ACCURACY_METERS = 5000.0

_POSITION_ERROR_REASONS: dict[int, GeoFailureReason] = {
    PositionError.PERMISSION_DENIED: "permission_denied",
    PositionError.POSITION_UNAVAILABLE: "position_unavailable",
    PositionError.TIMEOUT: "timeout",
}


@dataclass(frozen=True, slots=True)
class PositionOptions:
    """Options handed to the position primitive on every request."""

    high_accuracy: bool = False
    timeout_ms: int = 10_000
    max_cache_age_ms: int = 300_000


@dataclass(frozen=True, slots=True)
class PositionReading:
    lat: float
    lon: float
    accuracy_m: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class PositionSource(ABC):
    """Platform location primitive. Raises PositionError on failure."""

    name = "unknown"

    @abstractmethod
    async def request_position(self, options: PositionOptions) -> PositionReading:
        """Return the current position."""

    async def aclose(self) -> None:
        return None


class StaticPositionSource(PositionSource):
    """Fixed coordinates from configuration."""

    name = "static"

    def __init__(self, lat: float, lon: float) -> None:
        self.lat = lat
        self.lon = lon

    async def request_position(self, options: PositionOptions) -> PositionReading:
        return PositionReading(lat=self.lat, lon=self.lon, accuracy_m=0.0)


class IPPositionSource(PositionSource):
    """City-level position from a public IP lookup.

    A previous reading younger than `options.max_cache_age_ms` is returned
    without a new lookup.
    """

    name = "ip"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        url: str = IP_LOOKUP_URL,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=10.0)
        self.url = url
        self._monotonic = monotonic
        self._cached: tuple[float, PositionReading] | None = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request_position(self, options: PositionOptions) -> PositionReading:
        if self._cached is not None:
            cached_at, reading = self._cached
            if (self._monotonic() - cached_at) * 1000 <= options.max_cache_age_ms:
                return reading

        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PositionError(
                PositionError.POSITION_UNAVAILABLE, f"IP lookup failed: {type(exc).__name__}"
            ) from exc

        if not isinstance(payload, dict) or payload.get("status") != "success":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise PositionError(
                PositionError.POSITION_UNAVAILABLE,
                f"IP lookup unsuccessful: {message or 'unknown'}",
            )
        try:
            reading = PositionReading(
                lat=float(payload["lat"]),
                lon=float(payload["lon"]),
                accuracy_m=IP_ACCURACY_METERS,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise PositionError(
                PositionError.POSITION_UNAVAILABLE, "IP lookup returned no coordinates"
            ) from exc
        self._cached = (self._monotonic(), reading)
        return reading


def build_position_source(settings: Settings) -> PositionSource | None:
    """Return the configured position source, or None when the capability is absent."""
    if settings.geo_source == "none":
        return None
    if settings.geo_source == "static":
        return StaticPositionSource(settings.weather_default_lat, settings.weather_default_lon)
    return IPPositionSource()


def accuracy_tier(accuracy_m: float | None) -> AccuracyTier:
    if accuracy_m is not None and accuracy_m <= PRECISE_ACCURACY_METERS:
        return "precise"
    return "approximate"


class GeoFixProvider:
    """Acquires a GeoFix from a PositionSource and tracks the last outcome.

    State is replaced wholesale on every attempt: a success clears any prior
    failure and a failure clears the loading flag. Results that land after
    `close()` or after a newer attempt started are dropped.
    """

    def __init__(
        self,
        source: PositionSource | None,
        *,
        options: PositionOptions | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.source = source
        self.options = options or PositionOptions()
        self.logger = logger or logging.getLogger(__name__)
        self._fix: GeoFix | None = None
        self._failure: GeoFailure | None = None
        self._loading = False
        self._generation = 0
        self._closed = False
        self._listeners: Listeners[GeoFixProvider] = Listeners(self.logger)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, logger: logging.Logger | None = None
    ) -> GeoFixProvider:
        return cls(
            build_position_source(settings),
            options=PositionOptions(
                high_accuracy=settings.geo_high_accuracy,
                timeout_ms=settings.geo_timeout_ms,
                max_cache_age_ms=settings.geo_max_cache_age_ms,
            ),
            logger=logger,
        )

    @property
    def fix(self) -> GeoFix | None:
        return self._fix

    @property
    def failure(self) -> GeoFailure | None:
        return self._failure

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def permission_denied(self) -> bool:
        return self._failure is not None and self._failure.reason == "permission_denied"

    @property
    def error_message(self) -> str | None:
        return self._failure.message if self._failure else None

    def subscribe(self, listener: Callable[[GeoFixProvider], None]) -> Callable[[], None]:
        return self._listeners.add(listener)

    async def acquire(self) -> GeoFix:
        """Request a position once; raise GeoLocationError on classified failure."""
        if self._closed:
            raise GeoLocationError("unknown", "Geolocation provider is closed.")
        self._generation += 1
        generation = self._generation
        self._loading = True
        self._failure = None
        self._listeners.notify(self)

        if self.source is None:
            self.logger.warning("Geolocation unsupported: no position source configured.")
            raise self._fail(generation, "unsupported")

        self.logger.info("Requesting position from %s source.", self.source.name)
        try:
            async with asyncio.timeout(self.options.timeout_ms / 1000):
                reading = await self.source.request_position(self.options)
        except TimeoutError as exc:
            raise self._fail(generation, "timeout") from exc
        except PositionError as exc:
            self.logger.warning("Position request failed: code=%d %s", exc.code, exc)
            raise self._fail(generation, _POSITION_ERROR_REASONS.get(exc.code, "unknown")) from exc
        except Exception as exc:  # pragma: no cover - source implementations vary
            self.logger.exception("Position source raised unexpectedly: %s", exc)
            raise self._fail(generation, "unknown") from exc

        fix = GeoFix(
            coordinates=Coordinates(lat=reading.lat, lon=reading.lon),
            acquired_at=reading.timestamp,
            accuracy=accuracy_tier(reading.accuracy_m),
            accuracy_m=reading.accuracy_m,
            source=self.source.name,
        )
        if self._is_current(generation):
            self._fix = fix
            self._failure = None
            self._loading = False
            self.logger.info(
                "Position acquired: lat=%.4f lon=%.4f accuracy=%s",
                fix.coordinates.lat,
                fix.coordinates.lon,
                fix.accuracy,
            )
            self._listeners.notify(self)
        return fix

    async def retry(self) -> GeoFix:
        """Re-issue acquisition with unchanged options, replacing any prior failure."""
        self.logger.info("Retrying geolocation.")
        return await self.acquire()

    async def close(self) -> None:
        self._closed = True
        self._loading = False
        self._listeners.clear()
        if self.source is not None:
            await self.source.aclose()

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _fail(self, generation: int, reason: GeoFailureReason) -> GeoLocationError:
        error = GeoLocationError(reason, ERROR_MESSAGES[ErrorKind(f"geo_{reason}")])
        if self._is_current(generation):
            self._failure = GeoFailure(reason=reason, message=error.message)
            self._loading = False
            self.logger.warning("Geolocation failed: reason=%s", reason)
            self._listeners.notify(self)
        return error
