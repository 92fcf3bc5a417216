"""Provider-agnostic adapter contracts and the shared HTTP plumbing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..error_classifier import ProviderErrorDetail, classify
from ..exceptions import DomainError, ErrorKind
from ..redaction import sanitize_text
from .models import CurrentConditions, Forecast

DEFAULT_TIMEOUT_SECONDS = 15.0


class ProviderAdapter(ABC):
    """Owns one httpx.AsyncClient and turns upstream failures into DomainError.

    Adapters never retry; every failure is classified and raised to the caller.
    """

    provider_name: str = "unknown"
    # Upstreams that answer 404 for unknown places; others fold it into 400.
    not_found_on_404: bool = False

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept": "application/json", "User-Agent": "weather-monitor/0.1"},
        )

    async def __aenter__(self) -> ProviderAdapter:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any], *, context: str) -> dict[str, Any]:
        """Issue one GET and return the decoded object, or raise a classified DomainError."""
        self.logger.info(
            "%s %s request: %s",
            self.provider_name,
            context,
            url,
            extra={"params": params},
        )
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = self.extract_error(exc.response)
            error = classify(exc, provider_error=detail, not_found_on_404=self.not_found_on_404)
            self.logger.warning(
                "%s %s failed with status %d: %s",
                self.provider_name,
                context,
                exc.response.status_code,
                error.message,
                extra={"error_kind": error.kind.value, "status_code": exc.response.status_code},
            )
            raise error from exc
        except httpx.HTTPError as exc:
            error = classify(exc)
            self.logger.warning(
                "%s %s request failed (%s): kind=%s",
                self.provider_name,
                context,
                type(exc).__name__,
                error.kind.value,
            )
            raise error from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DomainError(kind=ErrorKind.UNKNOWN, status_code=response.status_code) from exc
        if not isinstance(payload, dict):
            self.logger.warning(
                "%s %s returned unexpected payload type %s",
                self.provider_name,
                context,
                type(payload).__name__,
            )
            raise DomainError(kind=ErrorKind.UNKNOWN, status_code=response.status_code)

        # Some upstreams embed an error object in an otherwise successful response.
        embedded = self.extract_error_payload(payload)
        if embedded is not None:
            error = DomainError(embedded.message, kind=embedded.kind or ErrorKind.UNKNOWN)
            self.logger.warning(
                "%s %s returned embedded error: kind=%s message=%s",
                self.provider_name,
                context,
                error.kind.value,
                sanitize_text(error.message),
            )
            raise error
        return payload

    def extract_error(self, response: httpx.Response) -> ProviderErrorDetail | None:
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        return self.extract_error_payload(body)

    def extract_error_payload(self, payload: dict[str, Any]) -> ProviderErrorDetail | None:
        """Return the provider's structured error, if the payload carries one."""
        return None

    def _normalization_failed(self, context: str, exc: Exception) -> DomainError:
        self.logger.warning(
            "%s %s payload could not be normalized: %s: %s",
            self.provider_name,
            context,
            type(exc).__name__,
            exc,
        )
        return DomainError(kind=ErrorKind.UNKNOWN)


class CurrentConditionsClient(ProviderAdapter):
    """Fetches current conditions for a location as a CurrentConditions record."""

    @abstractmethod
    async def fetch_by_coords(self, lat: float, lon: float) -> CurrentConditions:
        """Fetch current conditions for a coordinate pair."""

    @abstractmethod
    async def fetch_by_city(self, name: str) -> CurrentConditions:
        """Fetch current conditions for a free-text place name."""


class ForecastClient(ProviderAdapter):
    """Fetches a multi-day forecast for a location as a Forecast record."""

    @abstractmethod
    async def fetch_by_coords(self, lat: float, lon: float, days: int = 5) -> Forecast:
        """Fetch a forecast for a coordinate pair."""

    @abstractmethod
    async def fetch_by_city(self, name: str, days: int = 5) -> Forecast:
        """Fetch a forecast for a free-text place name."""
