"""Map transport, HTTP-status and provider-reported failures onto DomainError."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from .exceptions import ERROR_MESSAGES, DomainError, ErrorKind

FETCH_FAILED_MESSAGE = "Failed to fetch weather data. Please try again."

_NO_RESPONSE_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True, slots=True)
class ProviderErrorDetail:
    """Structured error body extracted by an adapter from an upstream response."""

    message: str
    kind: ErrorKind | None = None


def status_kind(status_code: int, *, not_found_on_404: bool = True) -> ErrorKind | None:
    """Return the error kind implied by an HTTP status, or None when unmapped."""
    if status_code == 400:
        return ErrorKind.INVALID_REQUEST
    if status_code in (401, 403):
        return ErrorKind.INVALID_API_KEY
    if status_code == 404:
        return ErrorKind.LOCATION_NOT_FOUND if not_found_on_404 else ErrorKind.INVALID_REQUEST
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    return None


def classify(
    failure: BaseException,
    *,
    provider_error: ProviderErrorDetail | None = None,
    not_found_on_404: bool = True,
) -> DomainError:
    """Classify a raw failure into a DomainError.

    Checks run in a fixed order: a structured provider error body wins and its
    message is kept verbatim; then the HTTP status decides; then a request
    that got no response is a network failure; anything else is unknown.
    """
    if isinstance(failure, DomainError):
        return failure

    status_code: int | None = None
    if isinstance(failure, httpx.HTTPStatusError):
        status_code = failure.response.status_code

    if provider_error is not None and provider_error.message.strip():
        kind = provider_error.kind
        if kind is None and status_code is not None:
            kind = status_kind(status_code, not_found_on_404=not_found_on_404)
        return DomainError(
            provider_error.message,
            kind=kind or ErrorKind.UNKNOWN,
            status_code=status_code,
        )

    if status_code is not None:
        kind = status_kind(status_code, not_found_on_404=not_found_on_404)
        if kind is None:
            return DomainError(
                FETCH_FAILED_MESSAGE, kind=ErrorKind.UNKNOWN, status_code=status_code
            )
        return DomainError(ERROR_MESSAGES[kind], kind=kind, status_code=status_code)

    if isinstance(failure, _NO_RESPONSE_ERRORS):
        return DomainError(kind=ErrorKind.NETWORK_UNAVAILABLE)

    return DomainError(kind=ErrorKind.UNKNOWN)
