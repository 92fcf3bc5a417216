"""Request/refresh controllers: state, FetchMemory, and the periodic re-fetch timer."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Generic, Literal, TypeVar

from .error_classifier import classify
from .exceptions import DomainError, ErrorKind
from .models import CityQuery, CoordsQuery, LocationQuery
from .observable import Listeners
from .weather.base import CurrentConditionsClient, ForecastClient
from .weather.models import CurrentConditions, Forecast

T = TypeVar("T")

Status = Literal["idle", "loading", "ready", "failed"]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_REFRESH_INTERVAL_SECONDS = 300.0


class RefreshController(ABC, Generic[T]):
    """Tracks loading/error/data for one kind of canonical record.

    Every request bumps a generation counter and only the newest request may
    commit, so a slow response never overwrites a newer one and nothing lands
    after `clear()` or `close()`. FetchMemory is recorded on success only; a
    failed fetch or refresh leaves it untouched so the next refresh retries the
    same target.
    """

    label = "data"

    def __init__(
        self,
        *,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        retain_stale_on_error: bool = False,
        logger: logging.Logger | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be > 0")
        self.refresh_interval_seconds = refresh_interval_seconds
        self.retain_stale_on_error = retain_stale_on_error
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._data: T | None = None
        self._error: DomainError | None = None
        self._status: Status = "idle"
        self._loading = False
        self._memory: LocationQuery | None = None
        self._generation = 0
        self._timer: asyncio.Task[None] | None = None
        self._closed = False
        self._listeners: Listeners[RefreshController[T]] = Listeners(self.logger)

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def error(self) -> DomainError | None:
        return self._error

    @property
    def error_message(self) -> str | None:
        return self._error.message if self._error else None

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def status(self) -> Status:
        return self._status

    @property
    def memory(self) -> LocationQuery | None:
        """The last successfully fetched LocationQuery, reused by `refresh()`."""
        return self._memory

    @property
    def refresh_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Callable[[RefreshController[T]], None]) -> Callable[[], None]:
        """Call `listener(self)` after every state change; returns an unsubscribe callable."""
        return self._listeners.add(listener)

    async def fetch_by_city(self, name: str) -> T | None:
        if not name or not name.strip():
            # Supersedes any request still in flight.
            self._generation += 1
            self._loading = False
            self._error = DomainError(kind=ErrorKind.MISSING_INPUT)
            self._status = "failed"
            self.logger.info("Rejected empty city search.")
            self._listeners.notify(self)
            return None
        return await self._run(CityQuery(name=name.strip()))

    async def fetch_by_coords(self, lat: float, lon: float) -> T | None:
        return await self._run(CoordsQuery(lat=lat, lon=lon))

    async def refresh(self) -> T | None:
        """Re-issue the remembered LocationQuery; no-op when nothing is remembered."""
        if self._memory is None:
            return None
        return await self._run(self._memory)

    def clear(self) -> None:
        """Drop data, error and FetchMemory and disarm the refresh timer."""
        self._generation += 1
        self._data = None
        self._error = None
        self._memory = None
        self._loading = False
        self._status = "idle"
        self._disarm_timer()
        self.logger.debug("%s controller cleared.", self.label)
        self._listeners.notify(self)

    async def close(self) -> None:
        """Tear down: disarm the timer and ignore any response still in flight."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._loading = False
        self._listeners.clear()
        timer = self._disarm_timer()
        if timer is not None and timer is not asyncio.current_task():
            try:
                await timer
            except asyncio.CancelledError:
                pass

    @abstractmethod
    async def _fetch(self, query: LocationQuery) -> T:
        """Call the adapter for `query`."""

    async def _run(self, query: LocationQuery) -> T | None:
        if self._closed:
            self.logger.debug("Ignoring %s request on closed controller.", self.label)
            return None
        self._generation += 1
        generation = self._generation
        self._loading = True
        self._status = "loading"
        self._error = None
        self.logger.debug(
            "Fetching %s for %s (generation=%d).", self.label, query.describe(), generation
        )
        self._listeners.notify(self)

        try:
            data = await self._fetch(query)
        except DomainError as exc:
            self._commit_failure(generation, query, exc)
            return None
        except Exception as exc:
            self._commit_failure(generation, query, classify(exc))
            raise

        if not self._is_current(generation):
            self.logger.debug(
                "Discarding stale %s response for %s (generation=%d).",
                self.label,
                query.describe(),
                generation,
            )
            return None
        self._data = data
        self._error = None
        self._memory = query
        self._loading = False
        self._status = "ready"
        self.logger.info("Fetched %s for %s.", self.label, query.describe())
        self._arm_timer()
        self._listeners.notify(self)
        return data

    def _commit_failure(self, generation: int, query: LocationQuery, error: DomainError) -> None:
        if not self._is_current(generation):
            self.logger.debug("Discarding stale %s failure for %s.", self.label, query.describe())
            return
        self._error = error
        if not self.retain_stale_on_error:
            self._data = None
        self._loading = False
        self._status = "failed"
        self.logger.warning(
            "Fetching %s for %s failed: %s",
            self.label,
            query.describe(),
            error.message,
            extra={"error_kind": error.kind.value, "generation": generation},
        )
        self._listeners.notify(self)

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _arm_timer(self) -> None:
        if self.refresh_armed or self._closed:
            return
        self._timer = asyncio.create_task(self._refresh_loop(), name=f"{self.label}-refresh")
        self.logger.debug(
            "%s refresh armed every %.1fs.", self.label, self.refresh_interval_seconds
        )

    def _disarm_timer(self) -> asyncio.Task[None] | None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
        return timer

    async def _refresh_loop(self) -> None:
        while not self._closed:
            await self._sleep(self.refresh_interval_seconds)
            if self._closed:
                break
            try:
                await self.refresh()
            except Exception as exc:
                self.logger.error("Scheduled %s refresh failed: %s", self.label, exc)


class WeatherController(RefreshController[CurrentConditions]):
    """Current-conditions state for the presentation layer."""

    label = "current conditions"

    def __init__(self, client: CurrentConditionsClient, **kwargs) -> None:
        super().__init__(**kwargs)
        self.client = client

    async def _fetch(self, query: LocationQuery) -> CurrentConditions:
        if isinstance(query, CoordsQuery):
            return await self.client.fetch_by_coords(query.lat, query.lon)
        return await self.client.fetch_by_city(query.name)


class ForecastController(RefreshController[Forecast]):
    """Forecast state; every request asks for the controller's `days`."""

    label = "forecast"

    def __init__(self, client: ForecastClient, *, days: int = 5, **kwargs) -> None:
        super().__init__(**kwargs)
        self.client = client
        self.days = days

    async def _fetch(self, query: LocationQuery) -> Forecast:
        if isinstance(query, CoordsQuery):
            return await self.client.fetch_by_coords(query.lat, query.lon, days=self.days)
        return await self.client.fetch_by_city(query.name, days=self.days)
