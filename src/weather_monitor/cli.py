"""Command-line weather monitor: current conditions, forecast, air quality and alerts."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime, timedelta, timezone

from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .controller import RefreshController
from .exceptions import ConfigError, DomainError, ErrorKind
from .log_setup import setup_logger
from .session import WeatherSession
from .weather.models import CurrentConditions, Forecast


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse weather monitor CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Show current weather and forecast for a city, coordinates, or your location."
    )
    parser.add_argument("--city", type=str, default=None, help="City name to search for.")
    parser.add_argument("--lat", type=float, default=None, help="Latitude.")
    parser.add_argument("--lon", type=float, default=None, help="Longitude.")
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Forecast days to request (defaults to WEATHER_FORECAST_DAYS).",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and print each periodic refresh until interrupted.",
    )
    parser.add_argument(
        "--max-hours",
        type=float,
        default=None,
        help="Stop watching after this many hours.",
    )
    return parser.parse_args(argv)


def _validate_cli_input(args: argparse.Namespace) -> None:
    if args.city is not None and (args.lat is not None or args.lon is not None):
        raise DomainError(
            "Use either --city or --lat/--lon, not both.", kind=ErrorKind.INVALID_REQUEST
        )
    if (args.lat is None) != (args.lon is None):
        raise DomainError(
            "--lat and --lon must be passed together.", kind=ErrorKind.INVALID_REQUEST
        )
    if args.lat is not None and not (-90 <= args.lat <= 90):
        raise DomainError(
            f"Invalid latitude {args.lat}; expected between -90 and 90.",
            kind=ErrorKind.INVALID_REQUEST,
        )
    if args.lon is not None and not (-180 <= args.lon <= 180):
        raise DomainError(
            f"Invalid longitude {args.lon}; expected between -180 and 180.",
            kind=ErrorKind.INVALID_REQUEST,
        )
    if args.days is not None and not (1 <= args.days <= 14):
        raise DomainError("--days must be between 1 and 14.", kind=ErrorKind.INVALID_REQUEST)
    if args.max_hours is not None and args.max_hours <= 0:
        raise DomainError("--max-hours must be > 0 when provided.", kind=ErrorKind.INVALID_REQUEST)


def _local_clock(epoch: int, offset_seconds: int) -> str:
    moment = datetime.fromtimestamp(epoch, tz=timezone(timedelta(seconds=offset_seconds)))
    return moment.strftime("%H:%M")


def print_current(console: Console, current: CurrentConditions) -> None:
    table = Table(title=f"{current.city}, {current.country}" if current.country else current.city)
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Condition", f"{current.condition} ({current.description})")
    table.add_row("Temperature", f"{current.temperature} °C")
    table.add_row("Feels like", f"{current.feels_like} °C")
    table.add_row("Humidity", f"{current.humidity}%")
    table.add_row("Wind", f"{current.wind_speed:g} m/s")
    table.add_row("Sunrise", _local_clock(current.sunrise, current.timezone_offset))
    table.add_row("Sunset", _local_clock(current.sunset, current.timezone_offset))
    table.add_row(
        "Observed (UTC)", datetime.fromtimestamp(current.observed_at, tz=UTC).isoformat()
    )
    table.add_row("Provider", current.provider)
    console.print(table)


def print_forecast(console: Console, forecast: Forecast) -> None:
    if not forecast.days:
        console.print("No forecast days returned.")
    else:
        table = Table(title=f"{len(forecast.days)}-day forecast for {forecast.location.name}")
        table.add_column("Date")
        table.add_column("Condition", overflow="fold")
        table.add_column("Min")
        table.add_column("Max")
        table.add_column("Rain %")
        table.add_column("Snow %")
        table.add_column("Max wind")
        table.add_column("Sunrise")
        table.add_column("Sunset")
        for day in forecast.days:
            table.add_row(
                day.date.isoformat(),
                f"{day.condition} ({day.condition_text})" if day.condition_text else day.condition,
                f"{day.min_temp} °C",
                f"{day.max_temp} °C",
                f"{day.chance_of_rain}" if day.chance_of_rain is not None else "-",
                f"{day.chance_of_snow}" if day.chance_of_snow is not None else "-",
                f"{day.max_wind:g} m/s",
                day.astro.sunrise or "-",
                day.astro.sunset or "-",
            )
        console.print(table)

    if forecast.air_quality is not None:
        air = forecast.air_quality
        table = Table(title="Air quality")
        for column in ("PM2.5", "PM10", "O3", "NO2", "US EPA index"):
            table.add_column(column)
        table.add_row(
            *(
                f"{value:g}" if value is not None else "-"
                for value in (air.pm2_5, air.pm10, air.o3, air.no2)
            ),
            str(air.us_epa_index) if air.us_epa_index is not None else "-",
        )
        console.print(table)

    if forecast.alerts:
        table = Table(title="Weather alerts")
        table.add_column("Event")
        table.add_column("Severity")
        table.add_column("Expires")
        table.add_column("Headline", overflow="fold")
        for alert in forecast.alerts:
            table.add_row(
                alert.event or "-",
                alert.severity or "-",
                alert.expires or "-",
                alert.headline or "-",
            )
        console.print(table)


def print_session(console: Console, session: WeatherSession) -> None:
    if session.weather.data is not None:
        print_current(console, session.weather.data)
    if session.forecast.data is not None:
        print_forecast(console, session.forecast.data)
    if session.error_message:
        console.print(f"[red]{session.error_message}[/red]")


def _watch_listener(console: Console):
    def _on_change(controller: RefreshController) -> None:
        if controller.status == "ready" and isinstance(controller.data, CurrentConditions):
            print_current(console, controller.data)
        elif controller.status == "ready" and isinstance(controller.data, Forecast):
            print_forecast(console, controller.data)
        elif controller.status == "failed" and controller.error_message:
            console.print(f"[red]{controller.label}: {controller.error_message}[/red]")

    return _on_change


async def run(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
    session: WeatherSession | None = None,
) -> int:
    """Fetch once, print, and optionally keep watching. Returns the exit code."""
    session = session or WeatherSession.from_settings(settings, logger=logger, days=args.days)
    try:
        if args.city is not None:
            await session.search(args.city)
        elif args.lat is not None:
            await session.fetch_coords(args.lat, args.lon)
        else:
            fix = await session.start()
            if fix is None:
                console.print(f"[red]{session.geo.error_message}[/red]")
                console.print("Pass --city or --lat/--lon to choose a location manually.")
                return 4

        print_session(console, session)
        if session.weather.data is None and session.forecast.data is None:
            return 4

        if args.watch:
            listener = _watch_listener(console)
            session.weather.subscribe(listener)
            session.forecast.subscribe(listener)
            logger.info(
                "Watching; refreshing every %.0fs.", settings.refresh_interval_seconds
            )
            if args.max_hours is not None:
                await asyncio.sleep(args.max_hours * 3600)
            else:
                await asyncio.Event().wait()
        return 0
    finally:
        await session.close()


def main(argv: list[str] | None = None) -> int:
    """Run the weather monitor CLI."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger.setLevel(settings.log_level)
    logger.info("Starting weather monitor: %s", settings.safe_summary())

    try:
        _validate_cli_input(args)
        return asyncio.run(run(args, settings, logger, console))
    except DomainError as exc:
        logger.error("Weather monitor failure: kind=%s message=%s", exc.kind.value, exc.message)
        return 4
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
