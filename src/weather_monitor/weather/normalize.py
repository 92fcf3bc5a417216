"""Unit conversion and condition mapping shared by all provider adapters."""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, time
from typing import Any

from .models import Condition

# Checked in order; first match wins. Unmatched text falls back to Clouds.
CONDITION_RULES: tuple[tuple[Condition, tuple[str, ...]], ...] = (
    ("Thunderstorm", ("thunder", "storm")),
    ("Clear", ("clear", "sun")),
    ("Clouds", ("cloud", "overcast")),
    ("Rain", ("rain", "drizzle", "shower")),
    ("Snow", ("snow", "sleet", "blizzard", "ice pellets")),
    ("Mist", ("mist", "fog", "haze")),
)
DEFAULT_CONDITION: Condition = "Clouds"

PLACEHOLDER_SUNRISE = time(6, 0)
PLACEHOLDER_SUNSET = time(18, 0)

_LOCALTIME_FORMAT = "%Y-%m-%d %H:%M"
_OFFSET_GRANULARITY_SECONDS = 900


def map_condition(text: str | None) -> Condition:
    """Map free-text provider condition onto the six canonical values."""
    lowered = (text or "").lower()
    for condition, needles in CONDITION_RULES:
        if any(needle in lowered for needle in needles):
            return condition
    return DEFAULT_CONDITION


def round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def round_temp(value: Any) -> int:
    """Round a Celsius reading to the nearest integer (halves round up)."""
    return int(round_half_up(float(value)))


def kph_to_mps(value: Any) -> float:
    """Convert km/h to m/s with one decimal."""
    return round_half_up(float(value) / 3.6, 1)


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(round_half_up(float(value)))
    if isinstance(value, str) and value.strip():
        try:
            return int(round_half_up(float(value)))
        except ValueError:
            return None
    return None


def as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_localtime(localtime: str | None) -> datetime | None:
    """Parse a provider local wall-clock string ("2024-01-15 9:05") as naive datetime."""
    if not localtime:
        return None
    try:
        return datetime.strptime(localtime.strip(), _LOCALTIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(localtime.strip())
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def timezone_offset_from_localtime(localtime: str | None, localtime_epoch: Any) -> int:
    """Derive the UTC offset in seconds from a local wall-clock time and its epoch.

    Returns 0 when either value is missing or unparseable.
    """
    local = parse_localtime(localtime)
    epoch = as_float(localtime_epoch)
    if local is None or epoch is None:
        return 0
    wall_clock_as_utc = local.replace(tzinfo=UTC).timestamp()
    raw_offset = wall_clock_as_utc - epoch
    return int(round(raw_offset / _OFFSET_GRANULARITY_SECONDS) * _OFFSET_GRANULARITY_SECONDS)


def local_date(localtime: str | None, fallback_epoch: int, offset: int) -> date:
    local = parse_localtime(localtime)
    if local is not None:
        return local.date()
    return datetime.fromtimestamp(fallback_epoch + offset, tz=UTC).date()


def local_wall_clock_to_epoch(day: date, wall_clock: time, offset: int) -> int:
    return int(datetime.combine(day, wall_clock, tzinfo=UTC).timestamp()) - offset


def placeholder_sun_times(day: date, offset: int) -> tuple[int, int]:
    """Fixed 06:00/18:00 local sunrise/sunset for providers without astronomy data."""
    return (
        local_wall_clock_to_epoch(day, PLACEHOLDER_SUNRISE, offset),
        local_wall_clock_to_epoch(day, PLACEHOLDER_SUNSET, offset),
    )


def format_clock(value: datetime) -> str:
    """Format a wall-clock time the way astronomy records carry it ("06:45 AM")."""
    return value.strftime("%I:%M %p")
