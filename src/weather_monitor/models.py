"""Location descriptors and geolocation results shared across components."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

GeoFailureReason = Literal[
    "unsupported",
    "permission_denied",
    "position_unavailable",
    "timeout",
    "unknown",
]
AccuracyTier = Literal["precise", "approximate"]


class Coordinates(BaseModel):
    """Latitude/longitude pair. Range checks are left to the upstream."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class CoordsQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["coords"] = "coords"
    lat: float
    lon: float

    def describe(self) -> str:
        return f"{self.lat:.4f},{self.lon:.4f}"


class CityQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["city"] = "city"
    name: str

    def describe(self) -> str:
        return self.name


LocationQuery = Annotated[CoordsQuery | CityQuery, Field(discriminator="kind")]


class GeoFix(BaseModel):
    """Resolved position plus acquisition metadata."""

    model_config = ConfigDict(frozen=True)

    coordinates: Coordinates
    acquired_at: datetime
    accuracy: AccuracyTier
    accuracy_m: float | None = None
    source: str


class GeoFailure(BaseModel):
    """Classified reason a position could not be acquired."""

    model_config = ConfigDict(frozen=True)

    reason: GeoFailureReason
    message: str
