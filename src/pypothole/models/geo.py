"""Geographic value types."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator, model_validator

from pypothole.ingestion.normalize import is_coordinate
from pypothole.models._base import PotholeBaseModel


def require_coordinate(value: object) -> object:
    """Reject booleans, strings and other non-numbers before float coercion."""
    if not is_coordinate(value):
        raise ValueError(f"coordinate must be a finite number, got {value!r}")
    return value


class GeoPoint(PotholeBaseModel):
    """A WGS84 position in degrees.

    Also used as a trip point: a session is an ordered sequence of
    ``GeoPoint`` whose list index is the path order.
    """

    lat: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("lat", "latitude"))
    lon: float = Field(ge=-180.0, le=180.0, validation_alias=AliasChoices("lon", "lng", "longitude"))

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _check_coordinates(cls, value: object) -> object:
        return require_coordinate(value)


class Bounds(PotholeBaseModel):
    """Axis-aligned lat/lon bounding box."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @model_validator(mode="after")
    def _check_order(self) -> Bounds:
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            raise ValueError("bounds minimum exceeds maximum")
        return self
