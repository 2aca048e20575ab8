"""Pothole report model."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pypothole.ingestion.normalize import safe_str
from pypothole.models._base import PotholeBaseModel
from pypothole.models.geo import GeoPoint, require_coordinate


class Report(PotholeBaseModel):
    """One geolocated pothole detection.

    Parameters
    ----------
    id : str or None
        Repository-assigned id. ``None`` until the report is persisted;
        callers never choose it.
    lat : float
        Latitude in degrees, finite, within [-90, 90].
    lon : float
        Longitude in degrees, finite, within [-180, 180].
    ts : int
        Detection time in epoch milliseconds. Reports from different
        devices may arrive out of order.
    uid : str or None
        Opaque owner id supplied by the identity layer.
    model : str or None
        Name of the detector model that produced the report.
    conf : float or None
        Detector confidence in [0, 1].
    """

    id: str | None = None
    lat: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("lat", "latitude"))
    lon: float = Field(ge=-180.0, le=180.0, validation_alias=AliasChoices("lon", "lng", "longitude"))
    ts: int = Field(ge=0, validation_alias=AliasChoices("ts", "timestamp"))
    uid: str | None = Field(default=None, validation_alias=AliasChoices("uid", "owner_id", "user_id"))
    model: str | None = None
    conf: float | None = Field(default=None, ge=0.0, le=1.0)

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _check_coordinates(cls, value: object) -> object:
        return require_coordinate(value)

    @field_validator("uid", "model", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        return safe_str(value)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)

    def to_document(self) -> dict[str, object]:
        """Document body as written to the store (``id`` is the key, not a field)."""
        return self.model_dump(exclude={"id"}, exclude_none=True)
