"""Live query descriptions."""

from __future__ import annotations

from pydantic import Field

from pypothole._constants import NEARBY_LIMIT, OWNER_LIMIT
from pypothole.models._base import PotholeBaseModel
from pypothole.models.geo import GeoPoint


class NearbyQuery(PotholeBaseModel):
    """Reports around ``center``, newest first.

    ``radius_m`` is carried for callers but is not applied to results:
    nearby delivery is bounded by ``limit`` only.
    """

    center: GeoPoint
    radius_m: float = Field(gt=0)
    limit: int = Field(default=NEARBY_LIMIT, gt=0)


class OwnerQuery(PotholeBaseModel):
    """Reports submitted by one owner, newest first."""

    owner_id: str = Field(min_length=1)
    limit: int = Field(default=OWNER_LIMIT, gt=0)
