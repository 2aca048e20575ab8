"""Share image options."""

from __future__ import annotations

from pydantic import Field

from pypothole._constants import DEFAULT_SHARE_HEIGHT, DEFAULT_SHARE_WIDTH
from pypothole.models._base import PotholeBaseModel


class TripStats(PotholeBaseModel):
    """Optional statistics printed under the map."""

    distance_m: float | None = Field(default=None, ge=0)


class ShareOptions(PotholeBaseModel):
    """Canvas size and texts for a share image.

    Layout constants are tuned for 1080x1920; other sizes only rescale
    the map region height.
    """

    width: int = Field(default=DEFAULT_SHARE_WIDTH, gt=0, le=4096)
    height: int = Field(default=DEFAULT_SHARE_HEIGHT, gt=0, le=4096)
    title: str = "Potholes.live"
    subtitle: str | None = None
    stats: TripStats | None = None
