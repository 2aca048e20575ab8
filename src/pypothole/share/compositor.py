"""Share image pipeline: frame the points, fetch the map, composite.

Everything except the single tile fetch is deterministic and pure; the
compositor keeps no state between calls and is safe to use concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from PIL import UnidentifiedImageError

from pypothole._cancel import SignalCancelled, run_cancellable
from pypothole._constants import (
    FALLBACK_CENTER_LAT,
    FALLBACK_CENTER_LON,
    FALLBACK_PIN_URL,
    FALLBACK_ZOOM,
    MAP_STYLE,
)
from pypothole.exceptions import TileFetchError
from pypothole.geo import LatLon, adaptive_zoom, bounds_center, compute_bounds
from pypothole.models.geo import GeoPoint
from pypothole.models.share import ShareOptions
from pypothole.share.layout import DrawOp, MapRegion, build_share_layout, map_region
from pypothole.share.overlays import build_overlay
from pypothole.share.raster import render_draw_ops
from pypothole.share.tiles import TileFetcher, TileRequest

_logger = logging.getLogger(__name__)

FALLBACK_CENTER = GeoPoint(lat=FALLBACK_CENTER_LAT, lon=FALLBACK_CENTER_LON)


def as_points(points: Sequence[LatLon | Mapping[str, Any]]) -> list[GeoPoint]:
    """Normalise reports, points and ``{"lat", "lon"}`` mappings to :class:`GeoPoint`."""
    result: list[GeoPoint] = []
    for p in points:
        if isinstance(p, GeoPoint):
            result.append(p)
        elif isinstance(p, Mapping):
            result.append(GeoPoint.model_validate(p))
        else:
            result.append(GeoPoint(lat=p.lat, lon=p.lon))
    return result


@dataclass(frozen=True)
class SharePlan:
    """Camera framing and tile request for one share image."""

    points: tuple[GeoPoint, ...]
    center: GeoPoint
    zoom: float
    is_fallback: bool
    region: MapRegion
    tile_request: TileRequest


class ShareCompositor:
    """Turns a point sequence into an encoded share image."""

    def __init__(
        self,
        tile_fetcher: TileFetcher,
        *,
        style: str = MAP_STYLE,
        pin_url: str = FALLBACK_PIN_URL,
        image_format: str = "PNG",
    ) -> None:
        self._tiles = tile_fetcher
        self._style = style
        self._pin_url = pin_url
        self._format = image_format

    def plan(self, points: Sequence[LatLon | Mapping[str, Any]], options: ShareOptions | None = None) -> SharePlan:
        opts = options or ShareOptions()
        geo_points = tuple(as_points(points))
        region = map_region(opts.width, opts.height)

        if geo_points:
            center = bounds_center(compute_bounds(geo_points))
            zoom = adaptive_zoom(geo_points, region.width, region.height)
        else:
            center = FALLBACK_CENTER
            zoom = FALLBACK_ZOOM

        request = TileRequest(
            points=geo_points,
            width=region.width,
            height=region.height,
            style=self._style,
            pin_url=self._pin_url,
            overlay=build_overlay(geo_points, self._pin_url),
            center=center,
            zoom=zoom,
        )
        return SharePlan(
            points=geo_points,
            center=center,
            zoom=zoom,
            is_fallback=not geo_points,
            region=region,
            tile_request=request,
        )

    def layout(self, plan: SharePlan, map_image: bytes, options: ShareOptions | None = None) -> list[DrawOp]:
        return build_share_layout(map_image, len(plan.points), options or ShareOptions())

    def _render(self, ops: list[DrawOp], options: ShareOptions) -> bytes:
        try:
            return render_draw_ops(ops, options.width, options.height, self._format)
        except UnidentifiedImageError as exc:
            raise TileFetchError("Static map response is not a decodable image") from exc

    async def compose(
        self,
        points: Sequence[LatLon | Mapping[str, Any]],
        options: ShareOptions | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> bytes | None:
        """Render the share image for *points*.

        Returns ``None`` if *cancel* fires while the map is being
        fetched. Raises :class:`TileFetchError` when the fetch fails;
        nothing is retried here.
        """
        opts = options or ShareOptions()
        plan = self.plan(points, opts)
        _logger.debug(
            "Composing share image points=%d center=%.6f,%.6f zoom=%.2f",
            len(plan.points),
            plan.center.lat,
            plan.center.lon,
            plan.zoom,
        )

        try:
            map_image = await run_cancellable(self._tiles.fetch(plan.tile_request), cancel)
        except SignalCancelled:
            _logger.debug("Share image cancelled during map fetch")
            return None

        ops = self.layout(plan, map_image, opts)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._render, ops, opts)
