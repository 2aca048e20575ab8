"""Geo math: great-circle distance, bounds and map framing.

Pure functions over anything exposing ``lat``/``lon`` attributes
(:class:`~pypothole.models.GeoPoint`, :class:`~pypothole.models.Report`).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol

from pypothole._constants import (
    EARTH_RADIUS_M,
    MAX_ZOOM,
    MERCATOR_MAX_LAT,
    MIN_SPAN_FRACTION,
    MIN_ZOOM,
    SINGLE_POINT_ZOOM,
    TILE_SIZE,
    ZOOM_PADDING_FACTOR,
)
from pypothole.exceptions import EmptyInputError
from pypothole.models.geo import Bounds, GeoPoint


class LatLon(Protocol):
    @property
    def lat(self) -> float: ...

    @property
    def lon(self) -> float: ...


def haversine_m(a: LatLon, b: LatLon) -> float:
    """Great-circle distance in meters on a 6,371 km sphere."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = phi2 - phi1
    dlam = math.radians(b.lon - a.lon)
    h = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2.0) ** 2
    # Rounding can push h slightly outside [0, 1] near antipodes.
    h = min(1.0, max(0.0, h))
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def path_distance_m(points: Sequence[LatLon]) -> float:
    """Length of the polyline through *points* in order."""
    return sum(haversine_m(points[i - 1], points[i]) for i in range(1, len(points)))


def compute_bounds(points: Sequence[LatLon]) -> Bounds:
    """Bounding box of *points*.

    Raises :class:`EmptyInputError` for an empty sequence; callers pick
    a default center themselves in that case.
    """
    if not points:
        raise EmptyInputError("cannot compute bounds of an empty point sequence")
    lats = [p.lat for p in points]
    lons = [p.lon for p in points]
    return Bounds(min_lat=min(lats), max_lat=max(lats), min_lon=min(lons), max_lon=max(lons))


def bounds_center(bounds: Bounds) -> GeoPoint:
    return GeoPoint(
        lat=(bounds.min_lat + bounds.max_lat) / 2.0,
        lon=(bounds.min_lon + bounds.max_lon) / 2.0,
    )


def lat_band(lat: float, half_width_deg: float) -> tuple[float, float]:
    """Latitude interval ``[lat - w, lat + w]`` used as a coarse range filter."""
    return lat - half_width_deg, lat + half_width_deg


def mercator_y(lat: float) -> float:
    """Web Mercator y (radians) with latitude clamped to +/-85 degrees."""
    clamped = max(min(lat, MERCATOR_MAX_LAT), -MERCATOR_MAX_LAT)
    rad = math.radians(clamped)
    return math.log(math.tan(math.pi / 4.0 + rad / 2.0))


def _density_adjusted(zoom: float, count: int) -> float:
    # Breakpoints are tuned by eye; keep them exact for output parity.
    if count <= 3:
        return min(zoom + 0.8, MAX_ZOOM)
    if count >= 20:
        return max(zoom - 1.2, MIN_ZOOM)
    if count >= 10:
        return max(zoom - 0.6, 9.5)
    return zoom


def adaptive_zoom(points: Sequence[LatLon], viewport_width: int, viewport_height: int) -> float:
    """Pick a zoom so the padded bounds of *points* fit the viewport.

    A single point (or none) gets a fixed close-up zoom. Sparse sessions
    zoom in, dense ones zoom out for context. Result is within [9, 17].
    """
    if len(points) <= 1:
        return SINGLE_POINT_ZOOM

    bounds = compute_bounds(points)

    lat_fraction = (
        max((mercator_y(bounds.max_lat) - mercator_y(bounds.min_lat)) / (2.0 * math.pi), MIN_SPAN_FRACTION)
        * ZOOM_PADDING_FACTOR
    )
    lon_fraction = max(bounds.max_lon - bounds.min_lon, MIN_SPAN_FRACTION) / 360.0 * ZOOM_PADDING_FACTOR

    lat_zoom = math.log2(viewport_height / TILE_SIZE / lat_fraction)
    lon_zoom = math.log2(viewport_width / TILE_SIZE / lon_fraction)
    # A tight cluster is never framed closer than a lone point. This also
    # widens tight clusters of 4-19 points on purpose: they top out at 16.5
    # (15.9 for 10-19 points) where the uncapped fit gives up to 17 (16.7).
    fit = min(lat_zoom, lon_zoom, SINGLE_POINT_ZOOM)
    zoom = _density_adjusted(fit, len(points))

    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))
