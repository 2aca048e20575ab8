"""Static-map overlay strings (route path and pins).

Format follows the Mapbox Static Images API:

* path: ``path-{width}+{color}-{opacity}(lon,lat,lon,lat,...)``
* pin:  ``url-{urlencoded icon}(lon,lat)``

The path is listed first so pins draw on top of it.
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

from pypothole._constants import PATH_STROKE_COLOR, PATH_STROKE_OPACITY, PATH_STROKE_WIDTH
from pypothole.geo import LatLon


def _coord(point: LatLon) -> str:
    return f"{point.lon:.6f},{point.lat:.6f}"


def path_overlay(points: Sequence[LatLon]) -> str:
    """Route through *points* in order; empty for fewer than two points."""
    if len(points) < 2:
        return ""
    coords = ",".join(_coord(p) for p in points)
    return f"path-{PATH_STROKE_WIDTH}+{PATH_STROKE_COLOR}-{PATH_STROKE_OPACITY}({coords})"


def pin_overlays(points: Sequence[LatLon], pin_url: str) -> list[str]:
    """One custom-icon marker per point, all sharing *pin_url*."""
    # Same escaping as JavaScript's encodeURIComponent.
    encoded_icon = quote(pin_url, safe="!*'()")
    return [f"url-{encoded_icon}({_coord(p)})" for p in points]


def build_overlay(points: Sequence[LatLon], pin_url: str) -> str:
    """Comma-joined overlay string: path first, then pins. Empty when no points."""
    parts: list[str] = []
    path = path_overlay(points)
    if path:
        parts.append(path)
    parts.extend(pin_overlays(points, pin_url))
    return ",".join(parts)
