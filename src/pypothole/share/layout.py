"""Share image layout as a list of declarative draw operations.

Operations are applied in order by :func:`pypothole.share.raster.render_draw_ops`.
Keeping them as data lets tests inspect the composition without
rasterising anything.

Positions are fixed constants tuned for a 1080x1920 canvas. Other sizes
only rescale the map region; texts keep their absolute offsets.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pypothole._constants import MAP_REGION_HEIGHT, MAP_REGION_TOP
from pypothole.models.share import ShareOptions

BACKGROUND_STOPS: tuple[tuple[float, str], ...] = (
    (0.0, "#0f172a"),
    (0.3, "#1e293b"),
    (0.7, "#1e293b"),
    (1.0, "#0f172a"),
)
ACCENT = "#8aff7a"
COUNT_COLOR = "#ff4444"
TEXT_COLOR = "#ffffff"
MUTED = "#94a3b8"
FOOTER_MUTED = "#64748b"


@dataclass(frozen=True)
class GradientFill:
    """Vertical linear gradient over a rectangle."""

    x: int
    y: int
    width: int
    height: int
    stops: tuple[tuple[float, str], ...]


@dataclass(frozen=True)
class DrawImage:
    """Encoded raster scaled into a rectangle."""

    image: bytes
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class DrawText:
    """Single line of text; ``y`` is the baseline, ``x`` the anchor."""

    text: str
    x: float
    y: float
    size: int
    weight: int = 400
    color: str = TEXT_COLOR
    align: str = "center"


DrawOp = GradientFill | DrawImage | DrawText


@dataclass(frozen=True)
class MapRegion:
    x: int
    y: int
    width: int
    height: int


def map_region(width: int, height: int) -> MapRegion:
    """Map band: full width, 55% of the height, starting at 25%."""
    return MapRegion(
        x=0,
        y=math.floor(height * MAP_REGION_TOP),
        width=width,
        height=math.floor(height * MAP_REGION_HEIGHT),
    )


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


def build_share_layout(map_image: bytes, count: int, options: ShareOptions) -> list[DrawOp]:
    """Draw operations for a share image of *count* points."""
    width, height = options.width, options.height
    cx = width / 2
    region = map_region(width, height)

    ops: list[DrawOp] = [
        GradientFill(x=0, y=0, width=width, height=height, stops=BACKGROUND_STOPS),
        DrawImage(image=map_image, x=region.x, y=region.y, width=region.width, height=region.height),
        DrawText(options.title, cx, 100, size=56, weight=700, color=ACCENT),
        DrawText(f"{count}", cx, 280, size=200, weight=700, color=COUNT_COLOR),
        DrawText(f"pothole{_plural(count)} mapped", cx, 350, size=52, weight=600, color=TEXT_COLOR),
    ]

    if options.subtitle:
        ops.append(DrawText(f"Location: {options.subtitle}", cx, 410, size=40, weight=500, color=MUTED))

    stats = options.stats
    if stats is not None and stats.distance_m is not None and stats.distance_m > 0:
        bottom_y = region.y + region.height + 80
        ops.append(DrawText(f"{stats.distance_m / 1000:.2f}", cx, bottom_y, size=72, weight=700, color=ACCENT))
        ops.append(DrawText("KM TRAVELED", cx, bottom_y + 55, size=40, weight=600, color=MUTED))

    ops.append(DrawText("Help fix our roads!", cx, height - 140, size=42, weight=600, color=TEXT_COLOR))
    ops.append(
        DrawText("Join the community at potholes.live", cx, height - 80, size=36, weight=500, color=FOOTER_MUTED)
    )
    return ops
