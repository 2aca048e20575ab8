"""Share image compositor."""

from pypothole.share.compositor import SharePlan, ShareCompositor, as_points
from pypothole.share.geocode import ReverseGeocoder
from pypothole.share.layout import DrawImage, DrawOp, DrawText, GradientFill, build_share_layout
from pypothole.share.message import build_share_message
from pypothole.share.raster import render_draw_ops
from pypothole.share.tiles import StaticMapTileClient, TileFetcher, TileRequest

__all__ = [
    "DrawImage",
    "DrawOp",
    "DrawText",
    "GradientFill",
    "ReverseGeocoder",
    "ShareCompositor",
    "SharePlan",
    "StaticMapTileClient",
    "TileFetcher",
    "TileRequest",
    "as_points",
    "build_share_layout",
    "build_share_message",
    "render_draw_ops",
]
