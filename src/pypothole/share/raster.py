"""Pillow rasteriser for share-image draw operations."""

from __future__ import annotations

import functools
import io
from collections.abc import Sequence

from PIL import Image, ImageColor, ImageDraw, ImageFont

from pypothole.share.layout import DrawImage, DrawOp, DrawText, GradientFill

_BOLD_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")
_REGULAR_FONTS = ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf")

_ANCHORS = {"center": "ms", "left": "ls", "right": "rs"}


@functools.lru_cache(maxsize=32)
def _font(size: int, bold: bool) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for name in _BOLD_FONTS if bold else _REGULAR_FONTS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _rgb(color: str) -> tuple[int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b


def _interpolate(stops: Sequence[tuple[float, str]], t: float) -> tuple[int, int, int]:
    if t <= stops[0][0]:
        return _rgb(stops[0][1])
    for (t0, c0), (t1, c1) in zip(stops, stops[1:]):
        if t <= t1:
            span = t1 - t0
            f = 0.0 if span <= 0 else (t - t0) / span
            a, b = _rgb(c0), _rgb(c1)
            return (
                round(a[0] + (b[0] - a[0]) * f),
                round(a[1] + (b[1] - a[1]) * f),
                round(a[2] + (b[2] - a[2]) * f),
            )
    return _rgb(stops[-1][1])


def _fill_gradient(draw: ImageDraw.ImageDraw, op: GradientFill) -> None:
    denom = max(op.height - 1, 1)
    for row in range(op.height):
        color = _interpolate(op.stops, row / denom)
        draw.line([(op.x, op.y + row), (op.x + op.width - 1, op.y + row)], fill=color)


def _draw_image(canvas: Image.Image, op: DrawImage) -> None:
    with Image.open(io.BytesIO(op.image)) as source:
        tile = source.convert("RGBA").resize((op.width, op.height), Image.Resampling.LANCZOS)
    canvas.paste(tile, (op.x, op.y), tile)


def _draw_text(draw: ImageDraw.ImageDraw, op: DrawText) -> None:
    font = _font(op.size, op.weight >= 600)
    draw.text((op.x, op.y), op.text, fill=_rgb(op.color), font=font, anchor=_ANCHORS.get(op.align, "ms"))


def render_draw_ops(ops: Sequence[DrawOp], width: int, height: int, fmt: str = "PNG") -> bytes:
    """Apply *ops* in order to a blank canvas and encode it.

    Raises ``PIL.UnidentifiedImageError`` if a :class:`DrawImage` holds
    bytes Pillow cannot decode.
    """
    canvas = Image.new("RGB", (width, height), "#000000")
    draw = ImageDraw.Draw(canvas)
    for op in ops:
        if isinstance(op, GradientFill):
            _fill_gradient(draw, op)
        elif isinstance(op, DrawImage):
            _draw_image(canvas, op)
        elif isinstance(op, DrawText):
            _draw_text(draw, op)
        else:
            raise TypeError(f"unsupported draw operation: {type(op).__name__}")

    out = io.BytesIO()
    canvas.save(out, format=fmt)
    return out.getvalue()
