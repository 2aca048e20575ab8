#!/usr/bin/env python3
"""Render a session share image from a list of points.

Usage
-----
::

    export POTHOLE_TILE_ENDPOINT="https://example.org/.netlify/functions/share-map"
    python scripts/render_share.py points.json --output share.png

Input is either a JSON array of ``{"lat": .., "lon": ..}`` objects or a
CSV file with ``lat`` and ``lon`` columns, in path order.

Options::

    --output FILE       Where to write the PNG (default: share.png)
    --width N           Canvas width (default: 1080)
    --height N          Canvas height (default: 1920)
    --title TEXT        Title line
    --subtitle TEXT     Place name; looked up by reverse geocoding if omitted
    --no-locate         Do not reverse geocode
    --plan              Print the tile request, do not fetch or render
    -v, --verbose       Debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import csv
import io
import json
import logging
import sys
from pathlib import Path

from pypothole import GeoPoint, PotholeClient, PotholeConfig, PotholeError, ShareOptions

_logger = logging.getLogger("render_share")


def _load_points(path: Path) -> list[GeoPoint]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        reader = csv.DictReader(io.StringIO(text))
        return [GeoPoint(lat=float(row["lat"]), lon=float(row["lon"])) for row in reader]
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of points")
    return [GeoPoint.model_validate(item) for item in data]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render a pothole session share image.")
    parser.add_argument("points", type=Path, help="JSON or CSV file with lat/lon points")
    parser.add_argument("--output", type=Path, default=Path("share.png"))
    parser.add_argument("--width", type=int, default=1080)
    parser.add_argument("--height", type=int, default=1920)
    parser.add_argument("--title", default="Potholes.live")
    parser.add_argument("--subtitle", default=None)
    parser.add_argument("--no-locate", action="store_true")
    parser.add_argument("--plan", action="store_true", help="print the tile request only")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def _run(args: argparse.Namespace) -> int:
    points = _load_points(args.points)
    options = ShareOptions(width=args.width, height=args.height, title=args.title, subtitle=args.subtitle)

    async with PotholeClient(PotholeConfig.from_env()) as client:
        if args.plan:
            plan = client.plan_session_image(points, options)
            print(json.dumps(plan.tile_request.to_payload(), indent=2))
            return 0
        image = await client.share_session_image(points, options, locate=not args.no_locate)

    if image is None:
        _logger.warning("Rendering cancelled")
        return 1
    args.output.write_bytes(image)
    print(f"Wrote {args.output} ({len(image)} bytes, {len(points)} points)")
    return 0


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except (OSError, ValueError, PotholeError) as exc:
        _logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
