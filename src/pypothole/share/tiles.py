"""Base raster fetch for share images."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp
from pydantic import Field

from pypothole._constants import USER_AGENT
from pypothole.config import PotholeConfig
from pypothole.exceptions import TileFetchError
from pypothole.models._base import PotholeBaseModel
from pypothole.models.geo import GeoPoint

_logger = logging.getLogger(__name__)


class TileRequest(PotholeBaseModel):
    """What the static-map collaborator needs to render the map band.

    ``center`` may be omitted to let the collaborator frame the points
    itself.
    """

    points: tuple[GeoPoint, ...]
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    style: str
    pin_url: str
    overlay: str = ""
    center: GeoPoint | None = None
    zoom: float | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "points": [{"lat": p.lat, "lon": p.lon} for p in self.points],
            "width": self.width,
            "height": self.height,
            "style": self.style,
            "pinUrl": self.pin_url,
        }
        if self.overlay:
            payload["overlay"] = self.overlay
        if self.center is not None:
            # Static API order: lon,lat,zoom
            zoom = f",{self.zoom:.2f}" if self.zoom is not None else ""
            payload["center"] = f"{self.center.lon:.6f},{self.center.lat:.6f}{zoom}"
        return payload


class TileFetcher(Protocol):
    """Fetches the base raster for a :class:`TileRequest`.

    Implementations raise :class:`TileFetchError` on non-success and do
    not retry.
    """

    async def fetch(self, request: TileRequest) -> bytes: ...


class StaticMapTileClient:
    """POSTs tile requests to a static-map function and returns image bytes."""

    def __init__(self, config: PotholeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def fetch(self, request: TileRequest) -> bytes:
        endpoint = self._config.tile_endpoint
        payload = request.to_payload()
        timeout = aiohttp.ClientTimeout(total=self._config.http_timeout)
        headers = {"content-type": "application/json", "user-agent": USER_AGENT}

        _logger.debug("Requesting map via %s with %d points", endpoint, len(request.points))
        if self._config.debug_http:
            _logger.debug("Tile request payload=%s", payload)

        try:
            async with self._http.post(endpoint, json=payload, headers=headers, timeout=timeout) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise TileFetchError(
                        f"Static map fetch failed: HTTP {resp.status}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                body = await resp.read()
        except TileFetchError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TileFetchError(f"Static map request failed: {exc}", endpoint=endpoint) from exc

        if not body:
            raise TileFetchError("Static map response was empty", status_code=200, endpoint=endpoint)
        return body
