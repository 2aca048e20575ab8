"""Reverse geocoding for share subtitles.

Failures never propagate: a missing place name only degrades the image.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from pypothole._cancel import SignalCancelled, run_cancellable
from pypothole._constants import USER_AGENT
from pypothole.config import PotholeConfig

_logger = logging.getLogger(__name__)


def place_name_from_response(body: Any) -> str | None:
    """``features[0].place_name`` of a GeoJSON geocode response, if any."""
    if not isinstance(body, dict):
        return None
    features = body.get("features")
    if not isinstance(features, list) or not features:
        return None
    first = features[0]
    if not isinstance(first, dict):
        return None
    name = first.get("place_name")
    if not isinstance(name, str) or not name.strip():
        return None
    return name.strip()


class ReverseGeocoder:
    """Looks up a human-readable place name for a coordinate."""

    def __init__(self, config: PotholeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def _lookup(self, lat: float, lon: float) -> str | None:
        endpoint = self._config.geocode_endpoint
        timeout = aiohttp.ClientTimeout(total=self._config.http_timeout)
        params = {"lat": str(lat), "lon": str(lon)}
        async with self._http.get(
            endpoint, params=params, headers={"user-agent": USER_AGENT}, timeout=timeout
        ) as resp:
            if resp.status != 200:
                _logger.warning("Reverse geocode failed: %s for %s,%s", resp.status, lat, lon)
                return None
            text = await resp.text()
        if self._config.debug_http:
            _logger.debug("Geocode response=%s", text[:500])
        return place_name_from_response(json.loads(text))

    async def reverse(self, lat: float, lon: float, cancel: asyncio.Event | None = None) -> str | None:
        """Place name for ``(lat, lon)``, or ``None``.

        Cancellation through *cancel* also yields ``None`` and is not
        logged as a failure.
        """
        try:
            return await run_cancellable(self._lookup(lat, lon), cancel)
        except SignalCancelled:
            return None
        except (aiohttp.ClientError, TimeoutError, ValueError):
            _logger.warning("Reverse geocode error for %s,%s", lat, lon, exc_info=True)
            return None
