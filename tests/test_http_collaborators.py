from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import test_utils, web
from conftest import png_bytes

from pypothole.config import PotholeConfig
from pypothole.exceptions import TileFetchError
from pypothole.models import GeoPoint
from pypothole.share.geocode import ReverseGeocoder
from pypothole.share.tiles import StaticMapTileClient, TileRequest


class _Backend:
    """Scriptable stand-in for the static-map and geocode functions."""

    def __init__(self) -> None:
        self.tile_status = 200
        self.tile_body = png_bytes()
        self.geocode_status = 200
        self.geocode_body: str = '{"features": [{"place_name": "MG Road, Bengaluru"}]}'
        self.geocode_delay = 0.0
        self.tile_payloads: list[dict[str, object]] = []
        self.geocode_params: list[dict[str, str]] = []

    async def tiles(self, request: web.Request) -> web.Response:
        self.tile_payloads.append(await request.json())
        return web.Response(status=self.tile_status, body=self.tile_body, content_type="image/png")

    async def geocode(self, request: web.Request) -> web.Response:
        self.geocode_params.append(dict(request.query))
        if self.geocode_delay:
            await asyncio.sleep(self.geocode_delay)
        return web.Response(status=self.geocode_status, text=self.geocode_body, content_type="application/json")


@pytest_asyncio.fixture
async def backend() -> AsyncIterator[tuple[_Backend, PotholeConfig, aiohttp.ClientSession]]:
    state = _Backend()
    app = web.Application()
    app.router.add_post("/staticMap", state.tiles)
    app.router.add_get("/reverseGeocode", state.geocode)
    server = test_utils.TestServer(app)
    await server.start_server()
    config = PotholeConfig(
        tile_endpoint=str(server.make_url("/staticMap")),
        geocode_endpoint=str(server.make_url("/reverseGeocode")),
        http_timeout=5.0,
    )
    session = aiohttp.ClientSession()
    try:
        yield state, config, session
    finally:
        await session.close()
        await server.close()


def _request() -> TileRequest:
    return TileRequest(
        points=(GeoPoint(lat=12.97, lon=77.59),),
        width=1080,
        height=1056,
        style="mapbox/navigation-night-v1",
        pin_url="https://potholes.live/pin.png",
        overlay="url-x(77.590000,12.970000)",
        center=GeoPoint(lat=12.97, lon=77.59),
        zoom=16.5,
    )


@pytest.mark.asyncio
async def test_tile_fetch_posts_payload_and_returns_bytes(backend) -> None:
    state, config, session = backend

    body = await StaticMapTileClient(config, session).fetch(_request())

    assert body == state.tile_body
    [payload] = state.tile_payloads
    assert payload["points"] == [{"lat": 12.97, "lon": 77.59}]
    assert payload["pinUrl"] == "https://potholes.live/pin.png"
    assert payload["center"] == "77.590000,12.970000,16.50"
    assert payload["style"] == "mapbox/navigation-night-v1"


@pytest.mark.asyncio
async def test_tile_fetch_non_200_raises_with_status(backend) -> None:
    state, config, session = backend
    state.tile_status = 503

    with pytest.raises(TileFetchError) as excinfo:
        await StaticMapTileClient(config, session).fetch(_request())

    assert excinfo.value.status_code == 503
    assert excinfo.value.endpoint == config.tile_endpoint
    assert len(state.tile_payloads) == 1


@pytest.mark.asyncio
async def test_tile_fetch_empty_body_raises(backend) -> None:
    state, config, session = backend
    state.tile_body = b""

    with pytest.raises(TileFetchError):
        await StaticMapTileClient(config, session).fetch(_request())


@pytest.mark.asyncio
async def test_tile_fetch_connection_error_raises() -> None:
    config = PotholeConfig(tile_endpoint="http://127.0.0.1:9/staticMap", http_timeout=2.0)
    async with aiohttp.ClientSession() as session:
        with pytest.raises(TileFetchError) as excinfo:
            await StaticMapTileClient(config, session).fetch(_request())
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_reverse_geocode_returns_place(backend) -> None:
    state, config, session = backend

    place = await ReverseGeocoder(config, session).reverse(12.97, 77.59)

    assert place == "MG Road, Bengaluru"
    assert state.geocode_params == [{"lat": "12.97", "lon": "77.59"}]


@pytest.mark.parametrize(
    ("status", "body"),
    [(500, "{}"), (200, "not json"), (200, '{"features": []}')],
)
@pytest.mark.asyncio
async def test_reverse_geocode_failures_yield_none(backend, status: int, body: str) -> None:
    state, config, session = backend
    state.geocode_status = status
    state.geocode_body = body

    assert await ReverseGeocoder(config, session).reverse(1.0, 2.0) is None


@pytest.mark.asyncio
async def test_reverse_geocode_cancel_yields_none(backend) -> None:
    state, config, session = backend
    state.geocode_delay = 2.0
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)

    assert await ReverseGeocoder(config, session).reverse(1.0, 2.0, cancel) is None
