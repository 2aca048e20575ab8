from __future__ import annotations

import io

import pytest
from PIL import Image

from pypothole.share.tiles import TileRequest


def png_bytes(width: int = 8, height: int = 8, color: str = "#336699") -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


class FakeTileFetcher:
    """Records requests and answers with a tiny PNG."""

    def __init__(self, body: bytes | None = None, error: Exception | None = None) -> None:
        self.body = body if body is not None else png_bytes()
        self.error = error
        self.requests: list[TileRequest] = []

    async def fetch(self, request: TileRequest) -> bytes:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.body


@pytest.fixture
def tile_fetcher() -> FakeTileFetcher:
    return FakeTileFetcher()
