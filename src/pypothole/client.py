"""High-level async client tying the report store and share pipeline together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import aiohttp

from pypothole.config import PotholeConfig
from pypothole.dedup import DedupGate
from pypothole.exceptions import PotholeError
from pypothole.geo import LatLon, bounds_center, compute_bounds, path_distance_m
from pypothole.models.geo import GeoPoint
from pypothole.models.report import Report
from pypothole.models.share import ShareOptions, TripStats
from pypothole.models.submission import SubmitResult
from pypothole.share.compositor import ShareCompositor, SharePlan, as_points
from pypothole.share.geocode import ReverseGeocoder
from pypothole.share.message import build_share_message
from pypothole.share.tiles import StaticMapTileClient, TileFetcher
from pypothole.store.memory import InMemoryReportRepository
from pypothole.store.repository import ReportRepository
from pypothole.subscriptions import ErrorCallback, Subscription, SubscriptionManager, UpdateCallback

_logger = logging.getLogger(__name__)

REPORT_SHARE_SIZE = 1200


class PotholeClient:
    """Async client for pothole reports and share images.

    Collaborators are injected; anything not supplied is built from
    *config* when the client is entered. Usage::

        async with PotholeClient(config, repository=repo) as client:
            result = await client.submit_report(report)
            sub = client.subscribe_nearby(center, 15_000, on_update)
            png = await client.share_session_image(points)
    """

    def __init__(
        self,
        config: PotholeConfig | None = None,
        *,
        repository: ReportRepository | None = None,
        session: aiohttp.ClientSession | None = None,
        tile_fetcher: TileFetcher | None = None,
        geocoder: ReverseGeocoder | None = None,
    ) -> None:
        self._config = config or PotholeConfig()
        self._repository: ReportRepository = repository if repository is not None else InMemoryReportRepository()
        self._external_session = session is not None
        self._http_session = session
        self._tile_fetcher = tile_fetcher
        self._geocoder = geocoder
        self._compositor: ShareCompositor | None = None
        self._dedup = DedupGate(
            self._repository,
            radius_m=self._config.dedup_radius_m,
            lat_band_deg=self._config.dedup_lat_band_deg,
        )
        self._subscriptions = SubscriptionManager(
            self._repository,
            nearby_limit=self._config.nearby_limit,
            owner_limit=self._config.owner_limit,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PotholeClient:
        needs_http = self._tile_fetcher is None or self._geocoder is None
        if needs_http and self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        if self._tile_fetcher is None:
            assert self._http_session is not None  # noqa: S101
            self._tile_fetcher = StaticMapTileClient(self._config, self._http_session)
        if self._geocoder is None:
            assert self._http_session is not None  # noqa: S101
            self._geocoder = ReverseGeocoder(self._config, self._http_session)
        self._compositor = ShareCompositor(
            self._tile_fetcher,
            style=self._config.map_style,
            pin_url=self._config.pin_url,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._subscriptions.close_all()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._compositor = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_compositor(self) -> ShareCompositor:
        if self._compositor is None:
            raise PotholeError("Client not initialized. Use 'async with PotholeClient(...) as client:'")
        return self._compositor

    @property
    def config(self) -> PotholeConfig:
        return self._config

    @property
    def repository(self) -> ReportRepository:
        return self._repository

    @property
    def subscriptions(self) -> SubscriptionManager:
        return self._subscriptions

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def submit_report(self, report: Report | Mapping[str, Any]) -> SubmitResult:
        """Submit one report; duplicates within the dedup radius are rejected."""
        return await self._dedup.submit(report)

    async def submit_batch(self, reports: Sequence[Report | Mapping[str, Any]]) -> list[str]:
        """Bulk import without deduplication."""
        return await self._dedup.submit_batch(reports)

    async def recent_reports_by_owner(self, owner_id: str, limit: int | None = None) -> list[Report]:
        """One-shot read of an owner's latest reports, newest first."""
        return await self._repository.query_recent_by_owner(owner_id, limit or self._config.owner_limit)

    def subscribe_nearby(
        self,
        center: GeoPoint | Mapping[str, Any],
        radius_m: float,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        return self._subscriptions.subscribe_nearby(center, radius_m, on_update, on_error)

    def subscribe_by_owner(
        self,
        owner_id: str,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        return self._subscriptions.subscribe_by_owner(owner_id, on_update, on_error)

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def reverse_geocode(self, lat: float, lon: float, cancel: asyncio.Event | None = None) -> str | None:
        self._require_compositor()
        assert self._geocoder is not None  # noqa: S101
        return await self._geocoder.reverse(lat, lon, cancel)

    def plan_session_image(
        self,
        points: Sequence[LatLon | Mapping[str, Any]],
        options: ShareOptions | None = None,
    ) -> SharePlan:
        """Camera framing and tile request, without fetching anything."""
        return self._require_compositor().plan(points, options)

    async def share_session_image(
        self,
        points: Sequence[LatLon | Mapping[str, Any]],
        options: ShareOptions | None = None,
        *,
        locate: bool = True,
        cancel: asyncio.Event | None = None,
    ) -> bytes | None:
        """Share image for a detection session.

        Missing subtitle and statistics are filled in: the place name of
        the session center (when *locate* is set) and the path length.
        Returns ``None`` if *cancel* fires during the map fetch.
        """
        compositor = self._require_compositor()
        geo_points = as_points(points)
        opts = options or ShareOptions()

        updates: dict[str, Any] = {}
        if locate and opts.subtitle is None and geo_points:
            center = bounds_center(compute_bounds(geo_points))
            place = await self.reverse_geocode(center.lat, center.lon, cancel)
            if place:
                updates["subtitle"] = place
        if opts.stats is None and len(geo_points) >= 2:
            updates["stats"] = TripStats(distance_m=path_distance_m(geo_points))
        if updates:
            opts = opts.model_copy(update=updates)

        return await compositor.compose(geo_points, opts, cancel=cancel)

    async def share_report_image(self, report: Report, *, cancel: asyncio.Event | None = None) -> bytes | None:
        """Square share image for a single past report."""
        compositor = self._require_compositor()
        place = await self.reverse_geocode(report.lat, report.lon, cancel)
        subtitle = place or f"{report.lat:.4f}, {report.lon:.4f}"
        options = ShareOptions(
            width=REPORT_SHARE_SIZE,
            height=REPORT_SHARE_SIZE,
            title="1 Pothole Mapped",
            subtitle=subtitle,
        )
        return await compositor.compose([report], options, cancel=cancel)

    @staticmethod
    def share_message(count: int, place: str | None = None) -> str:
        return build_share_message(count, place)
