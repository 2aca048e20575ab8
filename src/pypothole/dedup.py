"""Proximity deduplication in front of the repository.

``submit`` rejects a report that lies within the dedup radius of an
existing one. ``submit_batch`` skips the check: bulk import trusts its
caller. The two entry points intentionally give different guarantees.

Known limitations:

* The coarse pre-filter is a latitude band only. Longitude wraparound at
  +/-180 degrees is not handled, so reports straddling the antimeridian
  may fail to dedup.
* Same-area submissions are serialized per process. The repository has
  no transactional check-and-insert, so two processes can still race
  past each other; the guarantee is best-effort across processes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from pypothole._constants import DEDUP_LAT_BAND_DEG, DEDUP_RADIUS_M, METERS_PER_DEG_LAT
from pypothole.exceptions import ReportValidationError
from pypothole.geo import haversine_m, lat_band
from pypothole.models.report import Report
from pypothole.models.submission import SubmitResult
from pypothole.store.repository import ReportRepository

_logger = logging.getLogger(__name__)


def coerce_report(value: Report | Mapping[str, Any]) -> Report:
    """Validate caller input into a :class:`Report`.

    Raises :class:`ReportValidationError` for missing or non-finite
    coordinates and other malformed fields.
    """
    if isinstance(value, Report):
        return value
    if not isinstance(value, Mapping):
        raise ReportValidationError(f"expected a Report or mapping, got {type(value).__name__}")
    try:
        return Report.model_validate(dict(value))
    except ValidationError as exc:
        raise ReportValidationError(f"invalid report: {exc.error_count()} validation error(s)") from exc


class _AreaLocks:
    """Locks keyed by latitude cell, created on demand and dropped when idle."""

    def __init__(self, cell_deg: float) -> None:
        self._cell_deg = cell_deg
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    def cells(self, min_lat: float, max_lat: float) -> list[int]:
        return list(range(math.floor(min_lat / self._cell_deg), math.floor(max_lat / self._cell_deg) + 1))

    def __len__(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def hold(self, min_lat: float, max_lat: float) -> AsyncIterator[None]:
        # Sorted acquisition order rules out deadlock between neighbours.
        cells = self.cells(min_lat, max_lat)
        for cell in cells:
            self._users[cell] = self._users.get(cell, 0) + 1
            self._locks.setdefault(cell, asyncio.Lock())
        acquired: list[int] = []
        try:
            for cell in cells:
                await self._locks[cell].acquire()
                acquired.append(cell)
            yield
        finally:
            for cell in reversed(acquired):
                self._locks[cell].release()
            for cell in cells:
                self._users[cell] -= 1
                if self._users[cell] == 0:
                    del self._users[cell]
                    del self._locks[cell]


class DedupGate:
    """Accept/reject single submissions; pass batches straight through."""

    def __init__(
        self,
        repository: ReportRepository,
        *,
        radius_m: float = DEDUP_RADIUS_M,
        lat_band_deg: float = DEDUP_LAT_BAND_DEG,
    ) -> None:
        self._repository = repository
        self._radius_m = radius_m
        # The band must cover the radius or northern/southern neighbours are never candidates.
        self._lat_band_deg = max(lat_band_deg, radius_m / METERS_PER_DEG_LAT)
        # Two bands that can see each other always share a cell.
        self._locks = _AreaLocks(cell_deg=2 * self._lat_band_deg)

    @property
    def radius_m(self) -> float:
        return self._radius_m

    async def find_duplicate(self, report: Report) -> tuple[Report, float] | None:
        """Closest existing report within the dedup radius, with its distance."""
        min_lat, max_lat = lat_band(report.lat, self._lat_band_deg)
        candidates = await self._repository.query_lat_range(min_lat, max_lat)
        closest: tuple[Report, float] | None = None
        for existing in candidates:
            distance = haversine_m(report, existing)
            if distance < self._radius_m and (closest is None or distance < closest[1]):
                closest = (existing, distance)
        return closest

    async def submit(self, report: Report | Mapping[str, Any]) -> SubmitResult:
        """Insert *report* unless a report already exists within the radius."""
        candidate = coerce_report(report)
        min_lat, max_lat = lat_band(candidate.lat, self._lat_band_deg)

        async with self._locks.hold(min_lat, max_lat):
            duplicate = await self.find_duplicate(candidate)
            if duplicate is not None:
                existing, distance = duplicate
                _logger.info(
                    "Duplicate pothole within %.1fm - skipping new=%.6f,%.6f existing=%.6f,%.6f",
                    distance,
                    candidate.lat,
                    candidate.lon,
                    existing.lat,
                    existing.lon,
                )
                return SubmitResult.duplicate(existing.id, distance)

            report_id = await self._repository.insert(candidate)

        _logger.info("Added new pothole id=%s at %.6f,%.6f", report_id, candidate.lat, candidate.lon)
        return SubmitResult.accept(report_id)

    async def submit_batch(self, reports: Sequence[Report | Mapping[str, Any]]) -> list[str]:
        """Insert every report without deduplication.

        Input is still validated; one malformed report rejects the whole
        batch before anything is written.
        """
        if not reports:
            return []
        validated = [coerce_report(r) for r in reports]
        ids = await self._repository.insert_many(validated)
        _logger.info("Imported batch of %d reports without dedup", len(ids))
        return ids
