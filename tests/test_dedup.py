from __future__ import annotations

import asyncio
import math

import pytest
from conftest import FakeTileFetcher

from pypothole.client import PotholeClient
from pypothole.config import PotholeConfig
from pypothole.dedup import DedupGate, coerce_report
from pypothole.exceptions import DuplicateError, ReportValidationError
from pypothole.models import RejectReason, Report
from pypothole.store import InMemoryReportRepository

# ~1.11 m of latitude per 1e-5 degree.
_DEG_PER_M = 1.0 / 111_194.93


def _report(lat: float, lon: float = 77.5946, ts: int = 1_700_000_000_000, uid: str | None = "u1") -> Report:
    return Report(lat=lat, lon=lon, ts=ts, uid=uid)


class _NoGeocoder:
    async def reverse(self, lat: float, lon: float, cancel: asyncio.Event | None = None) -> str | None:
        return None


@pytest.mark.asyncio
async def test_first_report_is_accepted_and_stored() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)

    result = await gate.submit(_report(12.9716))

    assert result.accepted
    assert result.report_id is not None
    stored = await repo.get(result.report_id)
    assert stored is not None
    assert stored.lat == 12.9716


@pytest.mark.asyncio
async def test_report_within_radius_is_rejected_with_existing_id() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)
    first = await gate.submit(_report(12.9716))

    result = await gate.submit(_report(12.9716 + 5 * _DEG_PER_M))

    assert not result.accepted
    assert result.reason is RejectReason.DUPLICATE
    assert result.duplicate_of == first.report_id
    assert result.distance_m == pytest.approx(5.0, abs=0.05)
    assert len(repo) == 1


@pytest.mark.asyncio
async def test_report_at_or_beyond_radius_is_accepted() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)
    await gate.submit(_report(12.9716))

    result = await gate.submit(_report(12.9716 + 10.5 * _DEG_PER_M))

    assert result.accepted
    assert len(repo) == 2


@pytest.mark.asyncio
async def test_same_latitude_far_longitude_is_accepted() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)
    await gate.submit(_report(12.9716, lon=77.5946))

    result = await gate.submit(_report(12.9716, lon=77.6046))

    assert result.accepted


@pytest.mark.parametrize("offset_m", [15.0, -15.0, 19.5])
@pytest.mark.asyncio
async def test_wider_radius_catches_north_and_south_neighbours(offset_m: float) -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo, radius_m=20.0)
    first = await gate.submit(_report(12.9716))

    result = await gate.submit(_report(12.9716 + offset_m * _DEG_PER_M))

    assert not result.accepted
    assert result.duplicate_of == first.report_id
    assert len(repo) == 1


@pytest.mark.asyncio
async def test_configured_radius_reaches_the_gate() -> None:
    repo = InMemoryReportRepository()
    config = PotholeConfig(dedup_radius_m=50.0)
    client = PotholeClient(config, repository=repo, tile_fetcher=FakeTileFetcher(), geocoder=_NoGeocoder())
    async with client:
        await client.submit_report(_report(12.9716))
        result = await client.submit_report(_report(12.9716 + 40 * _DEG_PER_M))

    assert not result.accepted
    assert result.distance_m == pytest.approx(40.0, abs=0.1)


@pytest.mark.asyncio
async def test_concurrent_submissions_with_wide_radius_accept_only_one() -> None:
    repo = _SlowRepository()
    gate = DedupGate(repo, radius_m=30.0)

    results = await asyncio.gather(*(gate.submit(_report(12.9716 + i * 4 * _DEG_PER_M)) for i in range(6)))

    assert sum(r.accepted for r in results) == 1
    assert len(repo) == 1


@pytest.mark.asyncio
async def test_closest_duplicate_is_reported() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)
    ids = await gate.submit_batch([_report(12.9716), _report(12.9716 + 8 * _DEG_PER_M)])

    result = await gate.submit(_report(12.9716 + 7 * _DEG_PER_M))

    assert result.duplicate_of == ids[1]
    assert result.distance_m == pytest.approx(1.0, abs=0.05)


@pytest.mark.asyncio
async def test_raise_for_rejection() -> None:
    gate = DedupGate(InMemoryReportRepository())
    accepted = await gate.submit(_report(1.0))
    accepted.raise_for_rejection()

    rejected = await gate.submit(_report(1.0))
    with pytest.raises(DuplicateError) as excinfo:
        rejected.raise_for_rejection()
    assert excinfo.value.existing_id == accepted.report_id
    assert excinfo.value.distance_m == 0.0


@pytest.mark.asyncio
async def test_batch_skips_dedup() -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)

    ids = await gate.submit_batch([_report(5.0), _report(5.0), _report(5.0)])

    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert len(repo) == 3


@pytest.mark.asyncio
async def test_empty_batch_is_noop() -> None:
    repo = InMemoryReportRepository()
    assert await DedupGate(repo).submit_batch([]) == []
    assert len(repo) == 0


@pytest.mark.asyncio
async def test_mapping_input_with_aliases() -> None:
    repo = InMemoryReportRepository()
    result = await DedupGate(repo).submit({"latitude": 3.0, "lng": 4.0, "timestamp": 1, "owner_id": "abc"})

    assert result.accepted
    stored = await repo.get(result.report_id or "")
    assert stored is not None
    assert (stored.lat, stored.lon, stored.ts, stored.uid) == (3.0, 4.0, 1, "abc")


@pytest.mark.parametrize(
    "payload",
    [
        {"lon": 1.0, "ts": 1},
        {"lat": math.nan, "lon": 1.0, "ts": 1},
        {"lat": 1.0, "lon": math.inf, "ts": 1},
        {"lat": 91.0, "lon": 1.0, "ts": 1},
        {"lat": 1.0, "lon": 1.0, "ts": 1, "conf": 1.5},
        {"lat": True, "lon": False, "ts": 1},
        {"lat": "12.9", "lon": 77.6, "ts": 1},
        {"lat": 12.9, "lon": None, "ts": 1},
    ],
)
@pytest.mark.asyncio
async def test_invalid_report_raises_before_storage(payload: dict[str, object]) -> None:
    repo = InMemoryReportRepository()
    gate = DedupGate(repo)

    with pytest.raises(ReportValidationError):
        await gate.submit(payload)
    assert len(repo) == 0


@pytest.mark.asyncio
async def test_invalid_report_in_batch_rejects_whole_batch() -> None:
    repo = InMemoryReportRepository()
    with pytest.raises(ReportValidationError):
        await DedupGate(repo).submit_batch([_report(1.0), {"lat": "x", "lon": 2.0, "ts": 1}])
    assert len(repo) == 0


def test_coerce_report_rejects_non_mapping() -> None:
    with pytest.raises(ReportValidationError):
        coerce_report(42)  # type: ignore[arg-type]


class _SlowRepository(InMemoryReportRepository):
    """Yields to the loop between lookup and insert to widen the race window."""

    async def query_lat_range(self, min_lat: float, max_lat: float) -> list[Report]:
        await asyncio.sleep(0)
        return await super().query_lat_range(min_lat, max_lat)

    async def insert(self, report: Report) -> str:
        await asyncio.sleep(0)
        return await super().insert(report)


@pytest.mark.asyncio
async def test_concurrent_same_area_submissions_accept_only_one() -> None:
    repo = _SlowRepository()
    gate = DedupGate(repo)

    results = await asyncio.gather(*(gate.submit(_report(12.9716 + i * _DEG_PER_M)) for i in range(8)))

    assert sum(r.accepted for r in results) == 1
    assert len(repo) == 1
    # Locks are released and dropped once idle.
    assert len(gate._locks) == 0  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_concurrent_distant_submissions_all_accepted() -> None:
    repo = _SlowRepository()
    gate = DedupGate(repo)

    results = await asyncio.gather(*(gate.submit(_report(10.0 + i)) for i in range(5)))

    assert all(r.accepted for r in results)
    assert len(repo) == 5
