from __future__ import annotations

import asyncio

import pytest

from pypothole.exceptions import StreamError
from pypothole.models import GeoPoint, NearbyQuery, OwnerQuery, Report
from pypothole.store import ChangeStreamFilter, InMemoryReportRepository
from pypothole.subscriptions import SubscriptionManager, merge_reports_by_id, stream_filter_for


async def _settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _report(i: int, uid: str = "owner-a", lat: float = 12.0) -> Report:
    return Report(lat=lat, lon=77.0 + i * 1e-3, ts=1_000 + i, uid=uid)


class _Recorder:
    def __init__(self) -> None:
        self.updates: list[list[Report]] = []
        self.errors: list[StreamError] = []

    def on_update(self, reports: list[Report]) -> None:
        self.updates.append(reports)

    def on_error(self, error: StreamError) -> None:
        self.errors.append(error)


def test_stream_filter_for_queries() -> None:
    owner = stream_filter_for(OwnerQuery(owner_id="abc", limit=50))
    nearby = stream_filter_for(NearbyQuery(center=GeoPoint(lat=1, lon=2), radius_m=100, limit=5000))
    assert owner == ChangeStreamFilter(owner_id="abc", limit=50)
    assert nearby == ChangeStreamFilter(owner_id=None, limit=5000)


@pytest.mark.asyncio
async def test_owner_subscription_filters_sorts_and_caps() -> None:
    repo = InMemoryReportRepository()
    await repo.insert_many([_report(i, uid="owner-a") for i in range(60)])
    await repo.insert_many([_report(i, uid="owner-b") for i in range(60, 70)])
    manager = SubscriptionManager(repo)
    rec = _Recorder()

    sub = manager.subscribe_by_owner("owner-a", rec.on_update, rec.on_error)
    await _settle()

    assert len(rec.updates) == 1
    reports = rec.updates[0]
    assert len(reports) == 50
    assert all(r.uid == "owner-a" for r in reports)
    assert [r.ts for r in reports] == sorted((r.ts for r in reports), reverse=True)
    assert reports[0].ts == 1_059
    sub.cancel()


@pytest.mark.asyncio
async def test_nearby_ignores_radius_and_caps_at_limit() -> None:
    repo = InMemoryReportRepository()
    await repo.insert_many([Report(lat=-60.0 + i * 0.01, lon=10.0, ts=i) for i in range(6000)])
    manager = SubscriptionManager(repo)
    rec = _Recorder()

    sub = manager.subscribe_nearby({"lat": 51.5, "lon": -0.12}, 1.0, rec.on_update)
    await _settle()

    reports = rec.updates[-1]
    assert len(reports) == 5000
    assert reports[0].ts == 5999
    assert reports[-1].ts == 1000
    sub.cancel()


@pytest.mark.asyncio
async def test_one_delivery_per_emission_with_full_state() -> None:
    repo = InMemoryReportRepository()
    manager = SubscriptionManager(repo)
    rec = _Recorder()

    sub = manager.subscribe_nearby(GeoPoint(lat=12.0, lon=77.0), 15_000, rec.on_update)
    await _settle()
    await repo.insert(_report(1))
    await _settle()
    await repo.insert(_report(2))
    await _settle()

    assert [len(u) for u in rec.updates] == [0, 1, 2]
    assert sub.deliveries == 3
    sub.cancel()


@pytest.mark.asyncio
async def test_cancel_is_idempotent_and_stops_delivery() -> None:
    repo = InMemoryReportRepository()
    manager = SubscriptionManager(repo)
    rec = _Recorder()

    sub = manager.subscribe_by_owner("owner-a", rec.on_update)
    await _settle()
    assert repo.registration_count == 1
    assert manager.active_count == 1

    sub.cancel()
    sub()
    await repo.insert(_report(1))
    await _settle()

    assert sub.closed
    assert len(rec.updates) == 1
    assert repo.registration_count == 0
    assert manager.active_count == 0


@pytest.mark.asyncio
async def test_cancel_before_first_emission() -> None:
    repo = InMemoryReportRepository()
    rec = _Recorder()

    sub = SubscriptionManager(repo).subscribe_by_owner("owner-a", rec.on_update)
    sub.cancel()
    await _settle()

    assert rec.updates == []


@pytest.mark.asyncio
async def test_stream_error_is_terminal_and_reported_once() -> None:
    repo = InMemoryReportRepository()
    manager = SubscriptionManager(repo)
    rec = _Recorder()
    sub = manager.subscribe_by_owner("owner-a", rec.on_update, rec.on_error)
    await _settle()

    repo.fail_streams(ConnectionError("backend went away"))
    await _settle()
    await repo.insert(_report(1))
    await _settle()

    assert len(rec.errors) == 1
    assert isinstance(rec.errors[0].__cause__, ConnectionError)
    assert sub.closed
    assert len(rec.updates) == 1
    assert repo.registration_count == 0
    assert manager.active_count == 0
    sub.cancel()


@pytest.mark.asyncio
async def test_stream_error_without_handler_closes_quietly(caplog: pytest.LogCaptureFixture) -> None:
    repo = InMemoryReportRepository()
    rec = _Recorder()
    sub = SubscriptionManager(repo).subscribe_nearby(GeoPoint(lat=0, lon=0), 10, rec.on_update)
    await _settle()

    repo.fail_streams(RuntimeError("boom"))
    await _settle()

    assert sub.closed
    assert "closed by stream error" in caplog.text


@pytest.mark.asyncio
async def test_observer_exception_does_not_kill_subscription() -> None:
    repo = InMemoryReportRepository()
    calls: list[int] = []

    def flaky(reports: list[Report]) -> None:
        calls.append(len(reports))
        if len(calls) == 1:
            raise ValueError("observer bug")

    sub = SubscriptionManager(repo).subscribe_by_owner("owner-a", flaky)
    await _settle()
    await repo.insert(_report(1))
    await _settle()

    assert calls == [0, 1]
    assert not sub.closed
    sub.cancel()


@pytest.mark.asyncio
async def test_malformed_documents_never_reach_observers() -> None:
    repo = InMemoryReportRepository()
    await repo.put("good", {"lat": 1.0, "lon": 2.0, "ts": 5, "uid": "owner-a"})
    await repo.put("no-lat", {"lon": 2.0, "ts": 6, "uid": "owner-a"})
    await repo.put("string-lat", {"lat": "1.0", "lon": 2.0, "ts": 7, "uid": "owner-a"})
    rec = _Recorder()

    sub = SubscriptionManager(repo).subscribe_by_owner("owner-a", rec.on_update)
    await _settle()

    assert [r.id for r in rec.updates[-1]] == ["good"]
    sub.cancel()


@pytest.mark.asyncio
async def test_close_all() -> None:
    repo = InMemoryReportRepository()
    manager = SubscriptionManager(repo)
    subs = [manager.subscribe_by_owner(f"o{i}", lambda _r: None) for i in range(3)]
    await _settle()

    manager.close_all()

    assert all(s.closed for s in subs)
    assert manager.active_count == 0
    assert repo.registration_count == 0


def test_merge_reports_by_id_keeps_previous_and_replaces_updated() -> None:
    a = Report(id="a", lat=1, lon=1, ts=1)
    b = Report(id="b", lat=2, lon=2, ts=2)
    b2 = Report(id="b", lat=2, lon=2, ts=3)
    c = Report(id="c", lat=3, lon=3, ts=4)
    anon = Report(lat=4, lon=4, ts=5)

    merged = merge_reports_by_id([a, b], [b2, c, anon])

    assert set(merged) == {"a", "b", "c"}
    assert merged["b"].ts == 3
    assert merge_reports_by_id(merged, []) == merged


class _UnavailableRepository(InMemoryReportRepository):
    def subscribe(self, stream_filter, on_snapshot, on_error):  # type: ignore[no-untyped-def]
        raise ConnectionError("store offline")


@pytest.mark.asyncio
async def test_failed_registration_is_not_counted_as_active() -> None:
    manager = SubscriptionManager(_UnavailableRepository())

    with pytest.raises(ConnectionError):
        manager.subscribe_by_owner("owner-a", lambda _r: None)

    assert manager.active_count == 0
