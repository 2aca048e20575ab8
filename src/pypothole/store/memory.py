"""In-memory document store with full-snapshot change streams.

Documents are kept as raw dicts keyed by id, the way a document database
stores them, and are parsed on every read so malformed documents never
reach callers or observers.
"""

from __future__ import annotations

import asyncio
import bisect
import copy
import logging
import secrets
from collections.abc import Mapping, Sequence
from typing import Any

from pypothole.exceptions import StreamError
from pypothole.ingestion.documents import parse_report_document, parse_report_documents
from pypothole.ingestion.normalize import is_coordinate
from pypothole.models.report import Report
from pypothole.store.repository import (
    ChangeStreamFilter,
    ReportSnapshot,
    SnapshotCallback,
    StreamErrorCallback,
)

_logger = logging.getLogger(__name__)


def _new_id() -> str:
    return secrets.token_hex(10)


class _Registration:
    """One live query, served by its own consumer task.

    Every store change enqueues a notification; the task turns each one
    into exactly one full snapshot delivery.
    """

    def __init__(
        self,
        repository: InMemoryReportRepository,
        stream_filter: ChangeStreamFilter,
        on_snapshot: SnapshotCallback,
        on_error: StreamErrorCallback,
    ) -> None:
        self._repository = repository
        self._filter = stream_filter
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._queue: asyncio.Queue[BaseException | None] = asyncio.Queue()
        self._sequence = 0
        self._closed = False
        self._queue.put_nowait(None)
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stream_filter(self) -> ChangeStreamFilter:
        return self._filter

    def notify(self) -> None:
        if not self._closed:
            self._queue.put_nowait(None)

    def fail(self, exc: BaseException) -> None:
        if not self._closed:
            self._queue.put_nowait(exc)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._repository._discard(self)
        self._task.cancel()

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            if self._closed:
                return
            if item is not None:
                self._closed = True
                self._repository._discard(self)
                error = StreamError(f"change stream failed: {item}")
                error.__cause__ = item
                try:
                    self._on_error(error)
                except Exception:
                    _logger.warning("Stream error callback failed", exc_info=True)
                return

            self._sequence += 1
            snapshot = ReportSnapshot(
                reports=tuple(self._filter.select(self._repository._all_reports())),
                sequence=self._sequence,
            )
            try:
                self._on_snapshot(snapshot)
            except Exception:
                _logger.warning("Snapshot callback failed", exc_info=True)


class InMemoryReportRepository:
    """Reference :class:`~pypothole.store.repository.ReportRepository`.

    Must be used from a single event loop. Suitable for development,
    offline mode and tests.
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._lat_index: list[tuple[float, str]] = []
        self._registrations: set[_Registration] = set()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _store(self, doc_id: str, data: Mapping[str, Any]) -> None:
        previous = self._docs.get(doc_id)
        if previous is not None and is_coordinate(previous.get("lat")):
            self._lat_index.remove((float(previous["lat"]), doc_id))
        self._docs[doc_id] = copy.deepcopy(dict(data))
        lat = data.get("lat")
        if is_coordinate(lat):
            bisect.insort(self._lat_index, (float(lat), doc_id))

    def _notify(self) -> None:
        for registration in list(self._registrations):
            registration.notify()

    async def put(self, doc_id: str, data: Mapping[str, Any]) -> None:
        """Low-level document write, stored as given without validation."""
        self._store(doc_id, data)
        self._notify()

    async def insert(self, report: Report) -> str:
        doc_id = _new_id()
        self._store(doc_id, report.to_document())
        _logger.debug("Inserted report id=%s lat=%.6f lon=%.6f", doc_id, report.lat, report.lon)
        self._notify()
        return doc_id

    async def insert_many(self, reports: Sequence[Report]) -> list[str]:
        if not reports:
            return []
        ids: list[str] = []
        for report in reports:
            doc_id = _new_id()
            self._store(doc_id, report.to_document())
            ids.append(doc_id)
        _logger.debug("Inserted batch of %d reports", len(ids))
        self._notify()
        return ids

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _all_reports(self) -> list[Report]:
        return parse_report_documents(self._docs.items())

    async def get(self, doc_id: str) -> Report | None:
        data = self._docs.get(doc_id)
        if data is None:
            return None
        return parse_report_document(doc_id, data)

    async def query_lat_range(self, min_lat: float, max_lat: float) -> list[Report]:
        lo = bisect.bisect_left(self._lat_index, (min_lat, ""))
        reports: list[Report] = []
        for lat, doc_id in self._lat_index[lo:]:
            if lat > max_lat:
                break
            report = parse_report_document(doc_id, self._docs[doc_id])
            if report is not None:
                reports.append(report)
        return reports

    async def query_recent_by_owner(self, owner_id: str, limit: int) -> list[Report]:
        return ChangeStreamFilter(owner_id=owner_id, limit=limit).select(self._all_reports())

    def __len__(self) -> int:
        return len(self._docs)

    # ------------------------------------------------------------------
    # Change streams
    # ------------------------------------------------------------------

    def subscribe(
        self,
        stream_filter: ChangeStreamFilter,
        on_snapshot: SnapshotCallback,
        on_error: StreamErrorCallback,
    ) -> _Registration:
        registration = _Registration(self, stream_filter, on_snapshot, on_error)
        self._registrations.add(registration)
        return registration

    @property
    def registration_count(self) -> int:
        """Number of open change-stream registrations."""
        return len(self._registrations)

    def fail_streams(self, exc: BaseException) -> None:
        """Terminate every open registration with *exc*."""
        for registration in list(self._registrations):
            registration.fail(exc)

    def close(self) -> None:
        for registration in list(self._registrations):
            registration.close()

    def _discard(self, registration: _Registration) -> None:
        self._registrations.discard(registration)
