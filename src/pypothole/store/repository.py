"""Repository contract used by the dedup gate and subscription manager."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from pypothole._constants import NEARBY_LIMIT
from pypothole.exceptions import StreamError
from pypothole.models.report import Report


@dataclass(frozen=True)
class ChangeStreamFilter:
    """Server-side filter of a change stream.

    Results are always ordered by ``ts`` descending and capped at
    ``limit``. ``owner_id=None`` matches every report.
    """

    owner_id: str | None = None
    limit: int = NEARBY_LIMIT

    def matches(self, report: Report) -> bool:
        return self.owner_id is None or report.uid == self.owner_id

    def select(self, reports: Iterable[Report]) -> list[Report]:
        matching = [r for r in reports if self.matches(r)]
        matching.sort(key=lambda r: r.ts, reverse=True)
        return matching[: self.limit]


@dataclass(frozen=True)
class ReportSnapshot:
    """One change-stream emission: the complete current result set.

    Snapshots replace the previous one wholesale; they are never diffs.
    ``sequence`` counts emissions of a single registration from 1.
    """

    reports: tuple[Report, ...]
    sequence: int


SnapshotCallback = Callable[[ReportSnapshot], None]
StreamErrorCallback = Callable[[StreamError], None]


class StreamRegistration(Protocol):
    """Handle of one change-stream registration."""

    @property
    def closed(self) -> bool: ...

    def close(self) -> None:
        """Release the registration. Idempotent."""
        ...


class ReportRepository(Protocol):
    """Structural repository interface.

    A protocol keeps test doubles and alternative stores interchangeable
    with :class:`~pypothole.store.memory.InMemoryReportRepository`.
    """

    async def insert(self, report: Report) -> str:
        """Persist *report* and return the id assigned to it."""
        ...

    async def insert_many(self, reports: Sequence[Report]) -> list[str]:
        """Persist *reports* in one write and return their ids."""
        ...

    async def query_lat_range(self, min_lat: float, max_lat: float) -> list[Report]:
        """Reports with ``min_lat <= lat <= max_lat`` (coarse pre-filter)."""
        ...

    async def query_recent_by_owner(self, owner_id: str, limit: int) -> list[Report]:
        """Most recent reports of *owner_id*, ``ts`` descending."""
        ...

    def subscribe(
        self,
        stream_filter: ChangeStreamFilter,
        on_snapshot: SnapshotCallback,
        on_error: StreamErrorCallback,
    ) -> StreamRegistration:
        """Register a live query.

        The first emission carries the current state; every later change
        to the store produces another full snapshot. After ``on_error``
        fires the registration is closed.
        """
        ...
