"""Live nearby/by-owner queries fanned out to observers.

Each subscription owns exactly one upstream change-stream registration.
Every upstream emission becomes exactly one ``on_update`` call carrying
the complete current result list; consumers that need incremental
rendering reconcile by id themselves (see :func:`merge_reports_by_id`).

Nearby subscriptions do NOT filter by radius. They deliver the most
recent ``nearby_limit`` reports regardless of ``center``/``radius_m``.
This mirrors the deployed behaviour; whether distance filtering was
meant to exist is still open, so do not add it here silently.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pypothole._constants import NEARBY_LIMIT, OWNER_LIMIT
from pypothole.exceptions import StreamError
from pypothole.models.geo import GeoPoint
from pypothole.models.queries import NearbyQuery, OwnerQuery
from pypothole.models.report import Report
from pypothole.store.repository import (
    ChangeStreamFilter,
    ReportRepository,
    ReportSnapshot,
    StreamRegistration,
)

_logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[Report]], None]
ErrorCallback = Callable[[StreamError], None]
SubscriptionQuery = NearbyQuery | OwnerQuery


def stream_filter_for(query: SubscriptionQuery) -> ChangeStreamFilter:
    if isinstance(query, OwnerQuery):
        return ChangeStreamFilter(owner_id=query.owner_id, limit=query.limit)
    # center/radius_m are deliberately not part of the filter.
    return ChangeStreamFilter(owner_id=None, limit=query.limit)


def merge_reports_by_id(
    previous: Mapping[str, Report] | Iterable[Report],
    update: Iterable[Report],
) -> dict[str, Report]:
    """Fold a full-replacement delivery into a map keyed by report id.

    Reports missing from *update* are kept, matching how map markers
    accumulate on screen. Reports without an id are ignored.
    """
    merged: dict[str, Report] = (
        dict(previous) if isinstance(previous, Mapping) else {r.id: r for r in previous if r.id is not None}
    )
    for report in update:
        if report.id is not None:
            merged[report.id] = report
    return merged


class Subscription:
    """Handle of one live query. Calling it cancels the subscription.

    Cancelling is idempotent and never raises; after it returns no
    further ``on_update`` calls are made.
    """

    def __init__(
        self,
        manager: SubscriptionManager,
        query: SubscriptionQuery,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        self._manager = manager
        self._query = query
        self._filter = stream_filter_for(query)
        self._on_update = on_update
        self._on_error = on_error
        self._registration: StreamRegistration | None = None
        self._closed = False
        self._deliveries = 0

    @property
    def query(self) -> SubscriptionQuery:
        return self._query

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def deliveries(self) -> int:
        """Number of ``on_update`` calls made so far."""
        return self._deliveries

    def _attach(self, registration: StreamRegistration) -> None:
        self._registration = registration
        if self._closed:
            # Failed synchronously during subscribe().
            registration.close()

    def cancel(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._manager._forget(self)
        registration = self._registration
        if registration is not None:
            registration.close()

    __call__ = cancel

    def _deliver(self, snapshot: ReportSnapshot) -> None:
        if self._closed:
            return
        # Re-apply cap and ordering so every repository honours the contract.
        reports = self._filter.select(snapshot.reports)
        self._deliveries += 1
        try:
            self._on_update(reports)
        except Exception:
            _logger.warning("Subscription observer failed on delivery %d", self._deliveries, exc_info=True)

    def _fail(self, error: StreamError) -> None:
        if self._closed:
            return
        self._closed = True
        self._manager._forget(self)
        if self._registration is not None:
            self._registration.close()
        if self._on_error is None:
            _logger.warning("Subscription closed by stream error: %s", error)
            return
        try:
            self._on_error(error)
        except Exception:
            _logger.warning("Subscription error observer failed", exc_info=True)


class SubscriptionManager:
    """Registers live queries against a :class:`ReportRepository`."""

    def __init__(
        self,
        repository: ReportRepository,
        *,
        nearby_limit: int = NEARBY_LIMIT,
        owner_limit: int = OWNER_LIMIT,
    ) -> None:
        self._repository = repository
        self._nearby_limit = nearby_limit
        self._owner_limit = owner_limit
        self._active: set[Subscription] = set()

    @property
    def active_count(self) -> int:
        return len(self._active)

    def subscribe(
        self,
        query: SubscriptionQuery,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        subscription = Subscription(self, query, on_update, on_error)
        self._active.add(subscription)
        try:
            registration = self._repository.subscribe(
                stream_filter_for(query),
                subscription._deliver,
                subscription._fail,
            )
        except Exception:
            self._forget(subscription)
            raise
        subscription._attach(registration)
        _logger.debug("Subscribed %s (active=%d)", type(query).__name__, len(self._active))
        return subscription

    def subscribe_nearby(
        self,
        center: GeoPoint | Mapping[str, Any],
        radius_m: float,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Most recent reports, newest first, capped at ``nearby_limit``.

        ``center`` and ``radius_m`` are validated but not applied.
        """
        point = center if isinstance(center, GeoPoint) else GeoPoint.model_validate(center)
        query = NearbyQuery(center=point, radius_m=radius_m, limit=self._nearby_limit)
        return self.subscribe(query, on_update, on_error)

    def subscribe_by_owner(
        self,
        owner_id: str,
        on_update: UpdateCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Most recent reports of one owner, newest first, capped at ``owner_limit``."""
        query = OwnerQuery(owner_id=owner_id, limit=self._owner_limit)
        return self.subscribe(query, on_update, on_error)

    def close_all(self) -> None:
        for subscription in list(self._active):
            subscription.cancel()

    def _forget(self, subscription: Subscription) -> None:
        self._active.discard(subscription)
