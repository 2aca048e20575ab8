"""pypothole - Async pothole report store and share-image compositor."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pypothole")
except PackageNotFoundError:
    __version__ = "0+local"
from pypothole.client import PotholeClient
from pypothole.config import PotholeConfig
from pypothole.dedup import DedupGate
from pypothole.exceptions import (
    DuplicateError,
    EmptyInputError,
    PotholeConfigError,
    PotholeError,
    PotholeTransportError,
    ReportValidationError,
    StreamError,
    TileFetchError,
)
from pypothole.geo import adaptive_zoom, compute_bounds, haversine_m, mercator_y, path_distance_m
from pypothole.models import (
    Bounds,
    GeoPoint,
    NearbyQuery,
    OwnerQuery,
    RejectReason,
    Report,
    ShareOptions,
    SubmitResult,
    TripStats,
)
from pypothole.share import ReverseGeocoder, ShareCompositor, StaticMapTileClient, TileRequest
from pypothole.store import ChangeStreamFilter, InMemoryReportRepository, ReportRepository, ReportSnapshot
from pypothole.subscriptions import Subscription, SubscriptionManager, merge_reports_by_id

__all__ = [
    "__version__",
    "Bounds",
    "ChangeStreamFilter",
    "DedupGate",
    "DuplicateError",
    "EmptyInputError",
    "GeoPoint",
    "InMemoryReportRepository",
    "NearbyQuery",
    "OwnerQuery",
    "PotholeClient",
    "PotholeConfig",
    "PotholeConfigError",
    "PotholeError",
    "PotholeTransportError",
    "RejectReason",
    "Report",
    "ReportRepository",
    "ReportSnapshot",
    "ReportValidationError",
    "ReverseGeocoder",
    "ShareCompositor",
    "ShareOptions",
    "StaticMapTileClient",
    "StreamError",
    "SubmitResult",
    "Subscription",
    "SubscriptionManager",
    "TileFetchError",
    "TileRequest",
    "TripStats",
    "adaptive_zoom",
    "compute_bounds",
    "haversine_m",
    "mercator_y",
    "merge_reports_by_id",
    "path_distance_m",
]
