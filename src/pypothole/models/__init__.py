"""Data models for pypothole."""

from pypothole.models._base import PotholeBaseModel
from pypothole.models.geo import Bounds, GeoPoint
from pypothole.models.queries import NearbyQuery, OwnerQuery
from pypothole.models.report import Report
from pypothole.models.share import ShareOptions, TripStats
from pypothole.models.submission import RejectReason, SubmitResult

__all__ = [
    "Bounds",
    "GeoPoint",
    "NearbyQuery",
    "OwnerQuery",
    "PotholeBaseModel",
    "RejectReason",
    "Report",
    "ShareOptions",
    "SubmitResult",
    "TripStats",
]
