"""Report repository layer.

The repository is the only owner of persisted reports. Everything else
holds transient snapshots derived from its change streams.
"""

from pypothole.store.memory import InMemoryReportRepository
from pypothole.store.repository import (
    ChangeStreamFilter,
    ReportRepository,
    ReportSnapshot,
    StreamRegistration,
)

__all__ = [
    "ChangeStreamFilter",
    "InMemoryReportRepository",
    "ReportRepository",
    "ReportSnapshot",
    "StreamRegistration",
]
