"""Store document -> :class:`Report` conversion.

Documents come from a schemaless store and may be malformed. A document
whose ``lat``/``lon``/``ts`` are not real numbers is dropped; optional
metadata that fails to parse is discarded without dropping the report.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pypothole.ingestion.normalize import is_coordinate, safe_float, safe_str
from pypothole.models.report import Report

_logger = logging.getLogger(__name__)


def parse_report_document(doc_id: str, data: Mapping[str, Any]) -> Report | None:
    """Build a :class:`Report` from a stored document, or ``None`` if invalid."""
    lat = data.get("lat")
    lon = data.get("lon")
    ts = data.get("ts")
    if not (is_coordinate(lat) and is_coordinate(lon) and is_coordinate(ts)):
        return None

    conf = safe_float(data.get("conf"))
    if conf is not None and not 0.0 <= conf <= 1.0:
        conf = None

    try:
        return Report(
            id=doc_id,
            lat=lat,
            lon=lon,
            ts=int(ts),
            uid=safe_str(data.get("uid")),
            model=safe_str(data.get("model")),
            conf=conf,
        )
    except ValidationError:
        _logger.debug("Dropping out-of-range document id=%s", doc_id, exc_info=True)
        return None


def parse_report_documents(docs: Iterable[tuple[str, Mapping[str, Any]]]) -> list[Report]:
    """Parse ``(id, data)`` pairs, skipping malformed documents."""
    reports: list[Report] = []
    for doc_id, data in docs:
        report = parse_report_document(doc_id, data)
        if report is not None:
            reports.append(report)
    return reports
