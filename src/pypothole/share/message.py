"""Text that accompanies a shared image."""

from __future__ import annotations

SHARE_URL = "https://potholes.live"
HASHTAGS = ("#potholes", "#FixOurRoads")


def build_share_message(count: int, place: str | None = None) -> str:
    noun = "pothole" if count == 1 else "potholes"
    where = f" around {place}" if place else ""
    return f"Mapped {count} {noun}{where} with potholes.live.\nHelp fix our roads! {SHARE_URL}\n{' '.join(HASHTAGS)}"
