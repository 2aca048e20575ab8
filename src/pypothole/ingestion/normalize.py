"""Normalization helpers.

Centralizes defensive parsing of loosely-typed document values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, else ``None``.

    Booleans are rejected so a stray ``True`` never becomes ``1.0``.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def is_coordinate(value: Any) -> bool:
    """Return True for real numbers usable as a coordinate."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
