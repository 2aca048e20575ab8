"""Client configuration for pypothole."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pypothole._constants import (
    DEDUP_LAT_BAND_DEG,
    DEDUP_RADIUS_M,
    DEFAULT_GEOCODE_ENDPOINT,
    DEFAULT_TILE_ENDPOINT,
    FALLBACK_PIN_URL,
    MAP_STYLE,
    NEARBY_LIMIT,
    OWNER_LIMIT,
)
from pypothole.exceptions import PotholeConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PotholeConfig:
    """Client configuration.

    Parameters
    ----------
    tile_endpoint : str
        URL of the static-map function that renders the base raster
        (path + pins) for a share image.
    geocode_endpoint : str
        URL of the reverse-geocode function (``?lat=..&lon=..``).
    pin_url : str
        Icon asset used for every pin overlay.
    map_style : str
        Base map style id passed to the tile collaborator.
    http_timeout : float
        Total timeout in seconds for a single collaborator request.
    dedup_radius_m : float
        Reports closer than this are the same physical pothole.
    dedup_lat_band_deg : float
        Half-width of the coarse latitude pre-filter.
    nearby_limit : int
        Result cap for nearby subscriptions.
    owner_limit : int
        Result cap for by-owner subscriptions.
    debug_http : bool
        Log request/response bodies of collaborator calls at DEBUG.
    """

    tile_endpoint: str = DEFAULT_TILE_ENDPOINT
    geocode_endpoint: str = DEFAULT_GEOCODE_ENDPOINT
    pin_url: str = FALLBACK_PIN_URL
    map_style: str = MAP_STYLE
    http_timeout: float = 20.0
    dedup_radius_m: float = DEDUP_RADIUS_M
    dedup_lat_band_deg: float = DEDUP_LAT_BAND_DEG
    nearby_limit: int = NEARBY_LIMIT
    owner_limit: int = OWNER_LIMIT
    debug_http: bool = False

    def __post_init__(self) -> None:
        if self.dedup_radius_m <= 0:
            raise PotholeConfigError(f"dedup_radius_m must be positive, got {self.dedup_radius_m}")
        if self.dedup_lat_band_deg <= 0:
            raise PotholeConfigError(f"dedup_lat_band_deg must be positive, got {self.dedup_lat_band_deg}")
        if self.nearby_limit <= 0 or self.owner_limit <= 0:
            raise PotholeConfigError("subscription limits must be positive")
        if self.http_timeout <= 0:
            raise PotholeConfigError(f"http_timeout must be positive, got {self.http_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> PotholeConfig:
        """Create configuration from environment variables.

        Reads optional ``POTHOLE_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        PotholeConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "POTHOLE_TILE_ENDPOINT": "tile_endpoint",
            "POTHOLE_GEOCODE_ENDPOINT": "geocode_endpoint",
            "POTHOLE_SHARE_PIN_URL": "pin_url",
            "POTHOLE_MAP_STYLE": "map_style",
        }
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "POTHOLE_HTTP_TIMEOUT": ("http_timeout", float),
            "POTHOLE_DEDUP_RADIUS_M": ("dedup_radius_m", float),
            "POTHOLE_NEARBY_LIMIT": ("nearby_limit", int),
            "POTHOLE_OWNER_LIMIT": ("owner_limit", int),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = kind(val)
            except ValueError as exc:
                raise PotholeConfigError(f"{env_key} is not a valid {kind.__name__}: {val!r}") from exc

        if "debug_http" not in overrides:
            config_kwargs["debug_http"] = _env_bool(env.get("POTHOLE_DEBUG_HTTP"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
