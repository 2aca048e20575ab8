"""Base model for pypothole domain objects.

Every model inherits from :class:`PotholeBaseModel` which provides:

* frozen instances (reports are immutable once created)
* ``extra="ignore"`` so store documents may carry unrelated keys
* ``populate_by_name=True`` so aliased fields also accept their
  Python name
* ``allow_inf_nan=False`` so coordinates are always finite
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PotholeBaseModel(BaseModel):
    """Base for pypothole models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        allow_inf_nan=False,
    )
