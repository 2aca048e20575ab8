"""Result of a single report submission."""

from __future__ import annotations

from enum import StrEnum

from pypothole.exceptions import DuplicateError
from pypothole.models._base import PotholeBaseModel


class RejectReason(StrEnum):
    DUPLICATE = "duplicate"


class SubmitResult(PotholeBaseModel):
    """Accept/reject outcome of :meth:`DedupGate.submit`.

    A rejection is a normal outcome, not a fault.
    """

    accepted: bool
    reason: RejectReason | None = None
    report_id: str | None = None
    duplicate_of: str | None = None
    distance_m: float | None = None

    @classmethod
    def accept(cls, report_id: str) -> SubmitResult:
        return cls(accepted=True, report_id=report_id)

    @classmethod
    def duplicate(cls, existing_id: str | None, distance_m: float) -> SubmitResult:
        return cls(
            accepted=False,
            reason=RejectReason.DUPLICATE,
            duplicate_of=existing_id,
            distance_m=distance_m,
        )

    def raise_for_rejection(self) -> None:
        """Raise :class:`DuplicateError` if the submission was rejected."""
        if self.accepted:
            return
        raise DuplicateError(
            f"Duplicate pothole within {self.distance_m:.1f} m of {self.duplicate_of}",
            existing_id=self.duplicate_of,
            distance_m=self.distance_m,
        )
