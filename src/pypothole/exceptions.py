"""Custom exception hierarchy for pypothole."""

from __future__ import annotations


class PotholeError(Exception):
    """Base exception for all pypothole errors."""


class PotholeConfigError(PotholeError):
    """Invalid or missing configuration."""


class ReportValidationError(PotholeError, ValueError):
    """Malformed report (missing or non-finite coordinates, bad ranges).

    Raised before any storage call is made.
    """


class EmptyInputError(PotholeError, ValueError):
    """An operation that needs at least one point received none."""


class DuplicateError(PotholeError):
    """A report lies within the dedup radius of an existing report.

    Submission rejects duplicates through :class:`~pypothole.models.SubmitResult`
    rather than raising; this is only raised by
    :meth:`SubmitResult.raise_for_rejection`.
    """

    def __init__(
        self,
        message: str,
        *,
        existing_id: str | None = None,
        distance_m: float | None = None,
    ) -> None:
        self.existing_id = existing_id
        self.distance_m = distance_m
        super().__init__(message)


class PotholeTransportError(PotholeError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TileFetchError(PotholeTransportError):
    """The raster tile collaborator returned a non-success status.

    Not retried internally; callers may retry.
    """


class StreamError(PotholeError):
    """A repository change-stream failed.

    Delivered to the observer as a terminal notification; the
    subscription is closed afterwards and does not reconnect.
    """
