"""Errors raised while validating, storing and deleting bookings."""

from __future__ import annotations

from booking_guard.domain.models import ProviderFailure, RejectReason


class BookingError(Exception):
    """Base class for rejections that are reported back to the caller."""

    reason: RejectReason

    def __init__(self, reason: RejectReason, message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(message)


class BookingValidationError(BookingError):
    """The proposed time range is malformed or lies in the past."""


class BookingConflictError(BookingError):
    """The proposed slot clashes with a stored booking or a calendar event."""

    def __init__(
        self,
        reason: RejectReason,
        message: str,
        event_summaries: list[str] | None = None,
    ) -> None:
        super().__init__(reason, message)
        self.event_summaries = event_summaries or []


class BookingNotFoundError(BookingError):
    def __init__(self, message: str = "Booking not found") -> None:
        super().__init__(RejectReason.NOT_FOUND, message)


class BookingForbiddenError(BookingError):
    def __init__(self, message: str = "You can only delete your own bookings") -> None:
        super().__init__(RejectReason.FORBIDDEN, message)


class ProviderError(RuntimeError):
    """The external calendar could not be consulted.

    Never reported to a booking caller: the validator turns it into an
    indeterminate external check.
    """

    failure: ProviderFailure = ProviderFailure.UNAVAILABLE

    def __init__(self, detail: str, failure: ProviderFailure | None = None) -> None:
        if failure is not None:
            self.failure = failure
        self.detail = detail
        super().__init__(f"{self.failure}: {detail}")


class CredentialError(ProviderError):
    """Raised when the stored calendar credential is expired or rejected."""

    failure = ProviderFailure.CREDENTIAL_INVALID


class CalendarPermissionError(ProviderError):
    """Raised when the credential lacks access to the calendar."""

    failure = ProviderFailure.PERMISSION_DENIED
