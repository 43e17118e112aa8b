"""Conflict validation that runs before a booking is stored.

Checks run in a fixed order and stop at the first rejection:

1. a non-blank title
2. temporal sanity (``start < end``, ``start`` not in the past)
3. internal conflict against every booking the owner already holds
4. external conflict against the owner's linked calendar, if any

The external step is fail-open: when the calendar cannot be consulted the
booking is still approved and a warning is logged for operators.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from booking_guard.domain.errors import (
    BookingConflictError,
    BookingForbiddenError,
    BookingNotFoundError,
    BookingValidationError,
    ProviderError,
)
from booking_guard.domain.models import (
    Booking,
    ConflictOutcome,
    ExternalCheckResult,
    ExternalCheckStatus,
    ExternalEvent,
    Interval,
    PreparedBooking,
    ProviderFailure,
    RejectReason,
    assume_utc,
)
from booking_guard.repos.memory import BookingRepository, CredentialRepository
from booking_guard.services.external_calendar import ExternalConflictAdapter
from booking_guard.services.overlap import check_all, find_overlapping

logger = logging.getLogger(__name__)

UNKNOWN_EVENTS = "Unknown events"

_FAILURE_LOG_MESSAGES = {
    ProviderFailure.CREDENTIAL_INVALID: "calendar credential expired or invalid",
    ProviderFailure.PERMISSION_DENIED: "no permission to read calendar",
    ProviderFailure.UNAVAILABLE: "calendar check failed",
}


def resolve_external_outcome(result: ExternalCheckResult) -> ConflictOutcome:
    """Map an external check onto the booking decision.

    An indeterminate check never blocks a booking.
    """
    if result.status == ExternalCheckStatus.CONFLICT:
        return ConflictOutcome.EXTERNAL_CONFLICT
    if result.status == ExternalCheckStatus.INDETERMINATE:
        return ConflictOutcome.PROVIDER_DEGRADED
    return ConflictOutcome.NO_CONFLICT


def describe_events(events: list[ExternalEvent]) -> str:
    summaries = [e.summary for e in events if e.summary]
    return ", ".join(summaries) if summaries else UNKNOWN_EVENTS


class BookingValidator:
    """Decides whether a proposed booking may be created or deleted.

    Holds no state between calls; every call reads the store afresh.
    """

    def __init__(
        self,
        booking_repo: BookingRepository,
        credential_repo: CredentialRepository,
        calendar: ExternalConflictAdapter,
    ) -> None:
        self.booking_repo = booking_repo
        self.credential_repo = credential_repo
        self.calendar = calendar

    def validate_and_prepare(
        self,
        owner_id: str,
        title: str,
        start: datetime,
        end: datetime,
        now: datetime | None = None,
    ) -> PreparedBooking:
        """Run every check and return the booking to persist.

        Raises ``BookingValidationError`` or ``BookingConflictError`` on
        rejection. Nothing is written.
        """
        current_time = assume_utc(now) or datetime.now(timezone.utc)
        start = assume_utc(start)
        end = assume_utc(end)
        proposed = Interval(start=start, end=end)

        # -- title ---------------------------------------------------------
        title = title.strip()
        if not title:
            raise BookingValidationError(
                RejectReason.INVALID_TITLE, "Title must not be empty"
            )

        # -- temporal ------------------------------------------------------
        if start >= end:
            raise BookingValidationError(
                RejectReason.INVALID_RANGE, "Start time must be before end time"
            )
        if start < current_time:
            raise BookingValidationError(
                RejectReason.PAST_BOOKING, "Cannot create bookings in the past"
            )

        # -- internal ------------------------------------------------------
        existing = self.booking_repo.find_by_owner(owner_id)
        if check_all(existing, proposed):
            clashing = find_overlapping(existing, proposed)
            logger.info(
                "Rejected booking for owner %s: overlaps %s",
                owner_id,
                [b.id for b in clashing],
            )
            raise BookingConflictError(
                RejectReason.INTERNAL_CONFLICT,
                "This time slot conflicts with an existing booking",
            )

        # -- external ------------------------------------------------------
        outcome = self._check_external(owner_id, proposed)

        return PreparedBooking(
            owner_id=owner_id,
            title=title,
            start=start,
            end=end,
            external_check=outcome,
        )

    def _check_external(self, owner_id: str, proposed: Interval) -> ConflictOutcome:
        credential = self.credential_repo.get(owner_id)
        if credential is None:
            return ConflictOutcome.NO_CONFLICT

        try:
            result = self.calendar.check_external(credential, proposed)
        except ProviderError as exc:
            result = ExternalCheckResult.failed(exc.failure, exc.detail)

        outcome = resolve_external_outcome(result)
        if outcome == ConflictOutcome.EXTERNAL_CONFLICT:
            summaries = describe_events(result.events)
            raise BookingConflictError(
                RejectReason.EXTERNAL_CONFLICT,
                f"This time slot conflicts with events in your calendar: {summaries}",
                event_summaries=[e.summary for e in result.events if e.summary],
            )
        if outcome == ConflictOutcome.PROVIDER_DEGRADED:
            failure = result.failure or ProviderFailure.UNAVAILABLE
            logger.warning(
                "External calendar check skipped for owner %s: %s (%s)",
                owner_id,
                _FAILURE_LOG_MESSAGES[failure],
                result.detail or "no detail",
            )
        return outcome

    def authorize_deletion(self, booking_id: str, owner_id: str) -> Booking:
        """Return the booking if *owner_id* may delete it."""
        booking = self.booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFoundError()
        if booking.owner_id != owner_id:
            raise BookingForbiddenError()
        return booking
