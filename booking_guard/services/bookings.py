"""Booking use cases: create, list and delete, plus calendar linking."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime

from booking_guard.domain.errors import BookingNotFoundError
from booking_guard.domain.models import (
    Booking,
    CalendarCredential,
    ExternalEvent,
    Interval,
)
from booking_guard.repos.memory import BookingRepository, CredentialRepository
from booking_guard.services.external_calendar import GoogleCalendarAdapter
from booking_guard.services.validator import BookingValidator

logger = logging.getLogger(__name__)


class BookingService:
    """Wraps the validator with persistence.

    Validation and the write happen under a per-owner lock so two concurrent
    requests from the same owner cannot both pass the internal conflict check.
    This only serializes within one process; a multi-process deployment needs
    an exclusion constraint on (owner, interval) in the store instead.
    """

    def __init__(
        self,
        booking_repo: BookingRepository,
        credential_repo: CredentialRepository,
        calendar: GoogleCalendarAdapter,
    ) -> None:
        self.booking_repo = booking_repo
        self.credential_repo = credential_repo
        self.calendar = calendar
        self.validator = BookingValidator(booking_repo, credential_repo, calendar)
        # One lock per owner ever seen; kept for the process lifetime.
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[owner_id]

    def list_bookings(self, owner_id: str) -> list[Booking]:
        return sorted(self.booking_repo.find_by_owner(owner_id), key=lambda b: b.start)

    def create_booking(
        self,
        owner_id: str,
        title: str,
        start: datetime,
        end: datetime,
        now: datetime | None = None,
    ) -> Booking:
        with self._owner_lock(owner_id):
            prepared = self.validator.validate_and_prepare(
                owner_id, title, start, end, now=now
            )
            booking = self.booking_repo.add(prepared.to_booking())
        logger.info(
            "Created booking %s for owner %s (calendar check: %s)",
            booking.id,
            owner_id,
            prepared.external_check,
        )
        return booking

    def delete_booking(self, booking_id: str, owner_id: str) -> None:
        with self._owner_lock(owner_id):
            booking = self.validator.authorize_deletion(booking_id, owner_id)
            self.booking_repo.delete(booking.id)
        logger.info("Deleted booking %s for owner %s", booking_id, owner_id)

    def link_calendar(self, owner_id: str, credential: CalendarCredential) -> None:
        self.credential_repo.set(owner_id, credential)

    def unlink_calendar(self, owner_id: str) -> None:
        self.credential_repo.remove(owner_id)

    def calendar_events(
        self, owner_id: str, start: datetime, end: datetime
    ) -> list[ExternalEvent]:
        """List events on the owner's linked calendar between *start* and *end*.

        Raises ``ProviderError`` if the calendar cannot be read.
        """
        credential = self.credential_repo.get(owner_id)
        if credential is None:
            raise BookingNotFoundError("No calendar linked")
        return self.calendar.list_events(credential, Interval(start=start, end=end))
