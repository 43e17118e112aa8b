"""In-memory repositories for bookings and calendar credentials."""

from __future__ import annotations

from booking_guard.domain.models import Booking, CalendarCredential


class BookingRepository:
    """Dict-backed store for Booking instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}

    def add(self, booking: Booking) -> Booking:
        self._store[booking.id] = booking
        return booking

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def find_by_owner(self, owner_id: str) -> list[Booking]:
        """Return every booking the owner holds, past ones included."""
        return [b for b in self._store.values() if b.owner_id == owner_id]

    def list_all(self) -> list[Booking]:
        return list(self._store.values())

    def delete(self, booking_id: str) -> None:
        self._store.pop(booking_id, None)


class CredentialRepository:
    """Dict-backed store for linked calendar credentials, keyed by owner."""

    def __init__(self) -> None:
        self._store: dict[str, CalendarCredential] = {}

    def get(self, owner_id: str) -> CalendarCredential | None:
        return self._store.get(owner_id)

    def set(self, owner_id: str, credential: CalendarCredential) -> None:
        self._store[owner_id] = credential

    def remove(self, owner_id: str) -> None:
        self._store.pop(owner_id, None)
