"""FastAPI application entry point for the booking service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Header, HTTPException, Response

from booking_guard.config import Settings
from booking_guard.domain.errors import BookingError, ProviderError
from booking_guard.domain.models import (
    Booking,
    CreateBookingRequest,
    DeleteBookingResponse,
    ExternalEvent,
    LinkCalendarRequest,
    RejectReason,
)
from booking_guard.repos.memory import BookingRepository, CredentialRepository
from booking_guard.services.bookings import BookingService
from booking_guard.services.external_calendar import GoogleCalendarAdapter

settings = Settings.from_env()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ── Singletons (created at import time for simplicity) ────────────────
booking_repo = BookingRepository()
credential_repo = CredentialRepository()
calendar_adapter = GoogleCalendarAdapter(settings)
booking_service = BookingService(booking_repo, credential_repo, calendar_adapter)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    calendar_adapter.close()


app = FastAPI(title="Booking Service", lifespan=lifespan)

_STATUS_BY_REASON = {
    RejectReason.INVALID_TITLE: 400,
    RejectReason.INVALID_RANGE: 400,
    RejectReason.PAST_BOOKING: 400,
    RejectReason.INTERNAL_CONFLICT: 409,
    RejectReason.EXTERNAL_CONFLICT: 409,
    RejectReason.NOT_FOUND: 404,
    RejectReason.FORBIDDEN: 403,
}


def _http_error(exc: BookingError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_REASON[exc.reason], detail=exc.message)


def current_owner(x_owner_id: str | None = Header(default=None)) -> str:
    """Resolve the authenticated owner supplied by the identity layer."""
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_owner_id


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/bookings", response_model=list[Booking])
def list_bookings(owner_id: str = Depends(current_owner)) -> list[Booking]:
    """Return the caller's bookings ordered by start time."""
    return booking_service.list_bookings(owner_id)


@app.post("/bookings", response_model=Booking, status_code=201)
def create_booking(
    payload: CreateBookingRequest, owner_id: str = Depends(current_owner)
) -> Booking:
    """Validate the requested slot and store it."""
    try:
        return booking_service.create_booking(
            owner_id, payload.title, payload.start, payload.end
        )
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.delete("/bookings/{booking_id}", response_model=DeleteBookingResponse)
def delete_booking(
    booking_id: str, owner_id: str = Depends(current_owner)
) -> DeleteBookingResponse:
    """Delete one of the caller's bookings."""
    try:
        booking_service.delete_booking(booking_id, owner_id)
    except BookingError as exc:
        raise _http_error(exc) from exc
    return DeleteBookingResponse()


@app.put("/calendar/credential", status_code=204)
def link_calendar(
    payload: LinkCalendarRequest, owner_id: str = Depends(current_owner)
) -> Response:
    """Store the caller's calendar credential for external conflict checks."""
    booking_service.link_calendar(owner_id, payload.to_credential())
    return Response(status_code=204)


@app.delete("/calendar/credential", status_code=204)
def unlink_calendar(owner_id: str = Depends(current_owner)) -> Response:
    booking_service.unlink_calendar(owner_id)
    return Response(status_code=204)


@app.get("/calendar/events", response_model=list[ExternalEvent])
def list_calendar_events(
    start: datetime, end: datetime, owner_id: str = Depends(current_owner)
) -> list[ExternalEvent]:
    """Return events from the caller's linked calendar within a range."""
    start = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
    end = end if end.tzinfo else end.replace(tzinfo=timezone.utc)
    if start >= end:
        raise HTTPException(status_code=400, detail="Start time must be before end time")
    try:
        return booking_service.calendar_events(owner_id, start, end)
    except BookingError as exc:
        raise _http_error(exc) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
