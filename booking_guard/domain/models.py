"""Domain models for the booking service."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator


class ConflictOutcome(StrEnum):
    NO_CONFLICT = "no_conflict"
    INTERNAL_CONFLICT = "internal_conflict"
    EXTERNAL_CONFLICT = "external_conflict"
    PROVIDER_DEGRADED = "provider_degraded"


class ExternalCheckStatus(StrEnum):
    NO_CONFLICT = "no_conflict"
    CONFLICT = "conflict"
    INDETERMINATE = "indeterminate"


class ProviderFailure(StrEnum):
    CREDENTIAL_INVALID = "credential_invalid"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"


class RejectReason(StrEnum):
    INVALID_TITLE = "invalid_title"
    INVALID_RANGE = "invalid_range"
    PAST_BOOKING = "past_booking"
    INTERNAL_CONFLICT = "internal_conflict"
    EXTERNAL_CONFLICT = "external_conflict"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def assume_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Interval(BaseModel):
    """Half-open time range ``[start, end)``.

    Ordering is deliberately not validated here: the booking validator is the
    one place that reports an illegal range to the caller.
    """

    start: datetime
    end: datetime


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str = Field(min_length=1)
    start: datetime
    end: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class PreparedBooking(BaseModel):
    """A booking that passed validation and may now be persisted."""

    owner_id: str
    title: str
    start: datetime
    end: datetime
    external_check: ConflictOutcome = ConflictOutcome.NO_CONFLICT

    def to_booking(self) -> Booking:
        return Booking(
            owner_id=self.owner_id,
            title=self.title,
            start=self.start,
            end=self.end,
        )


class ExternalEvent(BaseModel):
    """Read-only projection of an event on the owner's external calendar."""

    summary: str | None = None
    start: datetime | None = None
    end: datetime | None = None


class CalendarCredential(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def _expiry_is_aware(cls, value: datetime | None) -> datetime | None:
        return assume_utc(value)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class ExternalCheckResult(BaseModel):
    """Tagged outcome of an external calendar lookup."""

    status: ExternalCheckStatus
    events: list[ExternalEvent] = Field(default_factory=list)
    failure: ProviderFailure | None = None
    detail: str | None = None

    @classmethod
    def clear(cls) -> ExternalCheckResult:
        return cls(status=ExternalCheckStatus.NO_CONFLICT)

    @classmethod
    def conflicting(cls, events: list[ExternalEvent]) -> ExternalCheckResult:
        return cls(status=ExternalCheckStatus.CONFLICT, events=events)

    @classmethod
    def failed(
        cls, failure: ProviderFailure, detail: str | None = None
    ) -> ExternalCheckResult:
        return cls(
            status=ExternalCheckStatus.INDETERMINATE, failure=failure, detail=detail
        )


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateBookingRequest(BaseModel):
    title: str
    start: datetime
    end: datetime

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator("start", "end")
    @classmethod
    def _instant_is_aware(cls, value: datetime) -> datetime:
        return assume_utc(value)


class LinkCalendarRequest(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_at: datetime | None = None

    def to_credential(self) -> CalendarCredential:
        return CalendarCredential(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
        )


class DeleteBookingResponse(BaseModel):
    message: str = "Booking deleted successfully"
