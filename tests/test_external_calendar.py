"""Tests for the Google Calendar adapter, using httpx's mock transport."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from booking_guard.config import Settings
from booking_guard.domain.errors import CredentialError, ProviderError
from booking_guard.domain.models import (
    CalendarCredential,
    ExternalCheckStatus,
    Interval,
    ProviderFailure,
)
from booking_guard.services.external_calendar import GoogleCalendarAdapter

_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
_INTERVAL = Interval(
    start=datetime(2026, 6, 2, 10, 0, tzinfo=timezone.utc),
    end=datetime(2026, 6, 2, 11, 0, tzinfo=timezone.utc),
)
_CREDENTIAL = CalendarCredential(access_token="token-123")


def _adapter(handler) -> GoogleCalendarAdapter:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GoogleCalendarAdapter(Settings(calendar_timeout_seconds=2.0), http_client=client)


def _event(summary, start: str, end: str) -> dict:
    item = {"start": {"dateTime": start}, "end": {"dateTime": end}}
    if summary is not None:
        item["summary"] = summary
    return item


def _respond(status_code: int = 200, **kwargs):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, **kwargs)

    return handler


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------


def test_request_targets_primary_calendar_with_window():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"items": []})

    _adapter(handler).check_external(_CREDENTIAL, _INTERVAL, now=_NOW)

    (request,) = captured
    assert request.url.path == "/calendar/v3/calendars/primary/events"
    assert request.url.params["timeMin"] == "2026-06-02T10:00:00Z"
    assert request.url.params["timeMax"] == "2026-06-02T11:00:00Z"
    assert request.url.params["singleEvents"] == "true"
    assert request.headers["Authorization"] == "Bearer token-123"


# ---------------------------------------------------------------------------
# Conflict detection
# ---------------------------------------------------------------------------


def test_no_events_is_no_conflict():
    result = _adapter(_respond(json={"items": []})).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.NO_CONFLICT


def test_missing_items_is_no_conflict():
    result = _adapter(_respond(json={"kind": "calendar#events"})).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.NO_CONFLICT


def test_overlapping_event_is_conflict():
    payload = {
        "items": [
            _event("Dentist", "2026-06-02T10:30:00Z", "2026-06-02T11:30:00Z"),
        ]
    }
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )

    assert result.status == ExternalCheckStatus.CONFLICT
    assert [e.summary for e in result.events] == ["Dentist"]
    assert result.events[0].start == datetime(2026, 6, 2, 10, 30, tzinfo=timezone.utc)


def test_event_with_offset_is_compared_in_utc():
    # 12:00+02:00 is 10:00 UTC
    payload = {
        "items": [
            _event("Call", "2026-06-02T12:00:00+02:00", "2026-06-02T12:30:00+02:00"),
        ]
    }
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.CONFLICT


def test_adjacent_event_is_not_conflict():
    payload = {
        "items": [
            _event("Lunch", "2026-06-02T11:00:00Z", "2026-06-02T12:00:00Z"),
        ]
    }
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.NO_CONFLICT


def test_event_without_times_is_trusted_as_conflict():
    payload = {"items": [{"summary": "Mystery"}]}
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )

    assert result.status == ExternalCheckStatus.CONFLICT
    assert result.events[0].start is None


def test_all_day_event_conflicts():
    payload = {
        "items": [
            {"summary": "Offsite", "start": {"date": "2026-06-02"}, "end": {"date": "2026-06-03"}}
        ]
    }
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.CONFLICT


def test_blank_summary_is_dropped():
    payload = {
        "items": [_event("   ", "2026-06-02T10:00:00Z", "2026-06-02T11:00:00Z")]
    }
    result = _adapter(_respond(json=payload)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.events[0].summary is None


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("status_code", "failure"),
    [
        (401, ProviderFailure.CREDENTIAL_INVALID),
        (403, ProviderFailure.PERMISSION_DENIED),
        (404, ProviderFailure.UNAVAILABLE),
        (500, ProviderFailure.UNAVAILABLE),
        (503, ProviderFailure.UNAVAILABLE),
    ],
)
def test_http_errors_are_indeterminate(status_code, failure):
    body = {"error": {"code": status_code, "message": "nope"}}
    result = _adapter(_respond(status_code, json=body)).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )

    assert result.status == ExternalCheckStatus.INDETERMINATE
    assert result.failure == failure
    assert "nope" in result.detail


def test_timeout_is_indeterminate():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = _adapter(handler).check_external(_CREDENTIAL, _INTERVAL, now=_NOW)

    assert result.status == ExternalCheckStatus.INDETERMINATE
    assert result.failure == ProviderFailure.UNAVAILABLE
    assert "timed out" in result.detail


def test_connection_error_is_indeterminate():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _adapter(handler).check_external(_CREDENTIAL, _INTERVAL, now=_NOW)
    assert result.failure == ProviderFailure.UNAVAILABLE


def test_invalid_json_is_indeterminate():
    result = _adapter(_respond(content=b"<html>")).check_external(
        _CREDENTIAL, _INTERVAL, now=_NOW
    )
    assert result.status == ExternalCheckStatus.INDETERMINATE
    assert result.failure == ProviderFailure.UNAVAILABLE


def test_expired_credential_skips_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"items": []})

    expired = CalendarCredential(
        access_token="old", expires_at=_NOW - timedelta(minutes=1)
    )
    result = _adapter(handler).check_external(expired, _INTERVAL, now=_NOW)

    assert calls == []
    assert result.failure == ProviderFailure.CREDENTIAL_INVALID


def test_list_events_raises_provider_errors():
    with pytest.raises(CredentialError):
        _adapter(_respond(401, json={})).list_events(_CREDENTIAL, _INTERVAL, now=_NOW)

    with pytest.raises(ProviderError):
        _adapter(_respond(502, json={})).list_events(_CREDENTIAL, _INTERVAL, now=_NOW)
