"""Google Calendar lookups used as a secondary booking conflict check."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from booking_guard.config import Settings
from booking_guard.domain.errors import (
    CalendarPermissionError,
    CredentialError,
    ProviderError,
)
from booking_guard.domain.models import (
    CalendarCredential,
    ExternalCheckResult,
    ExternalEvent,
    Interval,
)
from booking_guard.services.overlap import overlaps

logger = logging.getLogger(__name__)


class ExternalConflictAdapter(Protocol):
    """What the booking validator needs from an external calendar."""

    def check_external(
        self, credential: CalendarCredential, interval: Interval
    ) -> ExternalCheckResult: ...


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_event_time(raw: Any) -> datetime | None:
    """Parse a Google ``start``/``end`` object (``dateTime`` or all-day ``date``)."""
    if not isinstance(raw, dict):
        return None
    try:
        if raw.get("dateTime"):
            parsed = datetime.fromisoformat(raw["dateTime"])
        elif raw.get("date"):
            day = date.fromisoformat(raw["date"])
            parsed = datetime(day.year, day.month, day.day)
        else:
            return None
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_external_event(item: dict[str, Any]) -> ExternalEvent:
    summary = item.get("summary")
    return ExternalEvent(
        summary=summary if isinstance(summary, str) and summary.strip() else None,
        start=_parse_event_time(item.get("start")),
        end=_parse_event_time(item.get("end")),
    )


def _clashes(event: ExternalEvent, interval: Interval) -> bool:
    # Events without usable bounds are trusted as reported by the provider.
    if event.start is None or event.end is None:
        return True
    return overlaps(event, interval)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "unknown error"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return response.reason_phrase or "unknown error"


class GoogleCalendarAdapter:
    """Reads the owner's primary Google Calendar through the REST API.

    Every request is bounded by ``settings.calendar_timeout_seconds``; a
    timeout is reported like any other provider failure.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.Client()
        self._timeout = httpx.Timeout(settings.calendar_timeout_seconds)

    def close(self) -> None:
        if self._owns_http_client:
            self._http_client.close()

    def list_events(
        self,
        credential: CalendarCredential,
        interval: Interval,
        now: datetime | None = None,
    ) -> list[ExternalEvent]:
        """Return the events the provider reports inside *interval*.

        Raises ``ProviderError`` (or a subclass) when the calendar cannot be
        read.
        """
        current_time = now or datetime.now(timezone.utc)
        if credential.is_expired(current_time):
            raise CredentialError("access token expired")

        calendar_id = quote(self._settings.calendar_id, safe="")
        url = f"{self._settings.calendar_api_base_url}/calendars/{calendar_id}/events"
        params = {
            "timeMin": _rfc3339(interval.start),
            "timeMax": _rfc3339(interval.end),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        headers = {"Authorization": f"Bearer {credential.access_token}"}

        try:
            response = self._http_client.get(
                url, params=params, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"timed out after {self._settings.calendar_timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"request failed: {exc}") from exc

        if response.status_code == 401:
            raise CredentialError(_error_message(response))
        if response.status_code == 403:
            raise CalendarPermissionError(_error_message(response))
        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(
                f"HTTP {response.status_code}: {_error_message(response)}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("calendar returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError("calendar returned an unexpected payload")

        items = payload.get("items") or []
        if not isinstance(items, list):
            raise ProviderError("calendar response items is not a list")
        return [_to_external_event(item) for item in items if isinstance(item, dict)]

    def check_external(
        self,
        credential: CalendarCredential,
        interval: Interval,
        now: datetime | None = None,
    ) -> ExternalCheckResult:
        """Look for calendar events clashing with *interval*.

        Provider failures come back as an indeterminate result instead of an
        exception.
        """
        try:
            events = self.list_events(credential, interval, now=now)
        except ProviderError as exc:
            return ExternalCheckResult.failed(exc.failure, exc.detail)

        conflicts = [event for event in events if _clashes(event, interval)]
        if not conflicts:
            return ExternalCheckResult.clear()

        logger.warning("Found %d conflicting events in external calendar", len(conflicts))
        for event in conflicts:
            logger.debug(
                "Conflicting event: %s (%s - %s)", event.summary, event.start, event.end
            )
        return ExternalCheckResult.conflicting(conflicts)
