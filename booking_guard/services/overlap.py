"""Interval overlap checks used for booking conflict detection."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, TypeVar


class HasBounds(Protocol):
    start: datetime
    end: datetime


T = TypeVar("T", bound=HasBounds)


def overlaps(existing: HasBounds, proposed: HasBounds) -> bool:
    """Return True if *existing* clashes with *proposed*.

    Three independent cases, any one of which is a conflict:

    1. existing is already running when proposed begins
    2. existing is still running when proposed ends
    3. existing sits entirely inside proposed

    The inclusive/exclusive mix is not symmetric between cases but it keeps
    back-to-back slots legal: existing.end == proposed.start and
    existing.start == proposed.end are NOT conflicts.
    """
    starts_during = existing.start <= proposed.start and existing.end > proposed.start
    ends_during = existing.start < proposed.end and existing.end >= proposed.end
    contained = existing.start >= proposed.start and existing.end <= proposed.end
    return starts_during or ends_during or contained


def check_all(existing: Iterable[HasBounds], proposed: HasBounds) -> bool:
    """Return True as soon as any member of *existing* overlaps *proposed*."""
    return any(overlaps(item, proposed) for item in existing)


def find_overlapping(existing: Iterable[T], proposed: HasBounds) -> list[T]:
    """Return every member of *existing* that overlaps *proposed*."""
    return [item for item in existing if overlaps(item, proposed)]
