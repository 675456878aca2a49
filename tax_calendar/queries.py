"""
Event query layer.

Pure filters over an already-computed event list. Every comparison is
made at day granularity against a caller-supplied reference date, never
the wall clock.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Union

from tax_calendar.deadlines import EventType, TaxEvent

DateLike = Union[date, datetime]


class EventStatus(Enum):
    PENDING = "pending"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"


def as_day(value: DateLike) -> date:
    """Drop any time component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until(event_date: DateLike, reference: DateLike) -> int:
    """Whole days from reference to event_date; negative when past."""
    return (as_day(event_date) - as_day(reference)).days


def by_type(
    events: Iterable[TaxEvent], event_type: Union[EventType, str]
) -> list[TaxEvent]:
    """Events of one type, in their original order."""
    if not isinstance(event_type, EventType):
        try:
            event_type = EventType(str(event_type).upper())
        except ValueError:
            return []
    return [e for e in events if e.event_type == event_type]


def upcoming(
    events: Iterable[TaxEvent], reference: DateLike, horizon_days: int = 30
) -> list[TaxEvent]:
    """Events due within [reference, reference + horizon_days], ascending."""
    start = as_day(reference)
    end = start + timedelta(days=horizon_days)
    window = [e for e in events if start <= e.due_date <= end]
    return sorted(window, key=lambda e: e.sort_key)


def overdue(events: Iterable[TaxEvent], reference: DateLike) -> list[TaxEvent]:
    """Events due strictly before the reference day."""
    start = as_day(reference)
    return [e for e in events if e.due_date < start]


def event_status(
    event: TaxEvent, reference: DateLike, due_soon_days: int = 7
) -> EventStatus:
    remaining = days_until(event.due_date, reference)
    if remaining < 0:
        return EventStatus.OVERDUE
    if remaining <= due_soon_days:
        return EventStatus.DUE_SOON
    return EventStatus.PENDING
