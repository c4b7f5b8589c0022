"""Conflict filter: decides whether a candidate slot collides with blackouts, bookings or notice."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from ..models import Booking
from .intervals import Interval, Timed


def bookings_on(bookings: Iterable[Booking], day: date) -> list[Booking]:
    """Bookings starting on ``day``, across all event types."""
    return [b for b in bookings if b.start.date() == day]


def exclude_booking(bookings: Iterable[Booking], booking_id: str | None) -> list[Booking]:
    """Drop the booking being rescheduled so it cannot conflict with itself."""
    if not booking_id:
        return list(bookings)
    return [b for b in bookings if b.id != booking_id]


def is_bookable(
    candidate: Timed,
    blocked: Iterable[Timed],
    bookings: Iterable[Timed],
    buffer_before: int,
    buffer_after: int,
    min_notice_cutoff: datetime,
) -> bool:
    """Check a candidate slot against notice, blackouts and buffered bookings.

    Blackouts are compared against the exact slot. Bookings are compared with
    both sides padded by the current event type's buffers, whichever event
    type created them.
    """
    if candidate.start < min_notice_cutoff:
        return False

    slot = Interval.of(candidate)
    if any(slot.overlaps(b) for b in blocked):
        return False

    padded = slot.expand(buffer_before, buffer_after)
    for booking in bookings:
        if padded.overlaps(Interval.of(booking).expand(buffer_before, buffer_after)):
            return False

    return True
