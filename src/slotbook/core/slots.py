"""Slot generator: walks the open window of a date and emits bookable slots."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from ..models import Booking, EventType, TimeSlot
from .conflicts import bookings_on, exclude_booking, is_bookable
from .rules import resolve_day, validate_event_type

logger = logging.getLogger(__name__)

DEFAULT_SLOT_GRANULARITY_MINUTES = 15


def generate_slots(
    event_type: EventType,
    day: date,
    all_bookings: Iterable[Booking],
    now: datetime,
    granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES,
    exclude_booking_id: str | None = None,
) -> list[TimeSlot]:
    """Bookable slots of ``event_type`` on ``day``, ascending by start.

    ``all_bookings`` is the whole calendar, not just this event type. ``now``
    is the only clock reading; the same inputs always give the same output.
    Pass ``exclude_booking_id`` when rescheduling that booking.
    """
    problems = validate_event_type(event_type)
    if problems:
        logger.warning("Event type %r is misconfigured: %s", event_type.id, "; ".join(problems))
        return []
    if not isinstance(granularity_minutes, int) or granularity_minutes <= 0:
        logger.warning("Slot granularity must be a positive number of minutes, got %r", granularity_minutes)
        return []

    resolution = resolve_day(event_type, day)
    if not resolution.is_open:
        return []
    window = resolution.open_window

    min_notice_cutoff = now + timedelta(minutes=event_type.minimum_scheduling_notice)
    relevant = bookings_on(exclude_booking(all_bookings, exclude_booking_id), day)
    duration = timedelta(minutes=event_type.duration)
    step = timedelta(minutes=granularity_minutes)

    slots = []
    t = window.start
    while t < window.end:
        candidate = TimeSlot(start=t, end=t + duration)
        if candidate.end > window.end:
            break
        if is_bookable(
            candidate,
            resolution.blocked,
            relevant,
            event_type.buffer_before,
            event_type.buffer_after,
            min_notice_cutoff,
        ):
            slots.append(candidate)
        t += step

    logger.debug("%d slots for %r on %s", len(slots), event_type.id, day.isoformat())
    return slots
