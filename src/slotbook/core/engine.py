"""Scheduling engine: booking, rescheduling and cancellation on top of the availability engine.

Both the booking flow and the reschedule flow go through ``_check_offered``,
so a start time is only ever accepted if the slot generator would offer it.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date, datetime, timedelta
from typing import Any

from ..config import EngineConfig
from ..database import Database
from ..errors import (
    AvailabilityUnavailableError,
    BookingNotFoundError,
    SlotUnavailableError,
)
from ..models import Booking, EventType, PositionedBooking
from ..retry import retry_async
from .availability import AvailabilityEngine
from .layout import layout_day

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """Creates and moves bookings on the shared calendar."""

    def __init__(self, config: EngineConfig, db: Database):
        self.config = config
        self.db = db
        self.availability = AvailabilityEngine(config, db)

    async def _write(self, fn, *args, label: str):
        try:
            return await retry_async(fn, *args, label=label)
        except (sqlite3.Error, OSError) as e:
            logger.error("Store write %s failed: %s", label, e)
            raise AvailabilityUnavailableError(f"Could not update bookings: {e}") from e

    async def _check_offered(
        self,
        event_type_id: str,
        start: datetime,
        now: datetime | None,
        exclude_booking_id: str | None = None,
    ) -> EventType:
        """Re-derive the slot list for the start's date and require ``start`` to be in it."""
        event_type = await self.availability.get_event_type(event_type_id)
        slots = await self.availability.get_available_slots(
            event_type_id, start.date(), now=now, exclude_booking_id=exclude_booking_id
        )
        if not any(s.start == start for s in slots):
            raise SlotUnavailableError(
                f"{start:%Y-%m-%d %H:%M} is not an available slot for {event_type.name or event_type_id}"
            )
        return event_type

    async def book(
        self,
        event_type_id: str,
        start: datetime,
        booker_name: str,
        booker_email: str,
        booker_phone: str = "",
        custom_answers: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Book ``start`` for an event type. Raises SlotUnavailableError if it is not offered."""
        event_type = await self._check_offered(event_type_id, start, now)
        end = start + timedelta(minutes=event_type.duration)

        # Atomic slot reservation to prevent double-booking between concurrent callers
        booking_id = uuid.uuid4().hex
        reserved = await self._write(
            self.db.reserve_slot, event_type_id, start, end, booking_id,
            event_type.buffer_before, event_type.buffer_after, label="reserve_slot",
        )
        if not reserved:
            raise SlotUnavailableError("This slot was just booked by someone else.")

        booking = Booking(
            id=booking_id,
            event_type_id=event_type_id,
            start=start,
            end=end,
            booker_name=booker_name,
            booker_email=booker_email,
            booker_phone=booker_phone,
            custom_answers=dict(custom_answers or {}),
            meeting_link=event_type.conferencing_link if event_type.mode == "online" else "",
        )
        try:
            await self._write(self.db.finalize_booking, booking, label="finalize_booking")
        except AvailabilityUnavailableError:
            self.db.release_slot(booking_id)
            raise

        logger.info("Booked %s for %s at %s", event_type_id, booker_email, start.isoformat())
        return booking

    async def reschedule(
        self, booking_id: str, new_start: datetime, now: datetime | None = None
    ) -> Booking:
        """Move a booking. Its current interval is excluded from the conflict set."""
        booking = await self.get_booking(booking_id)
        event_type = await self._check_offered(
            booking.event_type_id, new_start, now, exclude_booking_id=booking_id
        )
        new_end = new_start + timedelta(minutes=event_type.duration)

        moved = await self._write(
            self.db.move_booking, booking_id, new_start, new_end,
            event_type.buffer_before, event_type.buffer_after, label="move_booking",
        )
        if not moved:
            raise SlotUnavailableError("This slot was just booked by someone else.")

        logger.info(
            "Rescheduled %s from %s to %s", booking_id, booking.start.isoformat(), new_start.isoformat()
        )
        booking.start, booking.end = new_start, new_end
        return booking

    async def cancel(self, booking_id: str) -> bool:
        deleted = await self._write(self.db.delete_booking, booking_id, label="delete_booking")
        if deleted:
            logger.info("Cancelled booking %s", booking_id)
        return deleted

    async def cancel_many(self, booking_ids: list[str]) -> int:
        count = await self._write(self.db.delete_bookings, booking_ids, label="delete_bookings")
        logger.info("Cancelled %d bookings", count)
        return count

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.availability.read(
            self.db.get_booking_by_id, booking_id, label="booking"
        )
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    async def bookings(self, event_type_id: str = "", day: date | None = None) -> list[Booking]:
        """Bookings for display and reporting, filtered by event type and/or date."""
        return await self.availability.read(
            self.db.get_bookings, event_type_id, day, label="bookings"
        )

    async def todays_bookings(self, today: date | None = None) -> list[Booking]:
        return await self.bookings(day=today or self.availability.today())

    async def day_layout(self, day: date, event_type_id: str = "") -> list[PositionedBooking]:
        """Column placement for the bookings starting on ``day``."""
        return layout_day(await self.bookings(event_type_id, day))
