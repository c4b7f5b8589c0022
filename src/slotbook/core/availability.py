"""Availability engine: reads a store snapshot, supplies the clock, runs the pure slot computation."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from zoneinfo import ZoneInfo

from ..config import EngineConfig
from ..database import Database
from ..errors import AvailabilityUnavailableError, EventTypeNotFoundError
from ..models import Booking, EventType, TimeSlot
from ..retry import retry_async
from . import gate
from .slots import generate_slots

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    """Computes bookable slots and dates for an event type from the current store contents.

    Nothing is cached: every call re-reads the event type and the full booking
    table, so results always reflect the latest committed state.
    """

    def __init__(self, config: EngineConfig, db: Database):
        self.config = config
        self.db = db
        self.tz = ZoneInfo(config.timezone)

    def now(self) -> datetime:
        """Current wall-clock time in the configured zone, as a naive local datetime."""
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()

    async def read(self, fn, *args, label: str):
        try:
            return await retry_async(fn, *args, label=label)
        except (sqlite3.Error, OSError) as e:
            logger.error("Could not read %s from store: %s", label, e)
            raise AvailabilityUnavailableError(f"Could not compute availability: {e}") from e

    async def get_event_type(self, event_type_id: str) -> EventType:
        event_type = await self.read(self.db.get_event_type, event_type_id, label="event_type")
        if event_type is None:
            raise EventTypeNotFoundError(event_type_id)
        return event_type

    async def snapshot(self, event_type_id: str) -> tuple[EventType, list[Booking]]:
        """Event type plus every booking on the calendar, regardless of event type."""
        event_type = await self.get_event_type(event_type_id)
        bookings = await self.read(self.db.get_bookings, label="bookings")
        return event_type, bookings

    async def get_available_slots(
        self,
        event_type_id: str,
        day: date,
        now: datetime | None = None,
        exclude_booking_id: str | None = None,
    ) -> list[TimeSlot]:
        """Bookable slots for one date. Pass ``exclude_booking_id`` when rescheduling."""
        event_type, bookings = await self.snapshot(event_type_id)
        return generate_slots(
            event_type,
            day,
            bookings,
            now or self.now(),
            granularity_minutes=self.config.slot_granularity_minutes,
            exclude_booking_id=exclude_booking_id,
        )

    async def is_date_eligible(
        self, event_type_id: str, day: date, today: date | None = None
    ) -> bool:
        event_type = await self.get_event_type(event_type_id)
        return gate.is_date_eligible(event_type, day, today or self.today())

    async def get_bookable_dates(
        self, event_type_id: str, year: int, month: int, today: date | None = None
    ) -> list[date]:
        """Dates of a month that the day picker should make clickable."""
        event_type = await self.get_event_type(event_type_id)
        return gate.bookable_dates(event_type, year, month, today or self.today())
