"""MCP server for slotbook — exposes availability and booking tools for AI agents."""

from __future__ import annotations

import logging
import re
from datetime import date as date_cls
from datetime import datetime
from typing import Optional

from .config import Config
from .core.engine import SchedulingEngine
from .errors import (
    AvailabilityUnavailableError,
    BookingNotFoundError,
    EventTypeNotFoundError,
    SlotUnavailableError,
)

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def _parse_date(value: str) -> date_cls:
    return datetime.strptime(value, "%Y-%m-%d").date()


def _parse_start(date: str, time: str) -> datetime:
    return datetime.strptime(f"{date} {time}", "%Y-%m-%d %H:%M")


def build_tools(engine: SchedulingEngine) -> list:
    """The scheduling tools as plain coroutines, in registration order."""
    availability = engine.availability
    db = engine.db

    async def list_event_types() -> list[dict]:
        """List bookable event types with duration and description."""
        return [
            {
                "id": e.id,
                "name": e.name,
                "duration_minutes": e.duration,
                "description": e.description,
                "mode": e.mode,
                "location": e.location,
            }
            for e in db.get_event_types()
        ]

    async def get_available_dates(event_type_id: str, month: str) -> dict:
        """Dates in a month that have bookable hours.

        Args:
            event_type_id: Event type ID from list_event_types().
            month: Month in YYYY-MM format.
        """
        try:
            first = datetime.strptime(month, "%Y-%m")
        except ValueError:
            return {"error": "Invalid month format. Use YYYY-MM."}
        try:
            dates = await availability.get_bookable_dates(event_type_id, first.year, first.month)
        except EventTypeNotFoundError:
            return {"error": f"Unknown event type: {event_type_id}"}
        except AvailabilityUnavailableError:
            return {"error": "Could not compute availability right now. Please try again."}
        return {"event_type_id": event_type_id, "dates": [d.isoformat() for d in dates]}

    async def get_available_slots(event_type_id: str, date: str) -> dict:
        """Open time slots for an event type on one date.

        Args:
            event_type_id: Event type ID from list_event_types().
            date: Date in YYYY-MM-DD format.
        """
        try:
            day = _parse_date(date)
        except ValueError:
            return {"error": "Invalid date format. Use YYYY-MM-DD."}
        try:
            slots = await availability.get_available_slots(event_type_id, day)
        except EventTypeNotFoundError:
            return {"error": f"Unknown event type: {event_type_id}"}
        except AvailabilityUnavailableError:
            return {"error": "Could not compute availability right now. Please try again."}
        return {
            "event_type_id": event_type_id,
            "date": day.isoformat(),
            "slots": [
                {"start": s.start.isoformat(), "end": s.end.isoformat(), "display": str(s)}
                for s in slots
            ],
        }

    async def book_meeting(
        event_type_id: str,
        date: str,
        time: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
    ) -> dict:
        """Book a meeting at the specified date and time.

        Args:
            event_type_id: Event type ID from list_event_types().
            date: Date in YYYY-MM-DD format.
            time: Start time in HH:MM format (24-hour), one of get_available_slots().
            name: Full name of the person booking.
            email: Email address of the person booking.
            phone: Optional phone number.
        """
        if len(name) > 100:
            return {"error": "name too long (max 100 characters)."}
        if len(email) > 254 or not EMAIL_RE.match(email):
            return {"error": "Invalid email format."}
        name = re.sub(r"<[^>]+>", "", name)

        try:
            start = _parse_start(date, time)
        except ValueError:
            return {"error": "Invalid date/time format. Use YYYY-MM-DD for date and HH:MM for time."}

        try:
            booking = await engine.book(event_type_id, start, name, email, phone or "")
        except EventTypeNotFoundError:
            return {"error": f"Unknown event type: {event_type_id}"}
        except SlotUnavailableError as e:
            return {"error": f"{e} Use get_available_slots() to see open times."}
        except AvailabilityUnavailableError:
            return {"error": "Could not reach the booking store. Please try again."}

        return {
            "status": "confirmed",
            "booking_id": booking.id,
            "start": booking.start.isoformat(),
            "end": booking.end.isoformat(),
            "name": booking.booker_name,
            "email": booking.booker_email,
            "meeting_link": booking.meeting_link,
        }

    async def reschedule_booking(booking_id: str, date: str, time: str) -> dict:
        """Move an existing booking to a new open slot.

        Args:
            booking_id: The booking ID returned from book_meeting.
            date: New date in YYYY-MM-DD format.
            time: New start time in HH:MM format (24-hour).
        """
        try:
            start = _parse_start(date, time)
        except ValueError:
            return {"error": "Invalid date/time format. Use YYYY-MM-DD for date and HH:MM for time."}

        try:
            booking = await engine.reschedule(booking_id, start)
        except (BookingNotFoundError, EventTypeNotFoundError, SlotUnavailableError) as e:
            return {"error": str(e)}
        except AvailabilityUnavailableError:
            return {"error": "Could not reach the booking store. Please try again."}

        return {
            "status": "rescheduled",
            "booking_id": booking.id,
            "start": booking.start.isoformat(),
            "end": booking.end.isoformat(),
        }

    async def cancel_booking(booking_id: str) -> dict:
        """Cancel a booking by its ID.

        Args:
            booking_id: The booking ID returned from book_meeting.
        """
        try:
            booking = await engine.get_booking(booking_id)
            await engine.cancel(booking_id)
        except BookingNotFoundError:
            return {"error": "Booking not found."}
        except AvailabilityUnavailableError:
            return {"error": "Could not reach the booking store. Please try again."}
        return {"status": "cancelled", "booking_id": booking_id, "was_scheduled": str(booking.slot)}

    async def get_day_layout(date: str, event_type_id: Optional[str] = None) -> dict:
        """Bookings on a date with column width/offset fractions for calendar rendering.

        Args:
            date: Date in YYYY-MM-DD format.
            event_type_id: Optional filter to one event type.
        """
        try:
            day = _parse_date(date)
        except ValueError:
            return {"error": "Invalid date format. Use YYYY-MM-DD."}
        try:
            positioned = await engine.day_layout(day, event_type_id or "")
        except AvailabilityUnavailableError:
            return {"error": "Could not reach the booking store. Please try again."}
        return {
            "date": day.isoformat(),
            "bookings": [
                {
                    "booking_id": p.booking.id,
                    "event_type_id": p.booking.event_type_id,
                    "start": p.booking.start.isoformat(),
                    "end": p.booking.end.isoformat(),
                    "width": p.width_fraction,
                    "left": p.left_offset_fraction,
                }
                for p in positioned
            ],
        }

    return [
        list_event_types,
        get_available_dates,
        get_available_slots,
        book_meeting,
        reschedule_booking,
        cancel_booking,
        get_day_layout,
    ]


def create_mcp_server(config: Config, engine: SchedulingEngine):
    """Create and configure the MCP server with scheduling tools."""
    from mcp.server.fastmcp import FastMCP

    mcp = FastMCP(
        "slotbook",
        instructions=f"Book meetings with {config.owner.name}. "
        f"All times are local to {config.engine.timezone}. "
        f"Use list_event_types(), then get_available_dates() and get_available_slots(), "
        f"then book_meeting().",
        streamable_http_path="/",
    )
    for tool in build_tools(engine):
        mcp.tool()(tool)
    return mcp
