"""Exceptions raised by slotbook."""

from __future__ import annotations


class SlotbookError(Exception):
    """Base class for slotbook errors."""


class InvalidConfigError(SlotbookError, ValueError):
    """Configuration file or event type data is structurally invalid."""


class EventTypeNotFoundError(SlotbookError, LookupError):
    def __init__(self, event_type_id: str):
        super().__init__(f"Event type not found: {event_type_id}")
        self.event_type_id = event_type_id


class BookingNotFoundError(SlotbookError, LookupError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class SlotUnavailableError(SlotbookError):
    """The requested start time is not (or no longer) an offered slot."""


class AvailabilityUnavailableError(SlotbookError):
    """Availability could not be computed because the store failed.

    Distinct from an empty slot list: callers show an error, not an empty day.
    """
