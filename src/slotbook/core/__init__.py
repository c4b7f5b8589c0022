"""Availability engine: pure slot computation plus the store-backed services around it."""

from .conflicts import bookings_on, exclude_booking, is_bookable
from .gate import bookable_dates, is_date_eligible
from .intervals import Interval, overlaps
from .layout import layout_day
from .rules import DayResolution, resolve_day
from .slots import DEFAULT_SLOT_GRANULARITY_MINUTES, generate_slots

__all__ = [
    "DEFAULT_SLOT_GRANULARITY_MINUTES",
    "DayResolution",
    "Interval",
    "bookable_dates",
    "bookings_on",
    "exclude_booking",
    "generate_slots",
    "is_bookable",
    "is_date_eligible",
    "layout_day",
    "overlaps",
    "resolve_day",
]
