"""Core data models for slotbook."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class AvailabilityRule:
    """A recurring weekly window. Used for both open hours and blackouts."""

    day_of_week: int = 0  # 0 = Sunday ... 6 = Saturday
    start_time: str = ""  # "09:00"
    end_time: str = ""  # "17:00"


@dataclass
class TimeRange:
    start_time: str = ""
    end_time: str = ""


@dataclass
class DateOverride:
    """A one-off exception for a single date.

    An empty ``time_ranges`` list blocks the whole date. Otherwise the ranges
    are blocked in addition to the weekly unavailability for that weekday.
    """

    date: str = ""  # "2025-01-14"
    time_ranges: list[TimeRange] = field(default_factory=list)


@dataclass
class EventType:
    """A reusable meeting template that visitors book instances of."""

    id: str = ""
    name: str = ""
    duration: int = 30  # minutes
    description: str = ""
    color: str = ""
    buffer_before: int = 0
    buffer_after: int = 0
    minimum_scheduling_notice: int = 0  # minutes
    booking_horizon_days: int | None = None  # None = unbounded
    availability: list[AvailabilityRule] = field(default_factory=list)
    unavailability: list[AvailabilityRule] = field(default_factory=list)
    unavailable_dates: list[DateOverride] = field(default_factory=list)
    mode: str = "online"  # "online" | "offline"
    location: str = ""
    conferencing_link: str = ""  # copied onto bookings of online event types
    created_at: datetime = field(default_factory=datetime.now)

    def find_override(self, day: date) -> DateOverride | None:
        day_str = day.isoformat()
        return next((o for o in self.unavailable_dates if o.date == day_str), None)


@dataclass(frozen=True)
class TimeSlot:
    """A candidate or confirmed bookable interval."""

    start: datetime
    end: datetime

    def __str__(self) -> str:
        day = self.start.strftime("%A, %B %d")
        return f"{day} {self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


@dataclass
class Booking:
    """A committed booking on the shared calendar."""

    id: str
    event_type_id: str
    start: datetime
    end: datetime
    booker_name: str = ""
    booker_email: str = ""
    booker_phone: str = ""
    custom_answers: dict[str, Any] = field(default_factory=dict)
    meeting_link: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(start=self.start, end=self.end)


@dataclass(frozen=True)
class PositionedBooking:
    """A booking placed in a calendar day column."""

    booking: Booking
    width_fraction: float
    left_offset_fraction: float
