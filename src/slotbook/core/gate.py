"""Horizon/notice gate: cheap date eligibility checks for the day picker."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from ..models import EventType
from .rules import resolve_day, validate_event_type


def last_bookable_date(event_type: EventType, today: date) -> date | None:
    """Furthest date offered for booking, or None when the horizon is unbounded."""
    if event_type.booking_horizon_days is None:
        return None
    return today + timedelta(days=event_type.booking_horizon_days)


def is_date_eligible(event_type: EventType, day: date, today: date) -> bool:
    """Whether ``day`` may be offered at all. Per-slot notice is left to the slot generator."""
    if day < today:
        return False
    if validate_event_type(event_type):
        return False
    last = last_bookable_date(event_type, today)
    if last is not None and day > last:
        return False
    return resolve_day(event_type, day).is_open


def bookable_dates(event_type: EventType, year: int, month: int, today: date) -> list[date]:
    """Eligible dates of one calendar month."""
    _, days_in_month = calendar.monthrange(year, month)
    days = (date(year, month, d) for d in range(1, days_in_month + 1))
    return [d for d in days if is_date_eligible(event_type, d, today)]
