"""Rule resolver: turns weekly rules and date overrides into concrete intervals for one date."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from ..models import AvailabilityRule, EventType
from .intervals import Interval

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

_WALL_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class DayResolution:
    """Effective open window and blocked sub-intervals for one date."""

    open_window: Interval | None = None
    blocked: list[Interval] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.open_window is not None


CLOSED = DayResolution()


def parse_wall_clock(value: str) -> int:
    """Parse 'HH:MM' into minutes since midnight. '24:00' is accepted as end of day."""
    match = _WALL_CLOCK_RE.match(str(value).strip())
    if not match:
        raise ValueError(f"Not an HH:MM time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if minutes > 59 or total > MINUTES_PER_DAY:
        raise ValueError(f"Time out of range: {value!r}")
    return total


def parse_time_range(time_range: str) -> tuple[str, str]:
    """Split 'HH:MM-HH:MM' into its two validated halves."""
    start_str, sep, end_str = time_range.strip().partition("-")
    if not sep:
        raise ValueError(f"Not an HH:MM-HH:MM range: {time_range!r}")
    parse_wall_clock(start_str)
    parse_wall_clock(end_str)
    return start_str.strip(), end_str.strip()


def weekday_index(day: date) -> int:
    """Weekday with Sunday = 0, matching ``AvailabilityRule.day_of_week``."""
    return (day.weekday() + 1) % 7


def at_wall_clock(day: date, value: str) -> datetime:
    """Concrete naive datetime for a wall-clock time on ``day``."""
    return datetime.combine(day, time()) + timedelta(minutes=parse_wall_clock(value))


def to_interval(day: date, start_time: str, end_time: str) -> Interval:
    """Interval for a wall-clock range on ``day``. Raises ValueError for empty or inverted ranges."""
    interval = Interval(start=at_wall_clock(day, start_time), end=at_wall_clock(day, end_time))
    if interval.end <= interval.start:
        raise ValueError(f"Range ends before it starts: {start_time}-{end_time}")
    return interval


def validate_event_type(event_type: EventType) -> list[str]:
    """Return human-readable problems with the numeric settings of an event type."""
    problems = []
    if not isinstance(event_type.duration, int) or event_type.duration <= 0:
        problems.append(f"duration must be a positive number of minutes, got {event_type.duration!r}")
    for name in ("buffer_before", "buffer_after", "minimum_scheduling_notice"):
        value = getattr(event_type, name)
        if not isinstance(value, int) or value < 0:
            problems.append(f"{name} must be >= 0, got {value!r}")
    horizon = event_type.booking_horizon_days
    if horizon is not None and (not isinstance(horizon, int) or horizon < 0):
        problems.append(f"booking_horizon_days must be >= 0, got {horizon!r}")
    return problems


def _rule_for_weekday(rules: list[AvailabilityRule], weekday: int) -> AvailabilityRule | None:
    matching = [r for r in rules if r.day_of_week == weekday]
    if len(matching) > 1:
        logger.warning(
            "%d availability rules for %s, using the first", len(matching), DAYS_OF_WEEK[weekday]
        )
    return matching[0] if matching else None


def resolve_day(event_type: EventType, day: date) -> DayResolution:
    """Resolve the open window and blocked intervals of ``event_type`` on ``day``.

    Malformed data fails closed: a bad availability rule means no open window,
    and a bad blackout range applying to the date closes the whole date.
    """
    override = event_type.find_override(day)
    if override is not None and not override.time_ranges:
        return CLOSED

    weekday = weekday_index(day)
    rule = _rule_for_weekday(event_type.availability, weekday)
    if rule is None:
        return CLOSED

    try:
        open_window = to_interval(day, rule.start_time, rule.end_time)
    except ValueError as e:
        logger.warning("Ignoring malformed availability rule for %s: %s", DAYS_OF_WEEK[weekday], e)
        return CLOSED

    ranges = [(u.start_time, u.end_time) for u in event_type.unavailability if u.day_of_week == weekday]
    if override is not None:
        ranges.extend((r.start_time, r.end_time) for r in override.time_ranges)

    blocked = []
    for start_time, end_time in ranges:
        try:
            blocked.append(to_interval(day, start_time, end_time))
        except ValueError as e:
            logger.warning("Closing %s: malformed blackout range (%s)", day.isoformat(), e)
            return CLOSED

    return DayResolution(open_window=open_window, blocked=blocked)
