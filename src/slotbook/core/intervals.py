"""Half-open time intervals and the overlap predicate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol


class Timed(Protocol):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Interval:
    """Half-open range ``[start, end)``."""

    start: datetime
    end: datetime

    @classmethod
    def of(cls, item: Timed) -> Interval:
        return cls(start=item.start, end=item.end)

    def overlaps(self, other: Timed) -> bool:
        return overlaps(self, other)

    def expand(self, before: int = 0, after: int = 0) -> Interval:
        """Pad the interval by ``before``/``after`` minutes."""
        return Interval(
            start=self.start - timedelta(minutes=before),
            end=self.end + timedelta(minutes=after),
        )

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def overlaps(a: Timed, b: Timed) -> bool:
    """True if two half-open ranges share any instant. Touching ends do not overlap."""
    return a.start < b.end and b.start < a.end
