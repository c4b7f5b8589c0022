"""Overlap layout: side-by-side columns for overlapping bookings in a day view."""

from __future__ import annotations

from collections.abc import Iterable

from ..models import Booking, PositionedBooking


def cluster_bookings(bookings: Iterable[Booking]) -> list[list[Booking]]:
    """Group bookings into clusters by a growing end-time envelope.

    A booking joins the current cluster when it starts before the latest end
    seen so far in that cluster, even if it does not overlap every member.
    This is deliberately not an interval-graph coloring: column widths are an
    approximation that can be narrower than strictly needed.
    """
    ordered = sorted(bookings, key=lambda b: b.start)  # sorted() is stable
    clusters: list[list[Booking]] = []
    envelope_end = None
    for booking in ordered:
        if clusters and booking.start < envelope_end:
            clusters[-1].append(booking)
            envelope_end = max(envelope_end, booking.end)
        else:
            clusters.append([booking])
            envelope_end = booking.end
    return clusters


def layout_day(bookings_on_date: Iterable[Booking]) -> list[PositionedBooking]:
    """Assign each booking a fractional width and left offset within its cluster."""
    positioned = []
    for cluster in cluster_bookings(bookings_on_date):
        size = len(cluster)
        for index, booking in enumerate(cluster):
            positioned.append(
                PositionedBooking(
                    booking=booking,
                    width_fraction=1 / size,
                    left_offset_fraction=index / size,
                )
            )
    return positioned
