"""Tests for the SQLite event-type and booking store."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from slotbook.database import Database
from slotbook.models import AvailabilityRule, Booking, DateOverride, EventType, TimeRange


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, minute)


@pytest.fixture
def db(tmp_path):
    d = Database(tmp_path / "store.db")
    d.connect()
    yield d
    d.close()


def test_event_type_round_trip(db):
    saved = db.save_event_type(EventType(
        name="Consultation",
        duration=45,
        buffer_before=5,
        buffer_after=10,
        minimum_scheduling_notice=60,
        booking_horizon_days=21,
        availability=[AvailabilityRule(day_of_week=1, start_time="09:00", end_time="17:00")],
        unavailability=[AvailabilityRule(day_of_week=1, start_time="12:00", end_time="13:00")],
        unavailable_dates=[DateOverride(date="2025-01-13", time_ranges=[TimeRange("09:00", "11:00")])],
        mode="offline",
        location="Room 2",
        conferencing_link="https://meet.example.com/c",
    ))
    assert saved.id

    loaded = db.get_event_type(saved.id)
    assert loaded.name == "Consultation"
    assert loaded.duration == 45
    assert loaded.booking_horizon_days == 21
    assert loaded.availability == saved.availability
    assert loaded.unavailability == saved.unavailability
    assert loaded.unavailable_dates[0].time_ranges == [TimeRange("09:00", "11:00")]
    assert loaded.mode == "offline"
    assert loaded.location == "Room 2"
    assert loaded.conferencing_link == "https://meet.example.com/c"


def test_event_type_defaults(db):
    db.save_event_type(EventType(id="plain", name="Plain"))
    loaded = db.get_event_type("plain")
    assert loaded.buffer_before == 0
    assert loaded.minimum_scheduling_notice == 0
    assert loaded.booking_horizon_days is None
    assert loaded.availability == []


def test_event_type_update_and_delete(db):
    db.save_event_type(EventType(id="e1", name="Before"))
    db.save_event_type(EventType(id="e1", name="After"))
    assert [e.name for e in db.get_event_types()] == ["After"]
    assert db.delete_event_type("e1") is True
    assert db.get_event_type("e1") is None
    assert db.delete_event_type("e1") is False


def test_reserve_slot_rejects_overlap(db):
    assert db.reserve_slot("a", at(6, 10), at(6, 11), "r1") is True
    assert db.reserve_slot("b", at(6, 10, 30), at(6, 11, 30), "r2") is False
    # Touching is not overlapping
    assert db.reserve_slot("b", at(6, 11), at(6, 12), "r3") is True
    assert [b.id for b in db.get_bookings()] == ["r1", "r3"]


def test_reserve_slot_applies_buffers_to_both_sides(db):
    # 15 min buffers: 09:45-10:45 and 10:15-11:15 collide although the meetings do not
    assert db.reserve_slot("intro", at(6, 10), at(6, 10, 30), "r1", 15, 15) is True
    assert db.reserve_slot("intro", at(6, 10, 30), at(6, 11), "r2", 15, 15) is False
    assert db.reserve_slot("intro", at(6, 9, 30), at(6, 10), "r3", 15, 15) is False
    # Padded intervals only touch
    assert db.reserve_slot("intro", at(6, 11), at(6, 11, 30), "r4", 15, 15) is True
    assert db.reserve_slot("intro", at(6, 8, 30), at(6, 9), "r5", 15, 15) is True
    assert [b.id for b in db.get_bookings()] == ["r5", "r1", "r4"]


def test_reserve_slot_without_buffers_allows_back_to_back(db):
    assert db.reserve_slot("a", at(6, 10), at(6, 10, 30), "r1") is True
    assert db.reserve_slot("a", at(6, 10, 30), at(6, 11), "r2") is True


def test_finalize_and_release(db):
    db.reserve_slot("a", at(6, 10), at(6, 11), "r1")
    db.finalize_booking(Booking(
        id="r1", event_type_id="a", start=at(6, 10), end=at(6, 11),
        booker_name="Ada", booker_email="ada@example.com", custom_answers={"q": "yes"},
    ))
    stored = db.get_booking_by_id("r1")
    assert stored.booker_name == "Ada"
    assert stored.custom_answers == {"q": "yes"}

    db.release_slot("r1")
    assert db.get_booking_by_id("r1") is None


def test_move_booking_ignores_itself(db):
    db.reserve_slot("a", at(6, 10), at(6, 11), "r1")
    db.reserve_slot("a", at(6, 13), at(6, 14), "r2")
    assert db.move_booking("r1", at(6, 10, 30), at(6, 11, 30)) is True
    assert db.move_booking("r1", at(6, 12, 30), at(6, 13, 30)) is False
    assert db.get_booking_by_id("r1").start == at(6, 10, 30)
    assert db.move_booking("missing", at(6, 16), at(6, 17)) is False


def test_move_booking_applies_buffers(db):
    db.reserve_slot("intro", at(6, 10), at(6, 10, 30), "r1", 15, 15)
    db.reserve_slot("intro", at(6, 14), at(6, 14, 30), "r2", 15, 15)
    assert db.move_booking("r2", at(6, 10, 45), at(6, 11, 15), 15, 15) is False
    assert db.move_booking("r2", at(6, 11), at(6, 11, 30), 15, 15) is True
    assert db.move_booking("r1", at(6, 10, 15), at(6, 10, 45), 15, 15) is False
    # Overlapping its own current interval is fine
    assert db.move_booking("r1", at(6, 9, 45), at(6, 10, 15), 15, 15) is True
    assert db.get_booking_by_id("r1").start == at(6, 9, 45)


def test_get_bookings_filters(db):
    db.reserve_slot("a", at(6, 10), at(6, 11), "r1")
    db.reserve_slot("b", at(6, 9), at(6, 10), "r2")
    db.reserve_slot("a", at(7, 10), at(7, 11), "r3")

    assert [b.id for b in db.get_bookings()] == ["r2", "r1", "r3"]
    assert [b.id for b in db.get_bookings("a")] == ["r1", "r3"]
    assert [b.id for b in db.get_bookings(day=date(2025, 1, 6))] == ["r2", "r1"]
    assert [b.id for b in db.get_bookings("a", date(2025, 1, 7))] == ["r3"]


def test_delete_bookings(db):
    db.reserve_slot("a", at(6, 10), at(6, 11), "r1")
    db.reserve_slot("a", at(6, 12), at(6, 13), "r2")
    assert db.delete_bookings([]) == 0
    assert db.delete_bookings(["r1", "r2", "r9"]) == 2
    assert db.get_bookings() == []


def test_reconnect_runs_migrations_idempotently(tmp_path):
    path = tmp_path / "again.db"
    first = Database(path)
    first.connect()
    first.save_event_type(EventType(id="e1", name="Kept", location="Here"))
    first.close()

    second = Database(path)
    second.connect()
    assert second.get_event_type("e1").location == "Here"
    indexes = [r["name"] for r in second.conn.execute("PRAGMA index_list(bookings)")]
    assert "idx_bookings_start" in indexes
    second.close()
