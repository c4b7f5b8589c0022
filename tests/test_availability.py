"""Tests for the store-backed availability engine."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime

import pytest

from slotbook.config import EngineConfig
from slotbook.core.availability import AvailabilityEngine
from slotbook.database import Database
from slotbook.errors import AvailabilityUnavailableError, EventTypeNotFoundError
from slotbook.models import AvailabilityRule, Booking, EventType

MONDAY = date(2025, 1, 6)
MON_8AM = datetime(2025, 1, 6, 8, 0)


@pytest.fixture
def config():
    return EngineConfig(timezone="UTC", slot_granularity_minutes=15)


@pytest.fixture
def db(tmp_path):
    d = Database(tmp_path / "test.db")
    d.connect()
    # Monday 09:00-12:00, Tuesday 10:00-13:00
    d.save_event_type(EventType(
        id="intro",
        name="Intro",
        duration=30,
        buffer_before=15,
        buffer_after=15,
        booking_horizon_days=30,
        availability=[
            AvailabilityRule(day_of_week=1, start_time="09:00", end_time="12:00"),
            AvailabilityRule(day_of_week=2, start_time="10:00", end_time="13:00"),
        ],
    ))
    d.save_event_type(EventType(
        id="other",
        name="Other",
        duration=60,
        availability=[AvailabilityRule(day_of_week=1, start_time="09:00", end_time="17:00")],
    ))
    yield d
    d.close()


class BrokenDatabase:
    """Store whose every read fails with a non-transient error."""

    def get_event_type(self, event_type_id):
        raise sqlite3.DatabaseError("file is not a database")

    def get_bookings(self, *args):
        raise sqlite3.DatabaseError("file is not a database")


@pytest.mark.asyncio
async def test_slots_from_store(config, db):
    engine = AvailabilityEngine(config, db)
    slots = await engine.get_available_slots("intro", MONDAY, now=MON_8AM)
    # 09:00 .. 11:30 in quarter hours
    assert len(slots) == 11
    assert slots[0].start == datetime(2025, 1, 6, 9, 0)
    assert slots[-1].end == datetime(2025, 1, 6, 12, 0)


@pytest.mark.asyncio
async def test_booking_of_other_event_type_blocks(config, db):
    db.reserve_slot("other", datetime(2025, 1, 6, 9, 0), datetime(2025, 1, 6, 10, 0), "x1")
    engine = AvailabilityEngine(config, db)
    slots = await engine.get_available_slots("intro", MONDAY, now=MON_8AM)
    # Padded booking covers 08:45-10:15; first padded candidate clear of it starts at 10:30
    assert slots[0].start == datetime(2025, 1, 6, 10, 30)


@pytest.mark.asyncio
async def test_reads_fresh_snapshot_every_call(config, db):
    engine = AvailabilityEngine(config, db)
    before = await engine.get_available_slots("intro", MONDAY, now=MON_8AM)
    db.reserve_slot("intro", datetime(2025, 1, 6, 11, 0), datetime(2025, 1, 6, 11, 30), "x2")
    after = await engine.get_available_slots("intro", MONDAY, now=MON_8AM)
    assert len(after) < len(before)


@pytest.mark.asyncio
async def test_exclude_booking_id(config, db):
    db.reserve_slot("intro", datetime(2025, 1, 6, 10, 0), datetime(2025, 1, 6, 10, 30), "mine")
    engine = AvailabilityEngine(config, db)
    slots = await engine.get_available_slots("intro", MONDAY, now=MON_8AM, exclude_booking_id="mine")
    assert len(slots) == 11


@pytest.mark.asyncio
async def test_unknown_event_type(config, db):
    engine = AvailabilityEngine(config, db)
    with pytest.raises(EventTypeNotFoundError):
        await engine.get_available_slots("missing", MONDAY, now=MON_8AM)


@pytest.mark.asyncio
async def test_store_failure_is_not_an_empty_day(config):
    engine = AvailabilityEngine(config, BrokenDatabase())
    with pytest.raises(AvailabilityUnavailableError):
        await engine.get_available_slots("intro", MONDAY, now=MON_8AM)


@pytest.mark.asyncio
async def test_bookable_dates(config, db):
    engine = AvailabilityEngine(config, db)
    dates = await engine.get_bookable_dates("intro", 2025, 1, today=date(2025, 1, 7))
    assert dates[0] == date(2025, 1, 7)
    assert {d.weekday() for d in dates} == {0, 1}
    assert date(2025, 1, 6) not in dates


@pytest.mark.asyncio
async def test_is_date_eligible(config, db):
    engine = AvailabilityEngine(config, db)
    assert await engine.is_date_eligible("intro", MONDAY, today=MONDAY)
    assert not await engine.is_date_eligible("intro", date(2025, 1, 8), today=MONDAY)
    assert not await engine.is_date_eligible("intro", date(2025, 3, 3), today=MONDAY)


def test_now_is_naive_local(config, db):
    engine = AvailabilityEngine(config, db)
    assert engine.now().tzinfo is None
    assert engine.today() == engine.now().date()
