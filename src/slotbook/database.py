"""SQLite store for event types and bookings."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from dataclasses import asdict
from datetime import date, datetime, time, timedelta
from pathlib import Path

from .models import AvailabilityRule, Booking, DateOverride, EventType, TimeRange

logger = logging.getLogger(__name__)

DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS event_types (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    duration INTEGER NOT NULL,
    description TEXT DEFAULT '',
    color TEXT DEFAULT '',
    buffer_before INTEGER DEFAULT 0,
    buffer_after INTEGER DEFAULT 0,
    minimum_scheduling_notice INTEGER DEFAULT 0,
    booking_horizon_days INTEGER,
    availability TEXT DEFAULT '[]',
    unavailability TEXT DEFAULT '[]',
    unavailable_dates TEXT DEFAULT '[]',
    mode TEXT DEFAULT 'online',
    location TEXT DEFAULT '',
    conferencing_link TEXT DEFAULT '',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bookings (
    id TEXT PRIMARY KEY,
    event_type_id TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    booker_name TEXT DEFAULT '',
    booker_email TEXT DEFAULT '',
    booker_phone TEXT DEFAULT '',
    custom_answers TEXT DEFAULT '{}',
    meeting_link TEXT DEFAULT '',
    created_at TEXT NOT NULL
);
"""

MIGRATIONS = [
    # Migration 1: index for per-day booking lookups
    [
        "CREATE INDEX IF NOT EXISTS idx_bookings_start ON bookings(start_time)",
    ],
]


def _rules_from_json(raw: str | None) -> list[AvailabilityRule]:
    return [AvailabilityRule(**r) for r in json.loads(raw or "[]")]


def _overrides_from_json(raw: str | None) -> list[DateOverride]:
    return [
        DateOverride(
            date=o.get("date", ""),
            time_ranges=[TimeRange(**r) for r in o.get("time_ranges", [])],
        )
        for o in json.loads(raw or "[]")
    ]


class Database:
    def __init__(self, db_path: str | Path = "slotbook.db"):
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        # Transactions are managed explicitly (BEGIN EXCLUSIVE in reserve_slot/move_booking)
        self._conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(DB_SCHEMA)
        self._run_migrations()

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _run_migrations(self) -> None:
        for migration_stmts in MIGRATIONS:
            for stmt in migration_stmts:
                self._conn.execute(stmt)

    @property
    def conn(self) -> sqlite3.Connection:
        if not self._conn:
            self.connect()
        return self._conn

    # --- Event types ---

    def _row_to_event_type(self, row: sqlite3.Row) -> EventType:
        return EventType(
            id=row["id"],
            name=row["name"],
            duration=row["duration"],
            description=row["description"] or "",
            color=row["color"] or "",
            buffer_before=row["buffer_before"] or 0,
            buffer_after=row["buffer_after"] or 0,
            minimum_scheduling_notice=row["minimum_scheduling_notice"] or 0,
            booking_horizon_days=row["booking_horizon_days"],
            availability=_rules_from_json(row["availability"]),
            unavailability=_rules_from_json(row["unavailability"]),
            unavailable_dates=_overrides_from_json(row["unavailable_dates"]),
            mode=row["mode"] or "online",
            location=row["location"] or "",
            conferencing_link=row["conferencing_link"] or "",
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def save_event_type(self, event_type: EventType) -> EventType:
        """Create or update an event type. A missing id is generated."""
        if not event_type.id:
            event_type.id = uuid.uuid4().hex[:12]
        with self._lock:
            self.conn.execute(
                """INSERT OR REPLACE INTO event_types
                (id, name, duration, description, color, buffer_before, buffer_after,
                 minimum_scheduling_notice, booking_horizon_days, availability,
                 unavailability, unavailable_dates, mode, location, conferencing_link, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_type.id,
                    event_type.name,
                    event_type.duration,
                    event_type.description,
                    event_type.color,
                    event_type.buffer_before,
                    event_type.buffer_after,
                    event_type.minimum_scheduling_notice,
                    event_type.booking_horizon_days,
                    json.dumps([asdict(r) for r in event_type.availability]),
                    json.dumps([asdict(r) for r in event_type.unavailability]),
                    json.dumps([asdict(o) for o in event_type.unavailable_dates]),
                    event_type.mode,
                    event_type.location,
                    event_type.conferencing_link,
                    event_type.created_at.isoformat(),
                ),
            )
        return event_type

    def get_event_type(self, event_type_id: str) -> EventType | None:
        row = self.conn.execute(
            "SELECT * FROM event_types WHERE id = ?", (event_type_id,)
        ).fetchone()
        if not row:
            return None
        return self._row_to_event_type(row)

    def get_event_types(self) -> list[EventType]:
        rows = self.conn.execute("SELECT * FROM event_types ORDER BY name").fetchall()
        return [self._row_to_event_type(row) for row in rows]

    def delete_event_type(self, event_type_id: str) -> bool:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM event_types WHERE id = ?", (event_type_id,))
            return cursor.rowcount > 0

    # --- Bookings ---

    def _row_to_booking(self, row: sqlite3.Row) -> Booking:
        """Deserialize a database row into a Booking object."""
        return Booking(
            id=row["id"],
            event_type_id=row["event_type_id"],
            start=datetime.fromisoformat(row["start_time"]),
            end=datetime.fromisoformat(row["end_time"]),
            booker_name=row["booker_name"] or "",
            booker_email=row["booker_email"] or "",
            booker_phone=row["booker_phone"] or "",
            custom_answers=json.loads(row["custom_answers"] or "{}"),
            meeting_link=row["meeting_link"] or "",
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_bookings(self, event_type_id: str = "", day: date | None = None) -> list[Booking]:
        """All bookings, optionally filtered by event type and/or start date."""
        conditions = []
        params: list = []
        if event_type_id:
            conditions.append("event_type_id = ?")
            params.append(event_type_id)
        if day is not None:
            day_start = datetime.combine(day, time())
            conditions.append("start_time >= ? AND start_time < ?")
            params.extend([day_start.isoformat(), (day_start + timedelta(days=1)).isoformat()])
        query = "SELECT * FROM bookings"
        if conditions:
            query += f" WHERE {' AND '.join(conditions)}"
        rows = self.conn.execute(query + " ORDER BY start_time", params).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def get_booking_by_id(self, booking_id: str) -> Booking | None:
        row = self.conn.execute(
            "SELECT * FROM bookings WHERE id = ?", (booking_id,)
        ).fetchone()
        if not row:
            return None
        return self._row_to_booking(row)

    def _has_overlap(
        self,
        start: datetime,
        end: datetime,
        buffer_before: int = 0,
        buffer_after: int = 0,
        exclude_id: str = "",
    ) -> bool:
        """Check [start - before, end + after) against every stored booking padded the same way."""
        # Padding both sides equals widening the candidate by before + after on each end
        pad = timedelta(minutes=buffer_before + buffer_after)
        row = self.conn.execute(
            "SELECT COUNT(*) as cnt FROM bookings WHERE start_time < ? AND end_time > ? AND id != ?",
            ((end + pad).isoformat(), (start - pad).isoformat(), exclude_id),
        ).fetchone()
        return row["cnt"] > 0

    def reserve_slot(
        self,
        event_type_id: str,
        start: datetime,
        end: datetime,
        booking_id: str,
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> bool:
        """Atomically check + reserve a slot. Returns True if reserved, False if already taken."""
        with self._lock:
            try:
                self.conn.execute("BEGIN EXCLUSIVE")
                if self._has_overlap(start, end, buffer_before, buffer_after):
                    self.conn.execute("ROLLBACK")
                    return False
                # Placeholder row holds the slot until finalize_booking fills in the details
                self.conn.execute(
                    "INSERT INTO bookings (id, event_type_id, start_time, end_time, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (booking_id, event_type_id, start.isoformat(), end.isoformat(),
                     datetime.now().isoformat()),
                )
                self.conn.execute("COMMIT")
                return True
            except sqlite3.Error:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                raise

    def finalize_booking(self, booking: Booking) -> None:
        """Update a reserved (placeholder) booking with full details."""
        with self._lock:
            self.conn.execute(
                """UPDATE bookings SET booker_name=?, booker_email=?, booker_phone=?,
                custom_answers=?, meeting_link=?, created_at=? WHERE id=?""",
                (
                    booking.booker_name,
                    booking.booker_email,
                    booking.booker_phone,
                    json.dumps(booking.custom_answers),
                    booking.meeting_link,
                    booking.created_at.isoformat(),
                    booking.id,
                ),
            )

    def release_slot(self, booking_id: str) -> None:
        """Remove a reserved slot (e.g., if finalizing the booking failed)."""
        self.delete_booking(booking_id)

    def move_booking(
        self,
        booking_id: str,
        start: datetime,
        end: datetime,
        buffer_before: int = 0,
        buffer_after: int = 0,
    ) -> bool:
        """Atomically move a booking to a new time. The booking never conflicts with itself."""
        with self._lock:
            try:
                self.conn.execute("BEGIN EXCLUSIVE")
                if self._has_overlap(start, end, buffer_before, buffer_after, exclude_id=booking_id):
                    self.conn.execute("ROLLBACK")
                    return False
                cursor = self.conn.execute(
                    "UPDATE bookings SET start_time = ?, end_time = ? WHERE id = ?",
                    (start.isoformat(), end.isoformat(), booking_id),
                )
                self.conn.execute("COMMIT")
                return cursor.rowcount > 0
            except sqlite3.Error:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                raise

    def delete_booking(self, booking_id: str) -> bool:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM bookings WHERE id = ?", (booking_id,))
            return cursor.rowcount > 0

    def delete_bookings(self, booking_ids: list[str]) -> int:
        if not booking_ids:
            return 0
        placeholders = ", ".join("?" for _ in booking_ids)
        with self._lock:
            cursor = self.conn.execute(
                f"DELETE FROM bookings WHERE id IN ({placeholders})", list(booking_ids)
            )
            return cursor.rowcount
