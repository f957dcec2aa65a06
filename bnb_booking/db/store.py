"""
Booking Store: the single source of truth for bookings.

Wraps the SQLAlchemy readers/writers behind a small object that services get
injected. Every row leaving the store is parsed into the ``Booking`` schema;
every mutation is a single-row write in its own transaction.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy.engine import Engine

from bnb_booking.db.readers.bookings import (
    find_bookings,
    find_overlapping_blocks,
    find_overlapping_bookings,
    get_booking,
)
from bnb_booking.db.writers.bookings import insert_blocked_range, insert_booking, update_booking
from bnb_booking.metrics import db_operations
from bnb_booking.schemas.bookings import BlockedDateRange, Booking, BookingStatus
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def to_row(values: dict[str, Any]) -> dict[str, Any]:
    """Convert schema values (enums, nested models) into column values."""
    row: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        elif isinstance(value, list) and any(isinstance(item, BaseModel) for item in value):
            value = [item.model_dump(mode="json") for item in value]
        row[key] = value
    return row


class BookingStore:
    """
    Booking persistence over a SQLAlchemy engine.

    Example:
        >>> store = BookingStore(engine)
        >>> booking_id = store.insert(booking)
        >>> store.update(booking_id, {"status": BookingStatus.PAID})
        >>> store.get(booking_id).status
        <BookingStatus.PAID: 'paid'>
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def insert(self, booking: Booking) -> int:
        now = utc_now()
        values = {name: getattr(booking, name) for name in Booking.model_fields if name != "id"}
        values["created_at"] = values.get("created_at") or now
        values["updated_at"] = now

        with self.engine.begin() as conn:
            booking_id = insert_booking(conn, to_row(values))

        db_operations.labels(operation="insert", table="bookings").inc()
        return booking_id

    def get(self, booking_id: int) -> Optional[Booking]:
        with self.engine.connect() as conn:
            row = get_booking(conn, booking_id)

        db_operations.labels(operation="select", table="bookings").inc()
        return Booking.model_validate(row) if row else None

    def update(
        self,
        booking_id: int,
        patch: dict[str, Any],
        expected_status: Optional[BookingStatus] = None,
    ) -> bool:
        """
        Apply a partial update.

        With ``expected_status`` the write only happens while the stored
        booking still has that status, so two concurrent transitions from the
        same state cannot both succeed.

        Returns:
            bool: True if the row was updated
        """
        patch = {**patch, "updated_at": patch.get("updated_at") or utc_now()}
        expected = expected_status.value if expected_status is not None else None

        with self.engine.begin() as conn:
            updated = update_booking(conn, booking_id, to_row(patch), expected_status=expected)

        db_operations.labels(operation="update", table="bookings").inc()
        return updated > 0

    def transition(self, before: Booking, after: Booking) -> bool:
        """Persist a state machine transition computed from ``before``."""
        return self.update(
            before.stored_id, patch_from(before, after), expected_status=before.status
        )

    def query_by_fields(self, **fields: Any) -> list[Booking]:
        with self.engine.connect() as conn:
            rows = find_bookings(conn, to_row(fields))

        db_operations.labels(operation="select", table="bookings").inc()
        return [Booking.model_validate(row) for row in rows]

    def find_by_channel_id(self, channel_booking_id: str) -> list[Booking]:
        return self.query_by_fields(channel_booking_id=channel_booking_id)

    def find_same_stay(
        self, check_in: date, check_out: date, room_id: str, last_name: str
    ) -> list[Booking]:
        return self.query_by_fields(
            check_in=check_in, check_out=check_out, room_id=room_id, last_name=last_name
        )

    def find_overlapping(self, room_id: str, check_in: date, check_out: date) -> list[Booking]:
        """Non-cancelled bookings of the room overlapping [check_in, check_out)."""
        with self.engine.connect() as conn:
            rows = find_overlapping_bookings(conn, room_id, check_in, check_out)

        db_operations.labels(operation="select", table="bookings").inc()
        return [Booking.model_validate(row) for row in rows]

    def find_blocked_ranges(
        self, room_id: str, date_from: date, date_to: date
    ) -> list[BlockedDateRange]:
        with self.engine.connect() as conn:
            rows = find_overlapping_blocks(conn, room_id, date_from, date_to)

        db_operations.labels(operation="select", table="blocked_date_ranges").inc()
        return [BlockedDateRange.model_validate(row) for row in rows]

    def insert_blocked_range(self, blocked: BlockedDateRange) -> int:
        values = blocked.model_dump(exclude={"id"})
        values["created_at"] = utc_now()

        with self.engine.begin() as conn:
            blocked_id = insert_blocked_range(conn, values)

        db_operations.labels(operation="insert", table="blocked_date_ranges").inc()
        return blocked_id


def patch_from(before: Booking, after: Booking) -> dict[str, Any]:
    """Fields that differ between two versions of a booking."""
    old = before.model_dump()
    new = after.model_dump()
    return {
        key: getattr(after, key)
        for key in new
        if key != "id" and new[key] != old[key]
    }
