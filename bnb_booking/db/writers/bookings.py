from typing import Any, Optional

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from bnb_booking.models.blocked_dates import BlockedDateRange
from bnb_booking.models.bookings import Booking

logger = structlog.get_logger(__name__)


def insert_booking(conn: Connection, row: dict[str, Any]) -> int:
    """
    Insert a booking row.

    Args:
        conn (Connection): SQLAlchemy DB connection (inside a transaction).
        row (dict): Column values; id is assigned by the database.

    Returns:
        int: New booking id
    """
    row = {k: v for k, v in row.items() if k != "id"}
    result = conn.execute(insert(Booking).values(**row))
    booking_id = result.inserted_primary_key[0]
    logger.debug("booking_inserted", booking_id=booking_id, room_id=row.get("room_id"))
    return int(booking_id)


def update_booking(
    conn: Connection,
    booking_id: int,
    patch: dict[str, Any],
    expected_status: Optional[str] = None,
) -> int:
    """
    Apply a partial update to a single booking.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (int): Booking id.
        patch (dict): Columns to change.
        expected_status (Optional[str]): If set, only update while the booking
            still has this status.

    Returns:
        int: Number of rows updated (0 if the status moved on concurrently)
    """
    if not patch:
        return 0
    patch = {k: v for k, v in patch.items() if k != "id"}
    stmt = update(Booking).where(Booking.id == booking_id)
    if expected_status is not None:
        stmt = stmt.where(Booking.status == expected_status)
    result = conn.execute(stmt.values(**patch))
    return int(result.rowcount)


def insert_blocked_range(conn: Connection, row: dict[str, Any]) -> int:
    """
    Insert a blocked date range.

    Returns:
        int: New blocked range id
    """
    row = {k: v for k, v in row.items() if k != "id"}
    result = conn.execute(insert(BlockedDateRange).values(**row))
    return int(result.inserted_primary_key[0])
