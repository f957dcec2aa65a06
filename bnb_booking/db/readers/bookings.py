from datetime import date
from typing import Any, Optional

from sqlalchemy import and_, select
from sqlalchemy.engine import Connection

from bnb_booking.models.blocked_dates import BlockedDateRange
from bnb_booking.models.bookings import Booking

bookings_table = Booking.__table__
blocked_table = BlockedDateRange.__table__


def get_booking(conn: Connection, booking_id: int) -> Optional[dict[str, Any]]:
    """
    Fetch a single booking row by id.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (int): Booking id.

    Returns:
        Optional[dict[str, Any]]: Column values, or None if not found
    """
    result = conn.execute(select(bookings_table).where(bookings_table.c.id == booking_id))
    row = result.mappings().fetchone()
    return dict(row) if row else None


def find_bookings(conn: Connection, fields: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Fetch booking rows matching every field/value pair (equality only).

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        fields (dict): Column name -> required value

    Returns:
        list[dict[str, Any]]: Matching rows ordered by id
    """
    if not fields:
        raise ValueError("find_bookings requires at least one field")

    conditions = [bookings_table.c[name] == value for name, value in fields.items()]
    result = conn.execute(
        select(bookings_table).where(and_(*conditions)).order_by(bookings_table.c.id)
    )
    return [dict(row) for row in result.mappings().all()]


def find_overlapping_bookings(
    conn: Connection, room_id: str, check_in: date, check_out: date
) -> list[dict[str, Any]]:
    """
    Fetch the non-cancelled bookings of a room whose stay overlaps [check_in, check_out).

    Stays touching on a changeover day (one checks out, the other checks in)
    do not overlap.

    Returns:
        list[dict[str, Any]]: Matching rows ordered by check-in
    """
    result = conn.execute(
        select(bookings_table)
        .where(
            bookings_table.c.room_id == room_id,
            bookings_table.c.status != "cancelled",
            bookings_table.c.check_in < check_out,
            bookings_table.c.check_out > check_in,
        )
        .order_by(bookings_table.c.check_in, bookings_table.c.id)
    )
    return [dict(row) for row in result.mappings().all()]


def find_overlapping_blocks(
    conn: Connection, room_id: str, date_from: date, date_to: date
) -> list[dict[str, Any]]:
    """Blocked date ranges of a room overlapping [date_from, date_to)."""
    result = conn.execute(
        select(blocked_table).where(
            blocked_table.c.room_id == room_id,
            blocked_table.c.date_from < date_to,
            blocked_table.c.date_to > date_from,
        )
    )
    return [dict(row) for row in result.mappings().all()]
