"""
Room availability.

Two stays of the same room conflict when their nights overlap; check-out
day is free for the next check-in. When they do, the channel the existing
booking came from decides who keeps the room:

    Booking.com (1) > Airbnb (2) > site, direct, other (3)

An existing booking blocks a new one unless the new one outranks it. Unpaid
site bookings only hold their dates for PENDING_HOLD_MINUTES.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

from bnb_booking.config import PENDING_HOLD_MINUTES
from bnb_booking.schemas.bookings import Booking, BookingStatus, Origin
from bnb_booking.utils.datetime import as_utc

ORIGIN_PRIORITY: dict[Origin, int] = {
    Origin.BOOKING: 1,
    Origin.AIRBNB: 2,
    Origin.SITE: 3,
    Origin.DIRECT: 3,
    Origin.OTHER: 3,
}


def origin_priority(origin: Origin) -> int:
    """Rank of a booking origin; lower wins."""
    return ORIGIN_PRIORITY.get(origin, 3)


def stays_overlap(
    check_in: date, check_out: date, other_check_in: date, other_check_out: date
) -> bool:
    """True if two check-out-exclusive stays share at least one night."""
    return check_in < other_check_out and other_check_in < check_out


def holds_dates(booking: Booking, now: datetime) -> bool:
    """
    Whether an existing booking still occupies its dates.

    Cancelled bookings never do; pending ones only until their hold expires.
    """
    if booking.is_cancelled:
        return False
    if booking.status == BookingStatus.PENDING and booking.created_at is not None:
        return as_utc(booking.created_at) + timedelta(minutes=PENDING_HOLD_MINUTES) > now
    return True


def find_conflicts(
    existing: Iterable[Booking],
    check_in: date,
    check_out: date,
    origin: Origin,
    now: datetime,
    exclude_id: int | None = None,
) -> list[Booking]:
    """
    Existing bookings that keep the requested stay from being booked.

    Args:
        existing: Bookings of the same room (any dates)
        check_in: Requested check-in
        check_out: Requested check-out (exclusive)
        origin: Channel of the new stay
        now: Reference instant for pending holds
        exclude_id: Booking being moved, never in conflict with itself

    Returns:
        list[Booking]: Conflicting bookings, highest priority first
    """
    requested = origin_priority(origin)
    conflicts = [
        booking
        for booking in existing
        if booking.id != exclude_id
        and holds_dates(booking, now)
        and stays_overlap(check_in, check_out, booking.check_in, booking.check_out)
        and origin_priority(booking.origin) <= requested
    ]
    return sorted(
        conflicts, key=lambda booking: (origin_priority(booking.origin), booking.check_in)
    )
