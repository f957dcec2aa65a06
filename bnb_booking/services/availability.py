"""
Availability checks against the Booking Store.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import structlog

from bnb_booking.db.store import BookingStore
from bnb_booking.errors import DatesUnavailable
from bnb_booking.policies.availability import find_conflicts
from bnb_booking.schemas.bookings import Availability, Origin
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def check_availability(
    store: BookingStore,
    room_id: str,
    check_in: date,
    check_out: date,
    origin: Origin = Origin.SITE,
    exclude_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Availability:
    """
    Whether a room can take a stay, given stored bookings and blocked dates.

    Args:
        store: Booking Store
        room_id: Local room id
        check_in: Requested check-in
        check_out: Requested check-out (exclusive)
        origin: Channel of the new stay, decides which existing bookings yield
        exclude_id: Booking being moved (date change)
        now: Reference instant for pending holds
    """
    now = now or utc_now()
    overlapping = store.find_overlapping(room_id, check_in, check_out)
    conflicts = find_conflicts(overlapping, check_in, check_out, origin, now, exclude_id)
    blocked = bool(store.find_blocked_ranges(room_id, check_in, check_out))

    return Availability(
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        available=not conflicts and not blocked,
        conflicting_booking_ids=[booking.stored_id for booking in conflicts],
        blocked=blocked,
    )


def ensure_available(
    store: BookingStore,
    room_id: str,
    check_in: date,
    check_out: date,
    origin: Origin = Origin.SITE,
    exclude_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Raises:
        DatesUnavailable: If another booking or a blocked range holds the dates
    """
    availability = check_availability(
        store, room_id, check_in, check_out, origin, exclude_id, now
    )
    if not availability.available:
        logger.info(
            "booking_conflict_detected",
            room_id=room_id,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            conflicting_booking_ids=availability.conflicting_booking_ids,
            blocked=availability.blocked,
        )
        raise DatesUnavailable(
            room_id=room_id, conflicting_booking_ids=availability.conflicting_booking_ids
        )
