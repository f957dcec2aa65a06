"""
Stay pricing.

The nightly rate of a room includes ``base_occupancy`` guests; every guest
above that adds a fixed per-night surcharge. Totals are computed with Decimal
and rounded half-up exactly once, on the stay total.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from bnb_booking.config import DEPOSIT_PERCENT, ROOMS
from bnb_booking.errors import InvalidDateRange, InvalidGuestCount, RoomNotFound
from bnb_booking.schemas.bookings import RoomRate


def round_half_up(amount: Decimal) -> int:
    """Round a Decimal amount to a whole number of minor units, halves away from zero."""
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def nights_between(check_in: date, check_out: date) -> int:
    """
    Number of nights of a stay (check-out exclusive).

    Raises:
        InvalidDateRange: If check-out is not at least one day after check-in
    """
    nights = (check_out - check_in).days
    if nights < 1:
        raise InvalidDateRange(check_in=str(check_in), check_out=str(check_out))
    return nights


def price_for_stay(guests: int, nights: int, rate: RoomRate) -> int:
    """
    Total price of a stay in minor units.

    Args:
        guests: Number of guests, 1..rate.max_guests
        nights: Number of nights, >= 1
        rate: Room pricing

    Returns:
        int: (nightly_rate + extra guests * extra_guest_rate) * nights, rounded half-up

    Raises:
        InvalidDateRange: If nights < 1
        InvalidGuestCount: If guests is outside 1..max_guests
    """
    if nights < 1:
        raise InvalidDateRange(nights=nights)
    if guests < 1 or guests > rate.max_guests:
        raise InvalidGuestCount(guests=guests, max_guests=rate.max_guests)

    extra_guests = max(0, guests - rate.base_occupancy)
    per_night = rate.nightly_rate + extra_guests * rate.extra_guest_rate
    return round_half_up(per_night * nights)


def deposit_split(amount: int, deposit_percent: int = DEPOSIT_PERCENT) -> tuple[int, int]:
    """
    Split an amount into deposit due now and balance due later.

    The deposit is rounded half-up and the balance takes the remainder, so the
    two parts always add back to ``amount``.

    Returns:
        tuple[int, int]: (deposit, balance)
    """
    deposit = round_half_up(Decimal(amount) * deposit_percent / Decimal(100))
    return deposit, amount - deposit


def percent_of(amount: int, percent: int) -> int:
    """``percent`` % of ``amount``, rounded half-up."""
    return round_half_up(Decimal(amount) * percent / Decimal(100))


def get_room_rate(room_id: str, rooms: dict[str, dict] | None = None) -> RoomRate:
    """
    Look up the configured rate of a room.

    Raises:
        RoomNotFound: If the room is not in the catalogue
    """
    catalogue = ROOMS if rooms is None else rooms
    room = catalogue.get(str(room_id))
    if room is None:
        raise RoomNotFound(room_id=room_id)
    return RoomRate(room_id=str(room_id), **room)
