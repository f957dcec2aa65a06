"""
Pricing rules for changing an existing booking.

Two kinds of change are supported: moving the stay to new dates, and adding
guests. Both are pure: they compute what the change costs and leave the
settlement (charge, refund, commit) to ``services/modifications.py``.
"""

from __future__ import annotations

from datetime import date, datetime

from bnb_booking.config import FREE_CANCELLATION_DAYS, LATE_CHANGE_PENALTY_PERCENT
from bnb_booking.errors import (
    BookingCancelled,
    GuestLimitExceeded,
    GuestReductionNotAllowed,
    InvalidDateRange,
)
from bnb_booking.policies.pricing import deposit_split, nights_between, percent_of, price_for_stay
from bnb_booking.schemas.bookings import Booking, DateChangeQuote, GuestChangeQuote, RoomRate
from bnb_booking.utils.datetime import days_until, utc_now


def ensure_modifiable(booking: Booking) -> None:
    """
    Raises:
        BookingCancelled: If the booking is already cancelled
    """
    if booking.is_cancelled:
        raise BookingCancelled(booking_id=booking.id)


def late_change_penalty(booking: Booking, now: datetime) -> int:
    """
    Surcharge for changing a booking close to its original check-in.

    Inside the free-change window the penalty is a flat percentage of the
    original total, independent of how far the dates move.
    """
    if days_until(booking.check_in, now) < FREE_CANCELLATION_DAYS:
        return percent_of(booking.total_amount, LATE_CHANGE_PENALTY_PERCENT)
    return 0


def price_delta_for_date_change(
    booking: Booking,
    rate: RoomRate,
    new_check_in: date,
    new_check_out: date,
    now: datetime | None = None,
) -> DateChangeQuote:
    """
    Quote moving a booking to new dates.

    The new stay is priced for the booking's current guest count. A positive
    delta must be collected before the change is committed (deposit now,
    balance later); a negative delta is refunded after committing.

    Args:
        booking: Booking being changed
        rate: Pricing of the booking's room
        new_check_in: Requested check-in date
        new_check_out: Requested check-out date (exclusive)
        now: Reference instant, defaults to the current UTC time

    Returns:
        DateChangeQuote: new base amount, penalty, and delta vs. the original total

    Raises:
        BookingCancelled: If the booking is cancelled
        InvalidDateRange: If the new check-in is in the past or check-out is not after it
    """
    ensure_modifiable(booking)
    now = now or utc_now()

    if new_check_in < now.date():
        raise InvalidDateRange("Le date non possono essere nel passato", check_in=str(new_check_in))
    nights = nights_between(new_check_in, new_check_out)

    new_base_amount = price_for_stay(booking.guests, nights, rate)
    penalty = late_change_penalty(booking, now)
    delta = new_base_amount + penalty - booking.total_amount

    deposit_due, balance_due = deposit_split(delta) if delta > 0 else (0, 0)

    return DateChangeQuote(
        new_check_in=new_check_in,
        new_check_out=new_check_out,
        nights=nights,
        original_amount=booking.total_amount,
        new_base_amount=new_base_amount,
        penalty=penalty,
        delta=delta,
        deposit_due=deposit_due,
        balance_due=balance_due,
    )


def price_delta_for_guest_change(booking: Booking, rate: RoomRate, new_guests: int) -> int:
    """
    Extra cost of raising the guest count of a booking.

    Only additions are supported. The difference is never negative because
    stay pricing is non-decreasing in the number of guests.

    Raises:
        BookingCancelled: If the booking is cancelled
        GuestReductionNotAllowed: If new_guests is not above the current count
        GuestLimitExceeded: If new_guests is above the room maximum
    """
    ensure_modifiable(booking)

    if new_guests <= booking.guests:
        raise GuestReductionNotAllowed(guests=booking.guests, requested=new_guests)
    if new_guests > rate.max_guests:
        raise GuestLimitExceeded(requested=new_guests, max_guests=rate.max_guests)

    return price_for_stay(new_guests, booking.nights, rate) - price_for_stay(
        booking.guests, booking.nights, rate
    )


def quote_guest_change(booking: Booking, rate: RoomRate, new_guests: int) -> GuestChangeQuote:
    """Guest-change price difference together with its deposit/balance split."""
    difference = price_delta_for_guest_change(booking, rate, new_guests)
    deposit_due, balance_due = deposit_split(difference) if difference > 0 else (0, 0)
    return GuestChangeQuote(
        new_guests=new_guests,
        original_amount=booking.total_amount,
        price_difference=difference,
        deposit_due=deposit_due,
        balance_due=balance_due,
    )
