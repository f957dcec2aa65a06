"""Cancellation policy domain logic.

Policy:
- 7+ days before check-in: full refund
- less than 7 days: no refund, the whole amount is retained as penalty
- after check-in: cancellation refused
"""

from __future__ import annotations

from datetime import date, datetime

from bnb_booking.config import FREE_CANCELLATION_DAYS
from bnb_booking.errors import BookingAlreadyStarted
from bnb_booking.schemas.bookings import CancellationOutcome
from bnb_booking.utils.datetime import days_until

# Refund rules: list of (min_days_before_checkin, refund_percentage)
# Evaluated in order - first match wins
REFUND_TIERS: list[tuple[int, int]] = [
    (FREE_CANCELLATION_DAYS, 100),
    (0, 0),
]


def refund_percentage_for(days_until_check_in: int) -> int:
    """Refund percentage for a cancellation ``days_until_check_in`` days ahead."""
    for min_days, refund_pct in REFUND_TIERS:
        if days_until_check_in >= min_days:
            return refund_pct
    return 0


def cancellation_outcome(check_in: date, total_amount: int, now: datetime) -> CancellationOutcome:
    """Split a booking total into refund and penalty for a cancellation at ``now``.

    Args:
        check_in: Booking check-in date
        total_amount: Booking total in minor units
        now: Instant of the cancellation request

    Returns:
        CancellationOutcome: refund_amount + penalty_amount == total_amount

    Raises:
        BookingAlreadyStarted: If check-in is already in the past
    """
    days = days_until(check_in, now)
    if days < 0:
        raise BookingAlreadyStarted(check_in=str(check_in), days_until_check_in=days)

    refund_pct = refund_percentage_for(days)
    refund_amount = total_amount * refund_pct // 100

    return CancellationOutcome(
        refund_amount=refund_amount,
        penalty_amount=total_amount - refund_amount,
        refund_percentage=refund_pct,
        days_until_check_in=days,
    )


def get_policy_description() -> str:
    """Human-readable policy description."""
    return (
        f"Cancellazione gratuita fino a {FREE_CANCELLATION_DAYS} giorni prima del check-in. "
        f"Dopo tale termine non è previsto alcun rimborso."
    )
