"""
Unit tests for the booking state machine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pytest

from bnb_booking.errors import BookingCancelled, InvalidTransition
from bnb_booking.policies.lifecycle import (
    BookingEvent,
    apply_transition,
    assert_booking_transition,
    is_replay,
)
from bnb_booking.schemas.bookings import Booking, BookingStatus


@pytest.mark.unit
def test_payment_confirmed_moves_pending_to_paid(
    make_booking: Callable[..., Booking], now: datetime
) -> None:
    booking = make_booking(status=BookingStatus.PENDING, payment_reference=None)

    paid = apply_transition(
        booking, BookingEvent.PAYMENT_CONFIRMED, now=now, payment_reference="cs_test_1"
    )

    assert paid.status == BookingStatus.PAID
    assert paid.paid_at == now
    assert paid.payment_reference == "cs_test_1"
    # Input is not mutated
    assert booking.status == BookingStatus.PENDING


@pytest.mark.unit
def test_payment_confirmed_replay_is_noop(
    make_booking: Callable[..., Booking], now: datetime
) -> None:
    """Applying payment_confirmed twice gives the same state as applying it once."""
    booking = make_booking(status=BookingStatus.PENDING)

    once = apply_transition(booking, BookingEvent.PAYMENT_CONFIRMED, now=now)
    twice = apply_transition(once, BookingEvent.PAYMENT_CONFIRMED, now=now)

    assert twice is once
    assert is_replay(once, BookingEvent.PAYMENT_CONFIRMED)


@pytest.mark.unit
def test_payment_confirmed_on_confirmed_booking_is_noop(
    make_booking: Callable[..., Booking],
) -> None:
    booking = make_booking(status=BookingStatus.CONFIRMED)

    assert apply_transition(booking, BookingEvent.PAYMENT_CONFIRMED) is booking


@pytest.mark.unit
def test_confirm_requires_payment(make_booking: Callable[..., Booking]) -> None:
    booking = make_booking(status=BookingStatus.PENDING)

    with pytest.raises(InvalidTransition):
        apply_transition(booking, BookingEvent.CONFIRM)


@pytest.mark.unit
@pytest.mark.parametrize(
    "status", [BookingStatus.PENDING, BookingStatus.PAID, BookingStatus.CONFIRMED]
)
def test_cancel_from_any_open_state(
    make_booking: Callable[..., Booking], now: datetime, status: BookingStatus
) -> None:
    booking = make_booking(status=status)

    cancelled = apply_transition(booking, BookingEvent.CANCEL, now=now)

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_at == now


@pytest.mark.unit
@pytest.mark.parametrize("event", list(BookingEvent))
def test_cancelled_is_terminal(make_booking: Callable[..., Booking], event: BookingEvent) -> None:
    booking = make_booking(status=BookingStatus.CANCELLED)

    with pytest.raises(BookingCancelled):
        apply_transition(booking, event)


@pytest.mark.unit
def test_no_backwards_transitions() -> None:
    with pytest.raises(InvalidTransition):
        assert_booking_transition(BookingStatus.CONFIRMED, BookingStatus.PAID)
    with pytest.raises(InvalidTransition):
        assert_booking_transition(BookingStatus.PAID, BookingStatus.PENDING)
