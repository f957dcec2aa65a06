"""Booking state machine.

    pending -> paid -> confirmed
    pending | paid | confirmed -> cancelled

Transitions never go backwards. Payment providers may deliver the same
callback more than once, so replaying ``payment_confirmed`` (or ``confirm``)
on a booking that already reached that state is a no-op, not an error.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from bnb_booking.errors import BookingCancelled, InvalidTransition
from bnb_booking.schemas.bookings import Booking, BookingStatus
from bnb_booking.utils.datetime import utc_now


class BookingEvent(str, Enum):
    PAYMENT_CONFIRMED = "payment_confirmed"
    CONFIRM = "confirm"
    CANCEL = "cancel"


BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.PAID, BookingStatus.CANCELLED},
    BookingStatus.PAID: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}

EVENT_TARGETS: dict[BookingEvent, BookingStatus] = {
    BookingEvent.PAYMENT_CONFIRMED: BookingStatus.PAID,
    BookingEvent.CONFIRM: BookingStatus.CONFIRMED,
    BookingEvent.CANCEL: BookingStatus.CANCELLED,
}

# States in which a replayed event is a no-op
REPLAY_STATES: dict[BookingEvent, set[BookingStatus]] = {
    BookingEvent.PAYMENT_CONFIRMED: {BookingStatus.PAID, BookingStatus.CONFIRMED},
    BookingEvent.CONFIRM: {BookingStatus.CONFIRMED},
}


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if current == BookingStatus.CANCELLED:
        raise BookingCancelled()
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Cambio di stato non consentito: {current.value} → {target.value}",
            current=current.value,
            target=target.value,
        )


def is_replay(booking: Booking, event: BookingEvent) -> bool:
    """True if ``event`` was already applied to ``booking``."""
    return booking.status in REPLAY_STATES.get(event, set())


def apply_transition(
    booking: Booking,
    event: BookingEvent,
    now: datetime | None = None,
    **changes: Any,
) -> Booking:
    """
    Apply a lifecycle event and return the updated booking.

    Args:
        booking: Current booking state (freshly read from the store)
        event: Lifecycle event
        now: Transition timestamp, defaults to the current UTC time
        **changes: Extra fields set together with the status (e.g. payment_reference)

    Returns:
        Booking: New booking state; the same object if the event is a replay

    Raises:
        BookingCancelled: If the booking is already cancelled
        InvalidTransition: If the event is not allowed from the current status
    """
    if is_replay(booking, event):
        return booking

    target = EVENT_TARGETS[event]
    assert_booking_transition(booking.status, target)

    now = now or utc_now()
    update: dict[str, Any] = {"status": target, "updated_at": now, **changes}
    if target == BookingStatus.PAID:
        update.setdefault("paid_at", now)
    elif target == BookingStatus.CANCELLED:
        update.setdefault("cancelled_at", now)

    return booking.model_copy(update=update)
