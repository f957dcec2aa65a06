"""
Booking cancellation flow.

Ordered side effects:
1. refund through the payment gateway when the policy grants one (best-effort)
2. mark the booking cancelled with the refund metadata (authoritative)
3. release the dates on the channel manager for site bookings (best-effort)
4. send the cancellation email (best-effort)
"""

from datetime import datetime
from typing import Optional

import structlog

from bnb_booking.channels.base import ChannelManager
from bnb_booking.db.store import BookingStore
from bnb_booking.errors import BookingCancelled
from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.metrics import booking_transitions
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.policies.cancellation import cancellation_outcome
from bnb_booking.policies.lifecycle import BookingEvent, apply_transition
from bnb_booking.schemas.bookings import CancellationOutcome, CancellationResult, Origin
from bnb_booking.services.modifications import load_booking
from bnb_booking.services.refunds import refund_payment, refundable_amount
from bnb_booking.services.side_effects import run_best_effort
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def preview_cancellation(
    store: BookingStore, booking_id: int, now: Optional[datetime] = None
) -> CancellationOutcome:
    """
    Refund and penalty the guest would get by cancelling now.

    Raises:
        BookingNotFound, BookingCancelled, BookingAlreadyStarted
    """
    booking = load_booking(store, booking_id)
    if booking.is_cancelled:
        raise BookingCancelled(booking_id=booking_id)
    return cancellation_outcome(booking.check_in, booking.total_amount, now or utc_now())


def cancel_booking(
    booking_id: int,
    store: BookingStore,
    gateway: PaymentGateway,
    notifier: Notifier,
    channel_manager: Optional[ChannelManager] = None,
    now: Optional[datetime] = None,
) -> CancellationResult:
    """
    Cancel a booking, refunding according to the cancellation policy.

    Args:
        booking_id: Booking to cancel
        store: Booking Store
        gateway: Payment gateway used for the refund
        notifier: Guest notifier
        channel_manager: Channel manager holding the site booking's block, if any
        now: Instant of the request, defaults to the current UTC time

    Returns:
        CancellationResult

    Raises:
        BookingNotFound: If no booking has this id
        BookingCancelled: If the booking is already cancelled
        BookingAlreadyStarted: If check-in has passed
    """
    now = now or utc_now()
    booking = load_booking(store, booking_id)
    if booking.is_cancelled:
        raise BookingCancelled(booking_id=booking_id)

    outcome = cancellation_outcome(booking.check_in, booking.total_amount, now)

    # 1. Refund
    refund, payments = refund_payment(
        booking,
        refundable_amount(booking, outcome.refund_amount),
        "cancellation",
        gateway,
    )
    refund_changes = {"last_refund": refund, "payments": payments}

    # 2. Authoritative state change
    cancelled = apply_transition(booking, BookingEvent.CANCEL, now=now, **refund_changes)
    if not store.transition(booking, cancelled):
        # Status moved concurrently; re-read so the caller sees the stored state
        current = load_booking(store, booking_id)
        if current.is_cancelled:
            raise BookingCancelled(booking_id=booking_id)
        cancelled = apply_transition(current, BookingEvent.CANCEL, now=now, **refund_changes)
        store.transition(current, cancelled)

    booking_transitions.labels(event=BookingEvent.CANCEL.value).inc()
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        days_until_check_in=outcome.days_until_check_in,
        refund_amount=outcome.refund_amount,
        penalty_amount=outcome.penalty_amount,
        refund_failed=refund.failed if refund else None,
    )

    # 3. Release the dates on the channel manager
    if booking.origin == Origin.SITE and booking.channel_booking_id and channel_manager:
        block_id = booking.channel_booking_id
        run_best_effort(
            "unblock",
            lambda: channel_manager.unblock_date_range(block_id),
            booking_id=booking_id,
            channel=channel_manager.channel_type.value,
            block_id=block_id,
        )

    # 4. Notify the guest
    run_best_effort(
        "notify_cancelled",
        lambda: notifier.send_booking_cancelled(cancelled, outcome, refund),
        booking_id=booking_id,
    )

    return CancellationResult(booking=cancelled, outcome=outcome, refund=refund)
