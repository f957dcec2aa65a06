"""
Payment callback handling.

A confirmed payment moves a booking from pending to paid exactly once, even
when the provider delivers the callback several times or concurrently. Only
the call that actually performs the transition runs the follow-up side
effects (account link, channel block, owner notice, confirmation email).

A callback only claims a payment: when the gateway that issued it can be
asked, its status is verified before anything is committed.
"""

from typing import Optional

import structlog

from bnb_booking.channels.base import ChannelManager
from bnb_booking.db.store import BookingStore
from bnb_booking.errors import UpstreamFailure
from bnb_booking.gateways.base import GatewayType, PaymentGateway
from bnb_booking.metrics import booking_transitions
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.policies.lifecycle import BookingEvent, apply_transition, is_replay
from bnb_booking.policies.pricing import deposit_split
from bnb_booking.schemas.bookings import (
    Booking,
    ModificationStatus,
    Origin,
    PaymentCallback,
    PaymentCallbackResult,
    PaymentKind,
    PaymentRecord,
)
from bnb_booking.services.accounts import AccountDirectory
from bnb_booking.services.modifications import apply_pending_modification, load_booking
from bnb_booking.services.side_effects import run_best_effort
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

PAID_STATUSES = {"paid", "succeeded", "complete"}


def _link_account(booking: Booking, store: BookingStore, accounts: AccountDirectory) -> bool:
    """Create or link the guest account. Returns True if the account is new."""
    link = accounts.ensure_account(
        booking.email, f"{booking.first_name} {booking.last_name}".strip()
    )
    if booking.user_id != link.user_id:
        store.update(booking.stored_id, {"user_id": link.user_id})
    return link.created


def _block_on_channel(
    booking: Booking, store: BookingStore, channel_manager: ChannelManager
) -> bool:
    """Block the stay on the channel manager so OTAs stop selling it."""
    block_id = channel_manager.block_date_range(
        booking.room_id,
        booking.check_in,
        booking.check_out,
        f"Prenotazione sito {booking.id}",
    )
    if block_id:
        store.update(booking.stored_id, {"channel_booking_id": block_id})
    return bool(block_id)


def verify_payment(callback: PaymentCallback, gateway: Optional[PaymentGateway]) -> bool:
    """
    Ask the issuing gateway whether the callback's payment was captured.

    Manual payments are confirmed by the owner's own callback, and callbacks
    from another provider cannot be checked here: both are trusted.

    Raises:
        UpstreamFailure: If the gateway cannot be reached
    """
    if (
        gateway is None
        or gateway.gateway_type == GatewayType.MANUAL
        or callback.provider != gateway.gateway_type.value
    ):
        return True

    status = gateway.get_status(callback.payment_reference)
    if status.error_message:
        raise UpstreamFailure(
            "payment_status",
            required=True,
            booking_id=callback.booking_id,
            error=status.error_message,
        )
    if not status.paid:
        logger.warning(
            "payment_callback_unverified",
            booking_id=callback.booking_id,
            payment_reference=callback.payment_reference,
            gateway_status=status.status,
        )
    return status.paid


def handle_payment_callback(
    callback: PaymentCallback,
    store: BookingStore,
    notifier: Notifier,
    accounts: AccountDirectory,
    channel_manager: Optional[ChannelManager] = None,
    gateway: Optional[PaymentGateway] = None,
) -> PaymentCallbackResult:
    """
    Apply a confirmed payment to its booking.

    Args:
        callback: Provider-agnostic payment confirmation
        store: Booking Store
        notifier: Guest notifier
        accounts: Guest account directory
        channel_manager: Channel manager that receives the site booking's block
        gateway: Gateway used to verify the payment status

    Returns:
        PaymentCallbackResult: ``changed`` is False for a replayed or unverified callback

    Raises:
        BookingNotFound: If the booking does not exist
        BookingCancelled: If the booking was cancelled before the payment arrived
        InvalidTransition: If a paid modification no longer matches the booking
        UpstreamFailure: If the payment status cannot be verified
    """
    booking = load_booking(store, callback.booking_id)

    if callback.status.lower() not in PAID_STATUSES:
        logger.warning(
            "payment_callback_not_paid",
            booking_id=callback.booking_id,
            status=callback.status,
            payment_reference=callback.payment_reference,
        )
        return PaymentCallbackResult(booking=booking, changed=False)

    if not verify_payment(callback, gateway):
        return PaymentCallbackResult(booking=booking, changed=False)

    if callback.metadata.get("modification"):
        result = apply_pending_modification(
            booking,
            callback.metadata,
            store,
            notifier,
            payment_reference=callback.payment_reference,
            provider=callback.provider,
            channel_manager=channel_manager,
        )
        return PaymentCallbackResult(
            booking=result.booking,
            changed=result.status == ModificationStatus.APPLIED,
            modification=result,
        )

    if is_replay(booking, BookingEvent.PAYMENT_CONFIRMED):
        logger.info(
            "payment_callback_replay_ignored",
            booking_id=booking.id,
            status=booking.status.value,
            payment_reference=callback.payment_reference,
        )
        return PaymentCallbackResult(booking=booking, changed=False)

    deposit = booking.deposit_paid or deposit_split(booking.total_amount)[0]
    paid = apply_transition(
        booking,
        BookingEvent.PAYMENT_CONFIRMED,
        payment_reference=callback.payment_reference,
        payment_provider=callback.provider,
        deposit_paid=deposit,
        balance_due=booking.total_amount - deposit,
        payments=[
            PaymentRecord(
                reference=callback.payment_reference,
                amount=deposit,
                kind=PaymentKind.DEPOSIT,
                provider=callback.provider,
                at=utc_now(),
            )
        ],
    )
    if not store.transition(booking, paid):
        # Another delivery of the same callback won the race
        current = load_booking(store, callback.booking_id)
        logger.info("payment_callback_concurrent_replay", booking_id=booking.id)
        return PaymentCallbackResult(booking=current, changed=False)

    booking_transitions.labels(event=BookingEvent.PAYMENT_CONFIRMED.value).inc()
    logger.info(
        "booking_paid",
        booking_id=paid.id,
        provider=callback.provider,
        payment_reference=callback.payment_reference,
        deposit=deposit,
    )

    created = run_best_effort(
        "link_account",
        lambda: _link_account(paid, store, accounts),
        booking_id=paid.id,
        email=paid.email,
    )

    if paid.origin == Origin.SITE and channel_manager is not None:
        manager = channel_manager
        channel = manager.channel_type.value
        blocked = run_best_effort(
            "block_dates",
            lambda: _block_on_channel(paid, store, manager),
            booking_id=paid.id,
            channel=channel,
        )
        run_best_effort(
            "notify_admin",
            lambda: notifier.send_admin_new_booking(paid, channel, bool(blocked)),
            booking_id=paid.id,
        )

    credentials = {"email": paid.email} if created else None
    run_best_effort(
        "notify_confirmed",
        lambda: notifier.send_booking_confirmed(paid, credentials),
        booking_id=paid.id,
    )

    return PaymentCallbackResult(booking=load_booking(store, callback.booking_id), changed=True)
