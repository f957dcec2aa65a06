"""
Settlement of booking modifications (date changes and added guests).

The pricing rules live in ``policies/modification.py``; this module decides
what happens with the resulting delta:

- delta > 0: charge the deposit part through the payment gateway. Nothing is
  committed until the payment callback confirms it (``apply_pending_modification``).
  A failed charge aborts the operation and leaves the booking untouched.
- delta < 0: commit the change, then refund the difference (best-effort).
- delta == 0: commit the change.

A committed date change moves the site booking's block on the channel
manager. Every committed change ends with a best-effort modification email.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

import structlog

from bnb_booking.channels.base import ChannelManager
from bnb_booking.config import SITE_URL
from bnb_booking.db.store import BookingStore
from bnb_booking.errors import BookingNotFound, InvalidTransition, UpstreamFailure
from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.policies.modification import (
    ensure_modifiable,
    price_delta_for_date_change,
    quote_guest_change,
)
from bnb_booking.policies.pricing import get_room_rate
from bnb_booking.schemas.bookings import (
    Booking,
    BookingStatus,
    DateChangeQuote,
    GuestChangeQuote,
    ModificationResult,
    ModificationStatus,
    Origin,
    PaymentKind,
    PaymentRecord,
)
from bnb_booking.services.availability import ensure_available
from bnb_booking.services.refunds import collected_payments, refund_payment, refundable_amount
from bnb_booking.services.side_effects import run_best_effort
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

CHANGE_DATES = "change_dates"
ADD_GUESTS = "add_guest"


def load_booking(store: BookingStore, booking_id: int) -> Booking:
    """
    Raises:
        BookingNotFound: If no booking has this id
    """
    booking = store.get(booking_id)
    if booking is None:
        raise BookingNotFound(booking_id=booking_id)
    return booking


def quote_date_change(
    store: BookingStore,
    booking_id: int,
    new_check_in: date,
    new_check_out: date,
    now: Optional[datetime] = None,
) -> DateChangeQuote:
    """
    Price a date change without side effects (UI preview).

    Raises:
        DatesUnavailable: If the room is taken on the new dates
    """
    booking = load_booking(store, booking_id)
    rate = get_room_rate(booking.room_id)
    quote = price_delta_for_date_change(booking, rate, new_check_in, new_check_out, now)
    ensure_available(
        store,
        booking.room_id,
        new_check_in,
        new_check_out,
        booking.origin,
        exclude_id=booking_id,
        now=now,
    )
    return quote


def quote_guest_addition(
    store: BookingStore, booking_id: int, new_guests: int
) -> GuestChangeQuote:
    """Price adding guests without side effects (UI preview)."""
    booking = load_booking(store, booking_id)
    return quote_guest_change(booking, get_room_rate(booking.room_id), new_guests)


def _money_patch(booking: Booking, new_total: int, collected: int) -> dict[str, int]:
    """
    New total/deposit/balance after a change.

    ``collected`` is what the guest paid for the change itself (the deposit
    part of a positive delta). A reduction lowers the paid deposit first, by
    the amount refunded, and the balance by the rest.
    """
    delta = new_total - booking.total_amount
    if delta >= 0:
        deposit_paid = booking.deposit_paid + collected
    else:
        deposit_paid = booking.deposit_paid - refundable_amount(booking, -delta)
    return {
        "total_amount": new_total,
        "deposit_paid": deposit_paid,
        "balance_due": new_total - deposit_paid,
    }


def _request_payment(
    booking: Booking,
    quote: DateChangeQuote | GuestChangeQuote,
    kind: str,
    metadata: dict[str, str],
    gateway: PaymentGateway,
) -> ModificationResult:
    description = (
        f"Modifica date prenotazione n. {booking.id}"
        if kind == CHANGE_DATES
        else f"Aggiunta ospiti prenotazione n. {booking.id}"
    )
    metadata = {
        "modification": kind,
        "original_amount": str(booking.total_amount),
        "new_total": str(quote.new_total_amount),
        "deposit_due": str(quote.deposit_due),
        **metadata,
    }

    try:
        charge = gateway.create_charge(
            amount=quote.deposit_due,
            currency=booking.currency,
            booking_ref=str(booking.id),
            description=description,
            success_url=f"{SITE_URL}/user/booking/{booking.id}?modifica=ok",
            cancel_url=f"{SITE_URL}/user/booking/{booking.id}",
            metadata=metadata,
        )
    except Exception as e:
        raise UpstreamFailure("charge", required=True, booking_id=booking.id, error=str(e)) from e

    if not charge.success:
        raise UpstreamFailure(
            "charge", required=True, booking_id=booking.id, error=charge.error_message
        )

    logger.info(
        "modification_payment_requested",
        booking_id=booking.id,
        modification=kind,
        amount=quote.deposit_due,
        payment_reference=charge.payment_reference,
    )
    return ModificationResult(
        status=ModificationStatus.PAYMENT_REQUIRED,
        booking=booking,
        quote=quote,
        redirect_url=charge.redirect_url,
        payment_reference=charge.payment_reference,
    )


def _commit(
    store: BookingStore,
    booking: Booking,
    changes: dict[str, Any],
    new_total: int,
    collected: int,
) -> Booking:
    patch = {**changes, **_money_patch(booking, new_total, collected)}
    updated = booking.model_copy(update={**patch, "updated_at": utc_now()})
    # Validate the combined state before it reaches the store
    Booking.model_validate(updated.model_dump())

    store.update(booking.stored_id, patch)
    return updated


def _notify_modified(
    notifier: Notifier, booking: Booking, breakdown: dict[str, Any]
) -> None:
    run_best_effort(
        "notify_modified",
        lambda: notifier.send_booking_modified(booking, breakdown),
        booking_id=booking.id,
    )


def _unblock(channel_manager: ChannelManager, block_id: str) -> bool:
    channel_manager.unblock_date_range(block_id)
    return True


def move_channel_block(
    before: Booking,
    updated: Booking,
    store: BookingStore,
    channel_manager: Optional[ChannelManager],
) -> Booking:
    """
    Move a site booking's channel block to its new dates (best-effort).

    The old block is released first, then the new range is blocked. The new
    block id replaces the old one; if the new block fails, the old id is kept
    only while the old block still stands.

    Returns:
        Booking: ``updated`` with the channel block id now stored
    """
    if (
        channel_manager is None
        or updated.origin != Origin.SITE
        or updated.status == BookingStatus.PENDING
        or (before.check_in, before.check_out) == (updated.check_in, updated.check_out)
    ):
        return updated

    manager = channel_manager
    old_id = before.channel_booking_id
    released = False
    if old_id:
        released = bool(
            run_best_effort(
                "unblock",
                lambda: _unblock(manager, old_id),
                booking_id=updated.id,
                channel=manager.channel_type.value,
                block_id=old_id,
            )
        )

    new_id = run_best_effort(
        "block_dates",
        lambda: manager.block_date_range(
            updated.room_id,
            updated.check_in,
            updated.check_out,
            f"Prenotazione sito {updated.id}",
        ),
        booking_id=updated.id,
        channel=manager.channel_type.value,
    )

    block_id = new_id or (None if released else old_id)
    if block_id != old_id:
        store.update(updated.stored_id, {"channel_booking_id": block_id})
    logger.info(
        "channel_block_moved",
        booking_id=updated.id,
        old_block_id=old_id,
        new_block_id=new_id,
        released=released,
    )
    return updated.model_copy(update={"channel_booking_id": block_id})


def change_dates(
    booking_id: int,
    new_check_in: date,
    new_check_out: date,
    store: BookingStore,
    gateway: PaymentGateway,
    notifier: Notifier,
    now: Optional[datetime] = None,
    channel_manager: Optional[ChannelManager] = None,
) -> ModificationResult:
    """
    Move a booking to new dates, settling the price difference.

    Returns:
        ModificationResult: ``payment_required`` with a redirect when the guest
        owes money, otherwise ``applied`` with the committed booking

    Raises:
        BookingNotFound, BookingCancelled, InvalidDateRange, GuestLimitExceeded
        DatesUnavailable: If the room is taken on the new dates
        UpstreamFailure: If the charge for a positive delta cannot be created
    """
    booking = load_booking(store, booking_id)
    quote = price_delta_for_date_change(
        booking, get_room_rate(booking.room_id), new_check_in, new_check_out, now
    )
    ensure_available(
        store,
        booking.room_id,
        new_check_in,
        new_check_out,
        booking.origin,
        exclude_id=booking_id,
        now=now,
    )

    if quote.delta > 0:
        return _request_payment(
            booking,
            quote,
            CHANGE_DATES,
            {"new_check_in": new_check_in.isoformat(), "new_check_out": new_check_out.isoformat()},
            gateway,
        )

    changes = {"check_in": new_check_in, "check_out": new_check_out, "nights": quote.nights}
    updated = _commit(store, booking, changes, quote.new_total_amount, collected=0)

    refund = None
    if quote.delta < 0:
        owed = refundable_amount(booking, -quote.delta)
        refund, payments = refund_payment(booking, owed, "date_change", gateway)
        if refund is not None:
            store.update(booking_id, {"last_refund": refund, "payments": payments})
            updated = updated.model_copy(update={"last_refund": refund, "payments": payments})

    updated = move_channel_block(booking, updated, store, channel_manager)

    logger.info(
        "booking_dates_changed",
        booking_id=booking_id,
        delta=quote.delta,
        penalty=quote.penalty,
        refund=refund.amount if refund else 0,
    )
    _notify_modified(
        notifier,
        updated,
        {
            "Nuovo importo soggiorno": quote.new_base_amount,
            "Penale modifica tardiva": quote.penalty,
            "Differenza": quote.delta,
        },
    )
    return ModificationResult(
        status=ModificationStatus.APPLIED, booking=updated, quote=quote, refund=refund
    )


def add_guests(
    booking_id: int,
    new_guests: int,
    store: BookingStore,
    gateway: PaymentGateway,
    notifier: Notifier,
    guest_names: Optional[list[str]] = None,
) -> ModificationResult:
    """
    Raise the guest count of a booking, collecting the surcharge first.

    Raises:
        BookingNotFound, BookingCancelled, GuestReductionNotAllowed, GuestLimitExceeded
        UpstreamFailure: If the charge for the surcharge cannot be created
    """
    booking = load_booking(store, booking_id)
    quote = quote_guest_change(booking, get_room_rate(booking.room_id), new_guests)
    names = ", ".join(guest_names or [])

    if quote.price_difference > 0:
        return _request_payment(
            booking,
            quote,
            ADD_GUESTS,
            {"new_guests": str(new_guests), "guest_names": names[:400]},
            gateway,
        )

    changes: dict[str, Any] = {"guests": new_guests}
    if names:
        changes["notes"] = _append_note(booking.notes, f"Ospiti aggiunti: {names}")
    updated = _commit(store, booking, changes, quote.new_total_amount, collected=0)

    logger.info("booking_guests_added", booking_id=booking_id, guests=new_guests)
    _notify_modified(notifier, updated, {"Ospiti": str(new_guests), "Differenza": 0})
    return ModificationResult(status=ModificationStatus.APPLIED, booking=updated, quote=quote)


def _append_note(notes: str, line: str) -> str:
    return f"{notes}\n{line}" if notes else line


def _already_applied(booking: Booking, kind: str, metadata: dict[str, str]) -> bool:
    if booking.total_amount != int(metadata["new_total"]):
        return False
    if kind == CHANGE_DATES:
        return (
            booking.check_in.isoformat() == metadata["new_check_in"]
            and booking.check_out.isoformat() == metadata["new_check_out"]
        )
    return booking.guests == int(metadata["new_guests"])


def apply_pending_modification(
    booking: Booking,
    metadata: dict[str, str],
    store: BookingStore,
    notifier: Notifier,
    payment_reference: Optional[str] = None,
    provider: Optional[str] = None,
    channel_manager: Optional[ChannelManager] = None,
) -> ModificationResult:
    """
    Commit a modification whose payment the gateway just confirmed.

    The callback may be delivered more than once: a modification that is
    already reflected in the booking is a no-op. The collected amount joins
    the booking's payments so later refunds can go back through it.

    Args:
        booking: Booking freshly read from the store
        metadata: Charge metadata echoed back by the payment callback
        store: Booking Store
        notifier: Guest notifier
        payment_reference: Gateway reference of the modification payment
        provider: Gateway that collected it
        channel_manager: Channel manager holding the site booking's block

    Raises:
        BookingCancelled: If the booking was cancelled after the charge
        InvalidTransition: If the booking changed since the quote was paid
        ValueError: If the metadata names an unknown modification
    """
    ensure_modifiable(booking)
    kind = metadata["modification"]

    if _already_applied(booking, kind, metadata):
        logger.info("modification_replay_ignored", booking_id=booking.id, modification=kind)
        return ModificationResult(status=ModificationStatus.UNCHANGED, booking=booking)

    if booking.total_amount != int(metadata["original_amount"]):
        logger.error(
            "modification_stale",
            booking_id=booking.id,
            expected_amount=metadata["original_amount"],
            actual_amount=booking.total_amount,
        )
        raise InvalidTransition(
            "La prenotazione è stata modificata dopo il pagamento, contattaci per assistenza",
            booking_id=booking.id,
        )

    if kind == CHANGE_DATES:
        new_check_in = date.fromisoformat(metadata["new_check_in"])
        new_check_out = date.fromisoformat(metadata["new_check_out"])
        changes: dict[str, Any] = {
            "check_in": new_check_in,
            "check_out": new_check_out,
            "nights": (new_check_out - new_check_in).days,
        }
    elif kind == ADD_GUESTS:
        changes = {"guests": int(metadata["new_guests"])}
        if metadata.get("guest_names"):
            changes["notes"] = _append_note(
                booking.notes, f"Ospiti aggiunti: {metadata['guest_names']}"
            )
    else:
        raise ValueError(f"Unknown modification kind: {kind}")

    new_total = int(metadata["new_total"])
    collected = int(metadata["deposit_due"])
    if collected > 0 and payment_reference:
        changes["payments"] = [
            *collected_payments(booking),
            PaymentRecord(
                reference=payment_reference,
                amount=collected,
                kind=PaymentKind(kind),
                provider=provider,
                at=utc_now(),
            ),
        ]
    updated = _commit(store, booking, changes, new_total, collected)
    updated = move_channel_block(booking, updated, store, channel_manager)

    logger.info(
        "modification_applied",
        booking_id=booking.id,
        modification=kind,
        new_total=new_total,
        collected=collected,
    )
    _notify_modified(
        notifier,
        updated,
        {
            "Nuovo totale": new_total,
            "Acconto pagato": collected,
            "Saldo all'arrivo": updated.balance_due,
        },
    )
    return ModificationResult(status=ModificationStatus.APPLIED, booking=updated)
