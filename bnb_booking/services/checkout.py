"""
Site booking checkout.

A booking made on the site starts pending: the stay is priced, checked
against every other booking of the room, stored, and the guest is sent to
the payment gateway for the deposit. The payment callback turns it paid.
"""

from datetime import date, datetime
from typing import Optional

import structlog

from bnb_booking.config import SITE_URL
from bnb_booking.db.store import BookingStore
from bnb_booking.errors import InvalidDateRange, UpstreamFailure
from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.metrics import booking_transitions
from bnb_booking.policies.lifecycle import BookingEvent, apply_transition
from bnb_booking.policies.pricing import (
    deposit_split,
    get_room_rate,
    nights_between,
    price_for_stay,
)
from bnb_booking.schemas.bookings import (
    Booking,
    BookingStatus,
    CheckoutResult,
    Origin,
    SiteBookingRequest,
    StayQuote,
)
from bnb_booking.services.availability import ensure_available
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def quote_stay(room_id: str, check_in: date, check_out: date, guests: int) -> StayQuote:
    """
    Price a new stay.

    Raises:
        RoomNotFound, InvalidDateRange, InvalidGuestCount
    """
    rate = get_room_rate(room_id)
    nights = nights_between(check_in, check_out)
    total = price_for_stay(guests, nights, rate)
    deposit, balance = deposit_split(total)
    return StayQuote(
        room_id=rate.room_id,
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        nights=nights,
        total_amount=total,
        deposit_due=deposit,
        balance_due=balance,
    )


def _abandon(store: BookingStore, booking: Booking, error: Optional[str]) -> None:
    """Release the dates of a pending booking whose charge could not be created."""
    cancelled = apply_transition(booking, BookingEvent.CANCEL)
    if store.transition(booking, cancelled):
        booking_transitions.labels(event=BookingEvent.CANCEL.value).inc()
    logger.error("checkout_charge_failed", booking_id=booking.id, error=error)


def create_site_booking(
    request: SiteBookingRequest,
    store: BookingStore,
    gateway: PaymentGateway,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    """
    Store a pending site booking and start collecting its deposit.

    Args:
        request: Stay and guest details from the booking form
        store: Booking Store
        gateway: Payment gateway collecting the deposit
        now: Instant of the request, defaults to the current UTC time

    Returns:
        CheckoutResult: The pending booking and the checkout redirect

    Raises:
        RoomNotFound, InvalidDateRange, InvalidGuestCount
        DatesUnavailable: If the room is taken on the requested dates
        UpstreamFailure: If the deposit charge cannot be created
    """
    now = now or utc_now()
    if request.check_in < now.date():
        raise InvalidDateRange(
            "La data di check-in è nel passato", check_in=request.check_in.isoformat()
        )

    quote = quote_stay(request.room_id, request.check_in, request.check_out, request.guests)
    ensure_available(
        store, quote.room_id, quote.check_in, quote.check_out, Origin.SITE, now=now
    )

    pending = Booking(
        room_id=quote.room_id,
        check_in=quote.check_in,
        check_out=quote.check_out,
        guests=quote.guests,
        nights=quote.nights,
        total_amount=quote.total_amount,
        currency=quote.currency,
        deposit_paid=0,
        balance_due=quote.total_amount,
        origin=Origin.SITE,
        status=BookingStatus.PENDING,
        first_name=request.first_name.strip(),
        last_name=request.last_name.strip(),
        email=request.email.strip().lower(),
        phone=request.phone.strip(),
        notes=request.notes,
        created_at=now,
    )
    booking_id = store.insert(pending)
    booking = pending.model_copy(update={"id": booking_id})
    logger.info(
        "site_booking_created",
        booking_id=booking_id,
        room_id=quote.room_id,
        check_in=quote.check_in.isoformat(),
        nights=quote.nights,
        total_amount=quote.total_amount,
    )

    try:
        charge = gateway.create_charge(
            amount=quote.deposit_due,
            currency=quote.currency,
            booking_ref=str(booking_id),
            description=f"Acconto prenotazione n. {booking_id}",
            success_url=f"{SITE_URL}/checkout/success?bookingId={booking_id}",
            cancel_url=f"{SITE_URL}/prenota?error=payment_failed",
            metadata={"deposit_due": str(quote.deposit_due)},
        )
    except Exception as e:
        _abandon(store, booking, str(e))
        raise UpstreamFailure("charge", required=True, booking_id=booking_id, error=str(e)) from e

    if not charge.success:
        _abandon(store, booking, charge.error_message)
        raise UpstreamFailure(
            "charge", required=True, booking_id=booking_id, error=charge.error_message
        )

    if charge.payment_reference:
        store.update(booking_id, {"payment_reference": charge.payment_reference})
        booking = booking.model_copy(update={"payment_reference": charge.payment_reference})

    logger.info(
        "deposit_payment_requested",
        booking_id=booking_id,
        amount=quote.deposit_due,
        payment_reference=charge.payment_reference,
    )
    return CheckoutResult(
        booking=booking,
        quote=quote,
        redirect_url=charge.redirect_url,
        payment_reference=charge.payment_reference,
    )
