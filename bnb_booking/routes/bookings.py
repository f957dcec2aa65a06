"""
Guest-facing booking operations: site checkout, availability, date changes,
guest additions, cancellation.

Quote endpoints are read-only previews of what the matching operation would
charge or refund right now.
"""

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException

from bnb_booking.channels.base import ChannelManager
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import (
    get_booking_store,
    get_notifier,
    get_payment_gateway,
    get_primary_channel_manager,
)
from bnb_booking.errors import BookingError
from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.policies.cancellation import get_policy_description
from bnb_booking.policies.pricing import get_room_rate, nights_between
from bnb_booking.routes._booking_helpers import raise_http_error
from bnb_booking.schemas.bookings import (
    DateChangeRequest,
    GuestChangeRequest,
    SiteBookingRequest,
    StayQuoteRequest,
)
from bnb_booking.services.availability import check_availability
from bnb_booking.services.cancellations import cancel_booking, preview_cancellation
from bnb_booking.services.checkout import create_site_booking, quote_stay
from bnb_booking.services.modifications import (
    add_guests,
    change_dates,
    quote_date_change,
    quote_guest_addition,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/rooms/{room_id}/availability")
def room_availability_endpoint(
    room_id: str,
    check_in: date,
    check_out: date,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """
    Whether a site booking can take the room on these dates.

    Example:
        >>> GET /rooms/1/availability?check_in=2026-06-11&check_out=2026-06-14
        {"room_id": "1", "available": false, "conflicting_booking_ids": [7], ...}
    """
    try:
        get_room_rate(room_id)
        nights_between(check_in, check_out)
        return check_availability(store, room_id, check_in, check_out).model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("availability_check_failed", room_id=room_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/quote")
def quote_stay_endpoint(payload: StayQuoteRequest) -> dict[str, Any]:
    """Price a new stay with its deposit and balance."""
    try:
        quote = quote_stay(payload.room_id, payload.check_in, payload.check_out, payload.guests)
        return quote.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("stay_quote_failed", room_id=payload.room_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings", status_code=201)
def create_booking_endpoint(
    payload: SiteBookingRequest,
    store: BookingStore = Depends(get_booking_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict[str, Any]:
    """
    Create a pending site booking and start the deposit checkout.

    The response carries the checkout ``redirect_url``; the booking turns paid
    when the payment callback arrives.
    """
    try:
        result = create_site_booking(payload, store, gateway)
        logger.info("site_booking_requested", booking_id=result.booking.id)
        return result.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("site_booking_failed", room_id=payload.room_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")



@router.post("/bookings/{booking_id}/date-change/quote")
def quote_date_change_endpoint(
    booking_id: int,
    payload: DateChangeRequest,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """
    Price a date change without applying it.

    Returns:
        dict: Quote with new base amount, penalty and delta (minor units)
    """
    try:
        quote = quote_date_change(store, booking_id, payload.check_in, payload.check_out)
        return quote.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("date_change_quote_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{booking_id}/date-change")
def change_dates_endpoint(
    booking_id: int,
    payload: DateChangeRequest,
    store: BookingStore = Depends(get_booking_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
    channel_manager: Optional[ChannelManager] = Depends(get_primary_channel_manager),
) -> dict[str, Any]:
    """
    Move a booking to new dates.

    When the change costs more, the booking is left untouched and the response
    carries ``status="payment_required"`` with the checkout ``redirect_url``;
    the change is applied by the payment callback.
    """
    try:
        result = change_dates(
            booking_id,
            payload.check_in,
            payload.check_out,
            store,
            gateway,
            notifier,
            channel_manager=channel_manager,
        )
        logger.info("date_change_requested", booking_id=booking_id, status=result.status.value)
        return result.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("date_change_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{booking_id}/guests/quote")
def quote_guest_addition_endpoint(
    booking_id: int,
    payload: GuestChangeRequest,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    try:
        quote = quote_guest_addition(store, booking_id, payload.guests)
        return quote.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("guest_quote_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{booking_id}/guests")
def add_guests_endpoint(
    booking_id: int,
    payload: GuestChangeRequest,
    store: BookingStore = Depends(get_booking_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
) -> dict[str, Any]:
    """Raise the guest count of a booking, charging the surcharge first if any."""
    try:
        result = add_guests(
            booking_id,
            payload.guests,
            store,
            gateway,
            notifier,
            guest_names=payload.guest_names or None,
        )
        logger.info("guest_change_requested", booking_id=booking_id, status=result.status.value)
        return result.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("guest_change_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/{booking_id}/cancellation")
def preview_cancellation_endpoint(
    booking_id: int,
    store: BookingStore = Depends(get_booking_store),
) -> dict[str, Any]:
    """
    Refund and penalty the guest would get by cancelling now.

    Example:
        >>> GET /bookings/42/cancellation
        {"refund_amount": 36000, "penalty_amount": 0, "refund_percentage": 100,
         "days_until_check_in": 10, "policy": "..."}
    """
    try:
        outcome = preview_cancellation(store, booking_id)
        return {**outcome.model_dump(mode="json"), "policy": get_policy_description()}
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("cancellation_preview_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{booking_id}/cancel")
def cancel_booking_endpoint(
    booking_id: int,
    store: BookingStore = Depends(get_booking_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
    channel_manager: Optional[ChannelManager] = Depends(get_primary_channel_manager),
) -> dict[str, Any]:
    """Cancel a booking and refund according to the cancellation policy."""
    try:
        result = cancel_booking(booking_id, store, gateway, notifier, channel_manager)
        return result.model_dump(mode="json")
    except BookingError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception("cancellation_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
