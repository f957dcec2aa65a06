"""
Payment confirmation callback.

The payment provider (or the site's checkout backend relaying it) posts here
once a charge is settled. Deliveries may repeat; only the first one changes
the booking.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException

from bnb_booking.channels.base import ChannelManager
from bnb_booking.config import PAYMENT_CALLBACK_SECRET
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import (
    get_account_directory,
    get_booking_store,
    get_notifier,
    get_payment_gateway,
    get_primary_channel_manager,
)
from bnb_booking.errors import BookingError
from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.routes._booking_helpers import raise_http_error, validate_callback_secret_or_401
from bnb_booking.schemas.bookings import PaymentCallback
from bnb_booking.services.accounts import AccountDirectory
from bnb_booking.services.payments import handle_payment_callback

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/payments/callback")
def payment_callback(
    payload: PaymentCallback,
    x_callback_secret: Optional[str] = Header(default=None),
    store: BookingStore = Depends(get_booking_store),
    notifier: Notifier = Depends(get_notifier),
    accounts: AccountDirectory = Depends(get_account_directory),
    channel_manager: Optional[ChannelManager] = Depends(get_primary_channel_manager),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict[str, Any]:
    """
    Apply a confirmed payment to its booking.

    Headers:
        X-Callback-Secret: Shared secret, must match PAYMENT_CALLBACK_SECRET

    Returns:
        dict: ``changed`` is false for replayed callbacks, plus the stored booking
    """
    validate_callback_secret_or_401(x_callback_secret, PAYMENT_CALLBACK_SECRET)

    try:
        result = handle_payment_callback(
            payload, store, notifier, accounts, channel_manager, gateway=gateway
        )
        logger.info(
            "payment_callback_processed",
            booking_id=payload.booking_id,
            payment_reference=payload.payment_reference,
            changed=result.changed,
        )
        return result.model_dump(mode="json")
    except BookingError as e:
        logger.warning(
            "payment_callback_rejected",
            booking_id=payload.booking_id,
            payment_reference=payload.payment_reference,
            reason=e.reason,
        )
        raise_http_error(e)
    except Exception as e:
        logger.exception("payment_callback_failed", booking_id=payload.booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
