"""
Unit tests for services/checkout.py.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Callable
from unittest.mock import Mock

import pytest

from bnb_booking.db.store import BookingStore
from bnb_booking.errors import (
    DatesUnavailable,
    InvalidDateRange,
    InvalidGuestCount,
    RoomNotFound,
    UpstreamFailure,
)
from bnb_booking.gateways.base import ChargeResult, PaymentGateway
from bnb_booking.schemas.bookings import Booking, BookingStatus, Origin, SiteBookingRequest
from bnb_booking.services.checkout import create_site_booking, quote_stay


@pytest.fixture
def gateway() -> Mock:
    gateway = Mock(spec=PaymentGateway)
    gateway.create_charge.return_value = ChargeResult(
        success=True,
        payment_reference="cs_checkout_1",
        redirect_url="https://checkout.stripe.com/c/pay/cs_checkout_1",
    )
    return gateway


def _request(**overrides: Any) -> SiteBookingRequest:
    values: dict[str, Any] = {
        "room_id": "1",
        "check_in": date(2026, 6, 20),
        "check_out": date(2026, 6, 23),
        "guests": 2,
        "first_name": " Luca ",
        "last_name": "Verdi",
        "email": "Luca.Verdi@Example.com",
    }
    values.update(overrides)
    return SiteBookingRequest(**values)


@pytest.mark.unit
def test_quote_stay() -> None:
    quote = quote_stay("1", date(2026, 6, 20), date(2026, 6, 23), 4)

    assert quote.nights == 3
    assert quote.total_amount == 66000
    assert quote.deposit_due == 19800
    assert quote.deposit_due + quote.balance_due == quote.total_amount


@pytest.mark.unit
@pytest.mark.parametrize(
    "room_id, check_out, guests, error",
    [
        ("9", date(2026, 6, 23), 2, RoomNotFound),
        ("1", date(2026, 6, 20), 2, InvalidDateRange),
        ("2", date(2026, 6, 23), 3, InvalidGuestCount),
    ],
)
def test_quote_stay_rejects_bad_input(
    room_id: str, check_out: date, guests: int, error: type[Exception]
) -> None:
    with pytest.raises(error):
        quote_stay(room_id, date(2026, 6, 20), check_out, guests)


@pytest.mark.unit
def test_create_site_booking_stores_pending_and_charges_deposit(
    store: BookingStore, gateway: Mock, now: datetime
) -> None:
    result = create_site_booking(_request(), store, gateway, now=now)

    booking = store.get(result.booking.id)
    assert booking is not None
    assert booking.status == BookingStatus.PENDING
    assert booking.origin == Origin.SITE
    assert booking.total_amount == 54000
    assert (booking.deposit_paid, booking.balance_due) == (0, 54000)
    assert booking.first_name == "Luca"
    assert booking.email == "luca.verdi@example.com"
    assert booking.payment_reference == "cs_checkout_1"

    kwargs = gateway.create_charge.call_args.kwargs
    assert kwargs["amount"] == 16200
    assert kwargs["booking_ref"] == str(booking.id)
    assert kwargs["success_url"].endswith(f"/checkout/success?bookingId={booking.id}")
    assert result.redirect_url == "https://checkout.stripe.com/c/pay/cs_checkout_1"
    assert result.quote.deposit_due == 16200


@pytest.mark.unit
def test_create_site_booking_on_taken_dates(
    store: BookingStore,
    stored_booking: Callable[..., Booking],
    gateway: Mock,
    now: datetime,
) -> None:
    stored_booking(check_in=date(2026, 6, 22), origin=Origin.AIRBNB, channel_booking_id="ab-1")

    with pytest.raises(DatesUnavailable):
        create_site_booking(_request(), store, gateway, now=now)

    gateway.create_charge.assert_not_called()
    assert store.query_by_fields(last_name="Verdi") == []


@pytest.mark.unit
def test_abandoned_checkout_frees_the_dates(
    store: BookingStore,
    stored_booking: Callable[..., Booking],
    gateway: Mock,
    now: datetime,
) -> None:
    """An unpaid site booking holds its dates only for a while."""
    stored_booking(
        check_in=date(2026, 6, 20),
        status=BookingStatus.PENDING,
        payment_reference=None,
        deposit_paid=0,
        created_at=now - timedelta(hours=2),
    )

    result = create_site_booking(_request(), store, gateway, now=now)

    assert result.booking.status == BookingStatus.PENDING


@pytest.mark.unit
def test_check_in_in_the_past_is_rejected(
    store: BookingStore, gateway: Mock, now: datetime
) -> None:
    with pytest.raises(InvalidDateRange):
        create_site_booking(
            _request(check_in=date(2026, 5, 30), check_out=date(2026, 6, 2)),
            store,
            gateway,
            now=now,
        )
    gateway.create_charge.assert_not_called()


@pytest.mark.unit
@pytest.mark.parametrize(
    "charge",
    [
        ChargeResult(success=False, error_message="card_declined"),
        ConnectionError("stripe down"),
    ],
)
def test_failed_charge_cancels_the_pending_booking(
    store: BookingStore, gateway: Mock, now: datetime, charge: Any
) -> None:
    if isinstance(charge, Exception):
        gateway.create_charge.side_effect = charge
    else:
        gateway.create_charge.return_value = charge

    with pytest.raises(UpstreamFailure) as exc_info:
        create_site_booking(_request(), store, gateway, now=now)

    assert exc_info.value.side_effect == "charge"
    [booking] = store.query_by_fields(last_name="Verdi")
    assert booking.status == BookingStatus.CANCELLED
