"""
Unit tests for services/payments.py.

Uses the real AccountDirectory on the in-memory database so account linking
is exercised end to end.
"""

from __future__ import annotations

from datetime import date
from typing import Callable
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.engine import Engine

from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.db.store import BookingStore
from bnb_booking.errors import BookingCancelled, BookingNotFound, UpstreamFailure
from bnb_booking.gateways.base import GatewayType, PaymentGateway, PaymentStatus
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.schemas.bookings import (
    Booking,
    BookingStatus,
    ModificationStatus,
    Origin,
    PaymentCallback,
    PaymentKind,
)
from bnb_booking.services.accounts import AccountDirectory
from bnb_booking.services.payments import handle_payment_callback


@pytest.fixture
def accounts(sqlite_engine: Engine) -> AccountDirectory:
    return AccountDirectory(sqlite_engine)


@pytest.fixture
def notifier() -> Mock:
    return Mock(spec=Notifier)


@pytest.fixture
def channel_manager() -> Mock:
    manager = Mock(spec=ChannelManager)
    manager.channel_type = ChannelType.SMOOBU
    manager.block_date_range.return_value = "blk_42"
    return manager


@pytest.fixture
def stripe_gateway() -> Mock:
    gateway = Mock(spec=PaymentGateway)
    gateway.gateway_type = GatewayType.STRIPE
    gateway.get_status.return_value = PaymentStatus(
        paid=True, payment_reference="pi_live_1", status="succeeded"
    )
    return gateway


@pytest.fixture
def pending_booking(stored_booking: Callable[..., Booking]) -> Booking:
    return stored_booking(
        status=BookingStatus.PENDING,
        payment_reference=None,
        payment_provider=None,
        deposit_paid=0,
    )


def _callback(booking_id: int, **overrides) -> PaymentCallback:
    values = {"booking_id": booking_id, "payment_reference": "pi_live_1", "provider": "stripe"}
    values.update(overrides)
    return PaymentCallback(**values)


@pytest.mark.unit
def test_paid_callback_transitions_and_runs_side_effects(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    channel_manager: Mock,
    pending_booking: Booking,
) -> None:
    result = handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, channel_manager
    )

    assert result.changed is True
    booking = result.booking
    assert booking.status == BookingStatus.PAID
    assert booking.payment_reference == "pi_live_1"
    assert booking.paid_at is not None
    assert booking.user_id is not None
    assert booking.channel_booking_id == "blk_42"

    channel_manager.block_date_range.assert_called_once_with(
        "1", date(2026, 6, 11), date(2026, 6, 14), f"Prenotazione sito {pending_booking.id}"
    )
    notifier.send_booking_confirmed.assert_called_once()
    _, credentials = notifier.send_booking_confirmed.call_args.args
    assert credentials == {"email": "giulia.rossi@example.com"}


@pytest.mark.unit
def test_replayed_callback_is_a_no_op(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    channel_manager: Mock,
    pending_booking: Booking,
) -> None:
    callback = _callback(pending_booking.id)
    handle_payment_callback(callback, store, notifier, accounts, channel_manager)

    replay = handle_payment_callback(callback, store, notifier, accounts, channel_manager)

    assert replay.changed is False
    assert replay.booking.status == BookingStatus.PAID
    channel_manager.block_date_range.assert_called_once()
    notifier.send_booking_confirmed.assert_called_once()


@pytest.mark.unit
def test_concurrent_delivery_loses_compare_and_set(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    pending_booking: Booking,
) -> None:
    with patch.object(store, "transition", return_value=False):
        result = handle_payment_callback(_callback(pending_booking.id), store, notifier, accounts)

    assert result.changed is False
    notifier.send_booking_confirmed.assert_not_called()


@pytest.mark.unit
def test_existing_account_is_linked_without_credentials(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    pending_booking: Booking,
) -> None:
    existing = accounts.ensure_account("Giulia.Rossi@example.com", "Giulia Rossi")

    result = handle_payment_callback(_callback(pending_booking.id), store, notifier, accounts)

    assert result.booking.user_id == existing.user_id
    _, credentials = notifier.send_booking_confirmed.call_args.args
    assert credentials is None


@pytest.mark.unit
def test_not_paid_status_changes_nothing(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    pending_booking: Booking,
) -> None:
    result = handle_payment_callback(
        _callback(pending_booking.id, status="requires_payment_method"),
        store,
        notifier,
        accounts,
    )

    assert result.changed is False
    assert store.get(pending_booking.id).status == BookingStatus.PENDING


@pytest.mark.unit
def test_payment_for_cancelled_booking_is_rejected(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stored_booking: Callable[..., Booking],
) -> None:
    booking = stored_booking(status=BookingStatus.CANCELLED)

    with pytest.raises(BookingCancelled):
        handle_payment_callback(_callback(booking.id), store, notifier, accounts)


@pytest.mark.unit
def test_payment_for_missing_booking(
    store: BookingStore, accounts: AccountDirectory, notifier: Mock
) -> None:
    with pytest.raises(BookingNotFound):
        handle_payment_callback(_callback(12345), store, notifier, accounts)


@pytest.mark.unit
def test_side_effect_failures_keep_booking_paid(
    store: BookingStore,
    notifier: Mock,
    channel_manager: Mock,
    pending_booking: Booking,
) -> None:
    accounts = Mock(spec=AccountDirectory)
    accounts.ensure_account.side_effect = RuntimeError("db hiccup")
    channel_manager.block_date_range.side_effect = ConnectionError("smoobu down")
    notifier.send_booking_confirmed.side_effect = RuntimeError("resend 500")

    result = handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, channel_manager
    )

    assert result.changed is True
    assert store.get(pending_booking.id).status == BookingStatus.PAID
    _, credentials = notifier.send_booking_confirmed.call_args.args
    assert credentials is None


@pytest.mark.unit
def test_external_booking_is_not_blocked(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    channel_manager: Mock,
    stored_booking: Callable[..., Booking],
) -> None:
    booking = stored_booking(
        status=BookingStatus.PENDING,
        origin=Origin.DIRECT,
        payment_reference=None,
        deposit_paid=0,
    )

    handle_payment_callback(_callback(booking.id), store, notifier, accounts, channel_manager)

    channel_manager.block_date_range.assert_not_called()


@pytest.mark.unit
def test_modification_callback_applies_pending_change(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stored_booking: Callable[..., Booking],
) -> None:
    booking = stored_booking()
    metadata = {
        "modification": "add_guest",
        "original_amount": "54000",
        "new_total": "60000",
        "deposit_due": "1800",
        "new_guests": "3",
        "guest_names": "",
    }

    result = handle_payment_callback(
        _callback(booking.id, payment_reference="cs_mod_1", metadata=metadata),
        store,
        notifier,
        accounts,
    )

    assert result.changed is True
    assert result.modification is not None
    assert result.modification.status == ModificationStatus.APPLIED
    assert store.get(booking.id).guests == 3
    assert [p.reference for p in store.get(booking.id).payments] == ["pi_test_123", "cs_mod_1"]
    notifier.send_booking_confirmed.assert_not_called()


@pytest.mark.unit
def test_first_payment_records_the_deposit(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    pending_booking: Booking,
) -> None:
    result = handle_payment_callback(_callback(pending_booking.id), store, notifier, accounts)

    booking = result.booking
    assert booking.deposit_paid == 16200
    assert booking.balance_due == 54000 - 16200
    assert [(p.reference, p.amount, p.kind) for p in booking.payments] == [
        ("pi_live_1", 16200, PaymentKind.DEPOSIT)
    ]


@pytest.mark.unit
def test_owner_is_told_about_a_paid_site_booking(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    channel_manager: Mock,
    pending_booking: Booking,
) -> None:
    handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, channel_manager
    )

    booking, channel, blocked = notifier.send_admin_new_booking.call_args.args
    assert booking.id == pending_booking.id
    assert channel == "smoobu"
    assert blocked is True


@pytest.mark.unit
def test_owner_notice_reports_a_failed_block(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    channel_manager: Mock,
    pending_booking: Booking,
) -> None:
    channel_manager.block_date_range.side_effect = ConnectionError("smoobu down")

    handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, channel_manager
    )

    _, _, blocked = notifier.send_admin_new_booking.call_args.args
    assert blocked is False


# =============================================================================
# Payment verification
# =============================================================================


@pytest.mark.unit
def test_callback_is_verified_with_the_gateway(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stripe_gateway: Mock,
    pending_booking: Booking,
) -> None:
    result = handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, gateway=stripe_gateway
    )

    stripe_gateway.get_status.assert_called_once_with("pi_live_1")
    assert result.changed is True
    assert result.booking.status == BookingStatus.PAID


@pytest.mark.unit
def test_unverified_callback_changes_nothing(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stripe_gateway: Mock,
    pending_booking: Booking,
) -> None:
    stripe_gateway.get_status.return_value = PaymentStatus(
        paid=False, payment_reference="pi_live_1", status="requires_payment_method"
    )

    result = handle_payment_callback(
        _callback(pending_booking.id), store, notifier, accounts, gateway=stripe_gateway
    )

    assert result.changed is False
    assert store.get(pending_booking.id).status == BookingStatus.PENDING
    notifier.send_booking_confirmed.assert_not_called()


@pytest.mark.unit
def test_unverified_modification_is_not_applied(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stripe_gateway: Mock,
    stored_booking: Callable[..., Booking],
) -> None:
    booking = stored_booking()
    stripe_gateway.get_status.return_value = PaymentStatus(
        paid=False, payment_reference="cs_mod_1", status="unpaid"
    )
    metadata = {
        "modification": "add_guest",
        "original_amount": "54000",
        "new_total": "60000",
        "deposit_due": "1800",
        "new_guests": "3",
    }

    result = handle_payment_callback(
        _callback(booking.id, payment_reference="cs_mod_1", metadata=metadata),
        store,
        notifier,
        accounts,
        gateway=stripe_gateway,
    )

    assert result.changed is False
    assert store.get(booking.id).guests == 2


@pytest.mark.unit
def test_status_lookup_failure_is_an_upstream_failure(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    stripe_gateway: Mock,
    pending_booking: Booking,
) -> None:
    stripe_gateway.get_status.return_value = PaymentStatus(
        paid=False, payment_reference="pi_live_1", error_message="No such payment_intent"
    )

    with pytest.raises(UpstreamFailure) as exc_info:
        handle_payment_callback(
            _callback(pending_booking.id), store, notifier, accounts, gateway=stripe_gateway
        )

    assert exc_info.value.side_effect == "payment_status"
    assert store.get(pending_booking.id).status == BookingStatus.PENDING


@pytest.mark.unit
def test_manual_gateway_callbacks_are_not_looked_up(
    store: BookingStore,
    accounts: AccountDirectory,
    notifier: Mock,
    pending_booking: Booking,
) -> None:
    gateway = Mock(spec=PaymentGateway)
    gateway.gateway_type = GatewayType.MANUAL

    result = handle_payment_callback(
        _callback(pending_booking.id, provider="manual"),
        store,
        notifier,
        accounts,
        gateway=gateway,
    )

    gateway.get_status.assert_not_called()
    assert result.changed is True
