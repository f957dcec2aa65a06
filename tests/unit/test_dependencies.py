"""
Unit tests for FastAPI dependency injection providers.
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from fastapi import HTTPException
from sqlalchemy.engine import Engine

from bnb_booking.channels.smoobu import SmoobuClient
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import (
    get_booking_store,
    get_channel_manager,
    get_db_engine,
    get_notifier,
    get_payment_gateway,
    get_primary_channel_manager,
)
from bnb_booking.gateways.manual import ManualGateway
from bnb_booking.gateways.stripe_gateway import StripeGateway
from bnb_booking.network.auth import TokenProvider
from bnb_booking.notifications.notifier import LoggingNotifier, ResendNotifier


@pytest.mark.unit
def test_get_db_engine_dependency() -> None:
    """Test that get_db_engine yields the shared engine instance."""
    engine = next(get_db_engine())

    assert isinstance(engine, Engine)


@pytest.mark.unit
def test_get_booking_store_wraps_engine(sqlite_engine: Engine) -> None:
    store = get_booking_store(sqlite_engine)

    assert isinstance(store, BookingStore)
    assert store.engine is sqlite_engine


@pytest.mark.unit
@pytest.mark.parametrize(
    "provider,expected",
    [("stripe", StripeGateway), ("manual", ManualGateway)],
)
def test_get_payment_gateway(provider: str, expected: type) -> None:
    with patch("bnb_booking.dependencies.PAYMENT_PROVIDER", provider):
        assert isinstance(get_payment_gateway(), expected)


@pytest.mark.unit
def test_get_notifier_selects_by_api_key() -> None:
    with patch("bnb_booking.dependencies.RESEND_API_KEY", None):
        assert isinstance(get_notifier(), LoggingNotifier)

    with patch("bnb_booking.dependencies.RESEND_API_KEY", "re_key"):
        with patch("bnb_booking.notifications.notifier.RESEND_API_KEY", "re_key"):
            assert isinstance(get_notifier(), ResendNotifier)


@pytest.mark.unit
def test_get_channel_manager_unknown_is_404() -> None:
    with pytest.raises(HTTPException) as exc_info:
        get_channel_manager("lodgify", Mock(spec=TokenProvider))

    assert exc_info.value.status_code == 404


@pytest.mark.unit
def test_get_primary_channel_manager() -> None:
    with patch("bnb_booking.dependencies.PRIMARY_CHANNEL", "smoobu"):
        with patch("bnb_booking.channels.smoobu.SMOOBU_API_KEY", "k"):
            manager = get_primary_channel_manager(Mock(spec=TokenProvider))

    assert isinstance(manager, SmoobuClient)


@pytest.mark.unit
def test_primary_channel_unset_or_unconfigured_is_none() -> None:
    with patch("bnb_booking.dependencies.PRIMARY_CHANNEL", ""):
        assert get_primary_channel_manager(Mock(spec=TokenProvider)) is None

    with patch("bnb_booking.dependencies.PRIMARY_CHANNEL", "smoobu"):
        with patch("bnb_booking.channels.smoobu.SMOOBU_API_KEY", None):
            assert get_primary_channel_manager(Mock(spec=TokenProvider)) is None
