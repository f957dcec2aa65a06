"""
Route test fixtures: the real app with every external collaborator overridden.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import (
    get_account_directory,
    get_booking_store,
    get_channel_manager,
    get_notifier,
    get_payment_gateway,
    get_primary_channel_manager,
)
from bnb_booking.gateways.base import ChargeResult, PaymentGateway, RefundResult
from bnb_booking.main import app
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.services.accounts import AccountDirectory


@pytest.fixture
def gateway() -> Mock:
    gateway = Mock(spec=PaymentGateway)
    gateway.create_charge.return_value = ChargeResult(
        success=True, payment_reference="cs_route_1", redirect_url="https://pay.test/cs_route_1"
    )
    gateway.create_refund.return_value = RefundResult(success=True, refund_id="re_route_1")
    return gateway


@pytest.fixture
def notifier() -> Mock:
    return Mock(spec=Notifier)


@pytest.fixture
def channel_manager() -> Mock:
    manager = Mock(spec=ChannelManager)
    manager.channel_type = ChannelType.SMOOBU
    manager.block_date_range.return_value = "blk_route_1"
    return manager


@pytest.fixture
def client(
    store: BookingStore,
    sqlite_engine: Engine,
    gateway: Mock,
    notifier: Mock,
    channel_manager: Mock,
) -> Generator[TestClient, None, None]:
    """TestClient whose dependencies point at the in-memory store and mocks."""
    app.dependency_overrides[get_booking_store] = lambda: store
    app.dependency_overrides[get_account_directory] = lambda: AccountDirectory(sqlite_engine)
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_primary_channel_manager] = lambda: channel_manager
    app.dependency_overrides[get_channel_manager] = lambda: channel_manager

    yield TestClient(app)

    app.dependency_overrides.clear()
