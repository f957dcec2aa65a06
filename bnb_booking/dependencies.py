"""
FastAPI dependency injection providers.

Routes receive the Booking Store and the external collaborators (payment
gateway, channel manager, notifier, account directory) through these
providers, so tests can swap any of them via ``app.dependency_overrides``.

Testing Example:
    >>> from unittest.mock import Mock
    >>> from fastapi.testclient import TestClient
    >>>
    >>> app.dependency_overrides[get_booking_store] = lambda: store
    >>> app.dependency_overrides[get_payment_gateway] = lambda: Mock(spec=PaymentGateway)
    >>>
    >>> client = TestClient(app)
    >>> response = client.post("/bookings/1/cancel")
"""

from __future__ import annotations

from typing import Generator, Optional

import structlog
from fastapi import Depends, HTTPException, status
from sqlalchemy.engine import Engine

from bnb_booking.channels.base import ChannelManager
from bnb_booking.channels.registry import build_channel_manager, build_token_provider
from bnb_booking.config import PAYMENT_PROVIDER, PRIMARY_CHANNEL, RESEND_API_KEY
from bnb_booking.db.engine import engine
from bnb_booking.db.store import BookingStore
from bnb_booking.gateways.base import GatewayType, PaymentGateway
from bnb_booking.gateways.manual import ManualGateway
from bnb_booking.gateways.stripe_gateway import StripeGateway
from bnb_booking.network.auth import TokenProvider
from bnb_booking.notifications.notifier import LoggingNotifier, Notifier, ResendNotifier
from bnb_booking.services.accounts import AccountDirectory

logger = structlog.get_logger(__name__)


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine
    """
    yield engine


def get_booking_store(db_engine: Engine = Depends(get_db_engine)) -> BookingStore:
    return BookingStore(db_engine)


def get_account_directory(db_engine: Engine = Depends(get_db_engine)) -> AccountDirectory:
    return AccountDirectory(db_engine)


def get_token_provider(db_engine: Engine = Depends(get_db_engine)) -> TokenProvider:
    return build_token_provider(db_engine)


def get_payment_gateway() -> PaymentGateway:
    """Gateway selected by PAYMENT_PROVIDER (stripe or manual)."""
    if PAYMENT_PROVIDER == GatewayType.MANUAL.value:
        return ManualGateway()
    return StripeGateway()


def get_notifier() -> Notifier:
    """Resend when an API key is configured, otherwise log-only."""
    if RESEND_API_KEY:
        return ResendNotifier()
    return LoggingNotifier()


def get_channel_manager(
    channel: str,
    token_provider: TokenProvider = Depends(get_token_provider),
) -> ChannelManager:
    """
    Channel manager named in the ``{channel}`` path parameter.

    Raises:
        HTTPException: 404 if the channel is unknown or not configured
    """
    try:
        return build_channel_manager(channel, token_provider)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Channel manager {channel} is not available: {e}",
        )


def get_primary_channel_manager(
    token_provider: TokenProvider = Depends(get_token_provider),
) -> Optional[ChannelManager]:
    """
    Channel manager that holds the blocks of site bookings.

    Returns None when it is not configured; blocking and unblocking are then
    skipped, which never fails a booking operation.
    """
    if not PRIMARY_CHANNEL:
        return None
    try:
        return build_channel_manager(PRIMARY_CHANNEL, token_provider)
    except ValueError as e:
        logger.warning("primary_channel_unavailable", channel=PRIMARY_CHANNEL, error=str(e))
        return None
