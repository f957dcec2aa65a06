"""
Unit tests for channels/registry.py.
"""

from __future__ import annotations

import threading
from typing import Generator
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.engine import Engine

from bnb_booking.channels.beds24 import WRITE_TOKEN_KIND, Beds24Client
from bnb_booking.channels.registry import (
    build_channel_manager,
    build_token_provider,
    token_cache,
)
from bnb_booking.channels.smoobu import SmoobuClient
from bnb_booking.network.auth import TokenProvider


@pytest.fixture
def clean_token_cache() -> Generator[None, None, None]:
    token_cache.invalidate(WRITE_TOKEN_KIND)
    yield
    token_cache.invalidate(WRITE_TOKEN_KIND)


@pytest.mark.unit
def test_build_smoobu() -> None:
    with patch("bnb_booking.channels.smoobu.SMOOBU_API_KEY", "k"):
        manager = build_channel_manager("Smoobu", Mock(spec=TokenProvider))

    assert isinstance(manager, SmoobuClient)


@pytest.mark.unit
def test_build_beds24() -> None:
    provider = Mock(spec=TokenProvider)
    with patch("bnb_booking.channels.beds24.BEDS24_READ_TOKEN", "r"):
        manager = build_channel_manager("beds24", provider)

    assert isinstance(manager, Beds24Client)
    assert manager.token_provider is provider


@pytest.mark.unit
def test_unknown_channel_raises() -> None:
    with pytest.raises(ValueError):
        build_channel_manager("lodgify", Mock(spec=TokenProvider))


@pytest.mark.unit
def test_token_provider_shares_process_cache() -> None:
    provider = build_token_provider(Mock())

    assert provider.cache is token_cache
    assert WRITE_TOKEN_KIND in provider.refreshers


@pytest.mark.unit
def test_token_provider_is_reused_per_engine() -> None:
    engine = Mock()

    assert build_token_provider(engine) is build_token_provider(engine)
    assert build_token_provider(engine) is not build_token_provider(Mock())


@pytest.mark.unit
def test_requests_with_their_own_provider_share_one_refresh(
    sqlite_engine: Engine, clean_token_cache: None
) -> None:
    """Two request-scoped providers refreshing at once hit Beds24 only once."""
    started = threading.Event()
    release = threading.Event()
    joined = threading.Event()
    calls: list[int] = []

    def slow_refresh() -> tuple[str, int]:
        calls.append(1)
        started.set()
        assert release.wait(timeout=5)
        return "shared-write-token", 3600

    def on_debug(event: str, **kwargs: object) -> None:
        if event == "token_refresh_joined":
            joined.set()

    results: list[str] = []

    def request() -> None:
        provider = build_token_provider(sqlite_engine)
        results.append(provider.refresh(WRITE_TOKEN_KIND))

    with (
        patch("bnb_booking.channels.registry.refresh_write_token", slow_refresh),
        patch("bnb_booking.network.auth.logger") as mock_logger,
    ):
        mock_logger.debug.side_effect = on_debug

        first = threading.Thread(target=request)
        first.start()
        assert started.wait(timeout=5)

        second = threading.Thread(target=request)
        second.start()
        assert joined.wait(timeout=5)

        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

    assert results == ["shared-write-token", "shared-write-token"]
    assert len(calls) == 1
