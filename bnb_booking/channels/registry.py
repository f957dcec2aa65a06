"""Build channel manager adapters by name."""

import threading

from sqlalchemy.engine import Engine

from bnb_booking.cache import TokenCache
from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.channels.beds24 import WRITE_TOKEN_KIND, Beds24Client, refresh_write_token
from bnb_booking.channels.smoobu import SmoobuClient
from bnb_booking.network.auth import TokenProvider

# Shared across providers so every request in the process sees refreshed tokens
token_cache = TokenCache()

# One provider per engine: concurrent requests must join the same in-flight refresh
_token_providers: dict[Engine, TokenProvider] = {}
_token_providers_lock = threading.Lock()


def build_token_provider(engine: Engine) -> TokenProvider:
    """Process-wide token provider for ``engine``, created on first use."""
    with _token_providers_lock:
        provider = _token_providers.get(engine)
        if provider is None:
            provider = TokenProvider(
                engine, {WRITE_TOKEN_KIND: refresh_write_token}, cache=token_cache
            )
            _token_providers[engine] = provider
        return provider


def build_channel_manager(name: str, token_provider: TokenProvider) -> ChannelManager:
    """
    Instantiate the adapter for a channel manager.

    Args:
        name: 'beds24' or 'smoobu'
        token_provider: Provider for short-lived API tokens

    Raises:
        ValueError: If the name is unknown or its credentials are missing
    """
    channel = ChannelType(name.lower())
    if channel == ChannelType.BEDS24:
        return Beds24Client(token_provider)
    return SmoobuClient()
