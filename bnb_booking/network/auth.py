"""
Channel manager token management.

``TokenProvider`` owns every short-lived access token the channel manager
clients need. Tokens are looked up in the in-memory cache, then in the
channel_tokens table, and refreshed through a per-kind refresh function when
missing or expired. Concurrent refreshes of the same kind collapse into a
single in-flight refresh whose result every waiting caller shares.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from datetime import timedelta
from typing import Callable

import structlog
from sqlalchemy.engine import Engine

from bnb_booking.cache import TokenCache
from bnb_booking.db.readers.accounts import get_channel_token
from bnb_booking.db.writers.accounts import save_channel_token
from bnb_booking.metrics import token_refreshes
from bnb_booking.utils.datetime import as_utc, utc_now

logger = structlog.get_logger(__name__)

# Refresh this long before the provider-reported expiry
EXPIRY_MARGIN = timedelta(minutes=5)

# A refresh function returns (token, expires_in_seconds)
RefreshFn = Callable[[], tuple[str, int]]


class TokenProvider:
    """
    Hands out valid access tokens, refreshing them at most once at a time per kind.

    Args:
        engine: SQLAlchemy engine used to persist tokens
        refreshers: Token kind -> function that obtains a fresh token
        cache: Optional cache instance (a private one is created otherwise)
    """

    def __init__(
        self,
        engine: Engine,
        refreshers: dict[str, RefreshFn],
        cache: TokenCache | None = None,
    ):
        self.engine = engine
        self.refreshers = refreshers
        self.cache = cache or TokenCache()
        self._lock = threading.Lock()
        self._in_flight: dict[str, Future[str]] = {}

    def get_valid_token(self, kind: str) -> str:
        """
        Get a token of the given kind that has not expired.

        Checks cache first, then database. Refreshes if missing or expired.
        """
        cached = self.cache.get(kind)
        if cached:
            logger.debug("token_cache_hit", kind=kind)
            return cached

        with self.engine.connect() as conn:
            stored = get_channel_token(conn, kind)

        if stored and stored.get("token"):
            expires_at = as_utc(stored["expires_at"])
            if utc_now() < expires_at:
                self.cache.set(kind, stored["token"], expires_at)
                return str(stored["token"])

        return self.refresh(kind)

    def refresh(self, kind: str, prev_token: str | None = None) -> str:
        """
        Refresh the token of the given kind.

        If another thread is already refreshing this kind, wait for its result
        instead of starting a second refresh.

        Args:
            kind: Token kind
            prev_token: Token the API just rejected; if the cached token has
                already moved past it, that newer token is returned instead

        Returns:
            str: Fresh token

        Raises:
            KeyError: If no refresh function is registered for ``kind``
        """
        if prev_token is not None:
            cached = self.cache.get(kind)
            if cached and cached != prev_token:
                return cached

        with self._lock:
            in_flight = self._in_flight.get(kind)
            if in_flight is None:
                future: Future[str] = Future()
                self._in_flight[kind] = future

        if in_flight is not None:
            logger.debug("token_refresh_joined", kind=kind)
            return in_flight.result()

        try:
            token = self._refresh_and_store(kind)
        except Exception as e:
            token_refreshes.labels(kind=kind, status="failure").inc()
            logger.error("token_refresh_failed", kind=kind, error=str(e))
            future.set_exception(e)
            raise
        else:
            token_refreshes.labels(kind=kind, status="success").inc()
            future.set_result(token)
            return token
        finally:
            with self._lock:
                self._in_flight.pop(kind, None)

    def invalidate(self, kind: str) -> None:
        self.cache.invalidate(kind)

    def _refresh_and_store(self, kind: str) -> str:
        self.cache.invalidate(kind)
        refresher = self.refreshers[kind]

        token, expires_in = refresher()
        expires_at = utc_now() + timedelta(seconds=expires_in) - EXPIRY_MARGIN

        with self.engine.begin() as conn:
            save_channel_token(conn, kind, token, expires_at)

        self.cache.set(kind, token, expires_at)
        logger.info("token_refreshed", kind=kind, expires_at=expires_at.isoformat())
        return token
