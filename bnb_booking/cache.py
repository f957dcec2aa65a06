"""
In-memory token cache with per-token expiry.

Holds channel manager access tokens so that every request does not hit the
database. Entries are dropped once their expiry passes or when a token is
refreshed. The database copy (channel_tokens table) stays authoritative.
"""

from __future__ import annotations

import threading
from datetime import datetime

from bnb_booking.utils.datetime import utc_now


class TokenCache:
    """
    Thread-safe in-memory token cache keyed by token kind.

    Example:
        >>> cache = TokenCache()
        >>> cache.set("beds24_write", "token-abc-123", expires_at)
        >>> token = cache.get("beds24_write")
        >>> cache.invalidate("beds24_write")
    """

    def __init__(self) -> None:
        self._cache: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, kind: str) -> str | None:
        """
        Get cached token if not expired.

        Args:
            kind: Token kind

        Returns:
            Cached token string if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._cache.get(kind)
            if entry is None:
                return None
            token, expires_at = entry
            if utc_now() < expires_at:
                return token
            del self._cache[kind]
            return None

    def set(self, kind: str, token: str, expires_at: datetime) -> None:
        with self._lock:
            self._cache[kind] = (token, expires_at)

    def invalidate(self, kind: str) -> None:
        """Remove a token from cache, e.g. after the API rejected it."""
        with self._lock:
            self._cache.pop(kind, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)
