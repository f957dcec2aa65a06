"""
Beds24 (API v2) channel manager adapter.

Reads use the long-lived read token. Writes use a short-lived write token
obtained from the refresh token and managed by ``TokenProvider``; a 401 on a
write refreshes it once and resends.
"""

from datetime import date
from typing import Any, Optional, cast

import requests
import structlog

from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.channels.http import REQUEST_TIMEOUT, send
from bnb_booking.config import (
    BEDS24_API_URL,
    BEDS24_READ_TOKEN,
    BEDS24_REFRESH_TOKEN,
    BEDS24_ROOM_MAP,
)
from bnb_booking.network.auth import TokenProvider
from bnb_booking.normalizers.channel_bookings import BLOCK_GUEST_NAME, normalize_beds24_booking
from bnb_booking.schemas.bookings import ChannelBooking

logger = structlog.get_logger(__name__)

WRITE_TOKEN_KIND = "beds24_write"
MAX_PAGES = 50


def refresh_write_token() -> tuple[str, int]:
    """
    Exchange the Beds24 refresh token for a new write token.

    Returns:
        tuple[str, int]: (token, expires_in seconds)

    Raises:
        ValueError: If BEDS24_REFRESH_TOKEN is not configured
        requests.HTTPError: If Beds24 rejects the refresh token
    """
    if not BEDS24_REFRESH_TOKEN:
        raise ValueError("BEDS24_REFRESH_TOKEN must be set to write to Beds24")

    res = requests.post(
        f"{BEDS24_API_URL}/authentication/token",
        headers={"refreshToken": BEDS24_REFRESH_TOKEN},
        timeout=REQUEST_TIMEOUT,
    )
    res.raise_for_status()
    data = res.json()
    return str(data["token"]), int(data["expiresIn"])


class Beds24Client(ChannelManager):
    """
    Beds24 adapter.

    Args:
        token_provider: Provider registered with a ``beds24_write`` refresher
        read_token: Long-lived read token (defaults to BEDS24_READ_TOKEN)
        room_map: Beds24 room id -> local room id
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        read_token: Optional[str] = None,
        room_map: Optional[dict[str, str]] = None,
        base_url: str = BEDS24_API_URL,
    ):
        self.token_provider = token_provider
        self.read_token = read_token or BEDS24_READ_TOKEN
        if not self.read_token:
            raise ValueError("BEDS24_READ_TOKEN must be set in the environment")
        self.room_map = BEDS24_ROOM_MAP if room_map is None else room_map
        self.base_url = base_url.rstrip("/")

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.BEDS24

    def _channel_room_id(self, room_id: str) -> str:
        for beds24_id, local_id in self.room_map.items():
            if local_id == room_id:
                return beds24_id
        return room_id

    def _write(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}/{endpoint}"
        name = endpoint.split("/")[0]
        token = self.token_provider.get_valid_token(WRITE_TOKEN_KIND)

        res = send("beds24", method, url, name, {"token": token}, params, body)
        if res.status_code == 401:
            logger.warning("beds24_write_token_rejected", endpoint=endpoint)
            token = self.token_provider.refresh(WRITE_TOKEN_KIND, prev_token=token)
            res = send("beds24", method, url, name, {"token": token}, params, body)
            res.raise_for_status()
        return res

    def fetch_bookings(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        url = f"{self.base_url}/bookings"
        headers = {"token": self.read_token}
        results: list[dict[str, Any]] = []

        for page in range(1, MAX_PAGES + 1):
            params = {
                "arrivalFrom": date_from.isoformat(),
                "arrivalTo": date_to.isoformat(),
                "page": page,
            }
            res = send("beds24", "GET", url, "bookings", headers, params=params)
            # The read token is static; a 401 means it was revoked
            res.raise_for_status()

            body = cast(dict[str, Any], res.json())
            results.extend(body.get("data") or [])
            if not (body.get("pages") or {}).get("nextPageExists"):
                break

        logger.info("beds24_bookings_fetched", count=len(results))
        return results

    def normalize(self, raw: dict[str, Any]) -> ChannelBooking:
        return normalize_beds24_booking(raw)

    def block_date_range(
        self,
        room_id: str,
        date_from: date,
        date_to: date,
        reason: str,
    ) -> str | None:
        body = [
            {
                "roomId": self._channel_room_id(room_id),
                "arrival": date_from.isoformat(),
                "departure": date_to.isoformat(),
                "status": "black",
                "notes": reason,
                "firstName": BLOCK_GUEST_NAME,
                "lastName": reason.upper(),
            }
        ]
        res = self._write("POST", "bookings", body)

        data = res.json()
        first = data[0] if isinstance(data, list) and data else {}
        block_id = (first.get("new") or {}).get("id")

        logger.info("beds24_dates_blocked", room_id=room_id, block_id=block_id)
        return str(block_id) if block_id is not None else None

    def unblock_date_range(self, external_id: str) -> None:
        self._write("DELETE", "bookings", params={"id": external_id})
        logger.info("beds24_dates_unblocked", block_id=external_id)
