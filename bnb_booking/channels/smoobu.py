"""
Smoobu channel manager adapter. Authenticates with a static API key.
"""

from datetime import date
from typing import Any, Optional, cast

import structlog

from bnb_booking.channels.base import ChannelManager, ChannelType
from bnb_booking.channels.http import send
from bnb_booking.config import SMOOBU_API_KEY, SMOOBU_API_URL, SMOOBU_ROOM_MAP
from bnb_booking.normalizers.channel_bookings import (
    BLOCK_GUEST_NAME,
    SMOOBU_DIRECT_CHANNEL,
    normalize_smoobu_reservation,
)
from bnb_booking.schemas.bookings import ChannelBooking

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 50


class SmoobuClient(ChannelManager):
    """
    Smoobu adapter.

    Args:
        api_key: Smoobu API key (defaults to SMOOBU_API_KEY)
        room_map: Smoobu apartment id -> local room id
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        room_map: Optional[dict[str, str]] = None,
        base_url: str = SMOOBU_API_URL,
    ):
        self.api_key = api_key or SMOOBU_API_KEY
        if not self.api_key:
            raise ValueError("SMOOBU_API_KEY must be set in the environment")
        self.room_map = SMOOBU_ROOM_MAP if room_map is None else room_map
        self.base_url = base_url.rstrip("/")

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.SMOOBU

    @property
    def headers(self) -> dict[str, str]:
        return {"Api-Key": self.api_key, "Cache-Control": "no-cache"}

    def _apartment_id(self, room_id: str) -> int:
        for smoobu_id, local_id in self.room_map.items():
            if local_id == room_id:
                return int(smoobu_id)
        return int(room_id)

    def fetch_bookings(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        url = f"{self.base_url}/reservations"
        results: list[dict[str, Any]] = []

        for page in range(1, MAX_PAGES + 1):
            params = {
                "from": date_from.isoformat(),
                "to": date_to.isoformat(),
                "pageSize": PAGE_SIZE,
                "page": page,
            }
            res = send("smoobu", "GET", url, "reservations", self.headers, params=params)
            res.raise_for_status()

            body = cast(dict[str, Any], res.json())
            results.extend(body.get("bookings") or [])
            if page >= int(body.get("page_count") or 1):
                break

        logger.info("smoobu_reservations_fetched", count=len(results))
        return results

    def normalize(self, raw: dict[str, Any]) -> ChannelBooking:
        return normalize_smoobu_reservation(raw)

    def block_date_range(
        self,
        room_id: str,
        date_from: date,
        date_to: date,
        reason: str,
    ) -> str | None:
        body = {
            "apartmentId": self._apartment_id(room_id),
            "arrivalDate": date_from.isoformat(),
            "departureDate": date_to.isoformat(),
            "channelId": SMOOBU_DIRECT_CHANNEL,
            "firstName": BLOCK_GUEST_NAME,
            "lastName": reason.upper(),
            "notice": reason,
            "adults": 0,
            "price": 0,
        }
        url = f"{self.base_url}/reservations"
        res = send("smoobu", "POST", url, "reservations", self.headers, json=body)
        res.raise_for_status()

        block_id = res.json().get("id")
        logger.info("smoobu_dates_blocked", room_id=room_id, block_id=block_id)
        return str(block_id) if block_id is not None else None

    def unblock_date_range(self, external_id: str) -> None:
        url = f"{self.base_url}/reservations/{int(external_id)}"
        res = send("smoobu", "DELETE", url, "reservations", self.headers)
        res.raise_for_status()
        logger.info("smoobu_dates_unblocked", block_id=external_id)
