"""Base channel manager interface.

Adapters only talk to the channel manager API and normalize its payloads.
Dedup, origin classification and persistence live in reconciliation.
"""

from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any

import structlog

from bnb_booking.schemas.bookings import ChannelBooking

logger = structlog.get_logger(__name__)


class ChannelType(str, Enum):
    """Supported channel managers."""

    BEDS24 = "beds24"
    SMOOBU = "smoobu"


class ChannelManager(ABC):
    """Abstract base class for channel managers."""

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel manager type."""
        pass

    @abstractmethod
    def fetch_bookings(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        """Fetch raw booking payloads with arrival in [date_from, date_to]."""
        pass

    @abstractmethod
    def normalize(self, raw: dict[str, Any]) -> ChannelBooking:
        """Convert one raw payload into a ChannelBooking."""
        pass

    def list_bookings(
        self, date_from: date, date_to: date
    ) -> list[ChannelBooking | dict[str, Any]]:
        """List bookings with arrival in [date_from, date_to].

        Payloads that cannot be normalized are returned as raw dicts so
        reconciliation counts them as skipped instead of failing the batch.

        Raises:
            requests.RequestException: If the batch fetch fails
        """
        records: list[ChannelBooking | dict[str, Any]] = []
        for raw in self.fetch_bookings(date_from, date_to):
            try:
                records.append(self.normalize(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "channel_record_unparseable",
                    channel=self.channel_type.value,
                    external_id=raw.get("id"),
                    error=str(e),
                )
                records.append(raw)
        return records

    @abstractmethod
    def block_date_range(
        self,
        room_id: str,
        date_from: date,
        date_to: date,
        reason: str,
    ) -> str | None:
        """Mark a room unavailable on every connected channel.

        Args:
            room_id: Local room id
            date_from: First blocked night
            date_to: Departure date of the block (exclusive)
            reason: Free-text reason shown in the channel manager

        Returns:
            The channel manager's id for the block, if it reports one
        """
        pass

    @abstractmethod
    def unblock_date_range(self, external_id: str) -> None:
        """Remove a block previously created with block_date_range."""
        pass
