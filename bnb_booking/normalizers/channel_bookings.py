"""
Normalize raw channel manager payloads into ``ChannelBooking`` records.

Beds24 and Smoobu describe the same reservation with different field names
and channel identifiers. Everything downstream (reconciliation, dedup) only
sees the normalized shape.
"""

from __future__ import annotations

from typing import Any, Optional

from bnb_booking.config import BEDS24_ROOM_MAP, SMOOBU_ROOM_MAP
from bnb_booking.schemas.bookings import ChannelBooking, Origin

# Smoobu channel ids (apiSourceId)
SMOOBU_CHANNELS: dict[int, Origin] = {
    1: Origin.AIRBNB,
    2: Origin.BOOKING,
    3: Origin.OTHER,  # Vrbo/HomeAway
    4: Origin.OTHER,  # Expedia
    5: Origin.OTHER,  # TripAdvisor
    70: Origin.DIRECT,
}
SMOOBU_DIRECT_CHANNEL = 70

# Beds24 referer names
BEDS24_REFERERS: dict[str, Origin] = {
    "airbnb": Origin.AIRBNB,
    "booking": Origin.BOOKING,
    "booking.com": Origin.BOOKING,
    "direct": Origin.DIRECT,
    "vrbo": Origin.OTHER,
    "expedia": Origin.OTHER,
}

CONFIRMED_STATUSES = {"confirmed", "new", "accepted"}
BLOCKED_STATUS = "blocked"
# Guest first name used for availability blocks created by this service
BLOCK_GUEST_NAME = "BLOCKED"


def is_blocked_status(status: str) -> bool:
    return status.strip().lower() == BLOCKED_STATUS


def classify_origin(record: ChannelBooking) -> Optional[Origin]:
    """
    Map a record's source channel to a booking origin.

    Smoobu records carry a numeric channel id, Beds24 records a referer name.
    Unknown channels return None; they are never guessed.
    """
    if record.channel_id is not None and str(record.channel_id).isdigit():
        return SMOOBU_CHANNELS.get(int(record.channel_id))
    if record.channel_name:
        return BEDS24_REFERERS.get(record.channel_name.strip().lower())
    return None


def is_confirmed_status(status: str) -> bool:
    return status.strip().lower() in CONFIRMED_STATUSES


def _split_guest_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def normalize_smoobu_reservation(raw: dict[str, Any]) -> ChannelBooking:
    """
    Convert a Smoobu reservation payload.

    Args:
        raw: Reservation dict from Smoobu's /reservations endpoint

    Returns:
        ChannelBooking
    """
    guest_first, guest_last = _split_guest_name(
        raw.get("guest-name") or raw.get("guest_name") or ""
    )
    apartment = raw.get("apartment") or {}
    channel = raw.get("channel") or {}
    smoobu_room_id = str(apartment.get("id") or "")
    blocked = (
        raw.get("is-blocked-booking")
        or raw.get("is_blocked_booking")
        or raw.get("firstname") == BLOCK_GUEST_NAME
    )

    return ChannelBooking(
        external_id=str(raw["id"]),
        room_id=SMOOBU_ROOM_MAP.get(smoobu_room_id, smoobu_room_id),
        arrival=raw.get("arrival"),
        departure=raw.get("departure"),
        num_adult=raw.get("adults") or 1,
        num_child=raw.get("children") or 0,
        first_name=raw.get("firstname") or guest_first,
        last_name=raw.get("lastname") or guest_last,
        email=raw.get("email") or "",
        phone=raw.get("phone") or "",
        price=raw.get("price") or 0,
        status=BLOCKED_STATUS if blocked else "confirmed",
        channel_id=str(channel.get("id") or SMOOBU_DIRECT_CHANNEL),
        channel_name=channel.get("name"),
        notes=raw.get("notice") or raw.get("assistant-notice") or "",
        raw=raw,
    )


def normalize_beds24_booking(raw: dict[str, Any]) -> ChannelBooking:
    """
    Convert a Beds24 v2 booking payload.

    Args:
        raw: Booking dict from Beds24's /bookings endpoint

    Returns:
        ChannelBooking
    """
    beds24_room_id = str(raw.get("roomId") or "")
    blocked = raw.get("status") == "black" or raw.get("firstName") == BLOCK_GUEST_NAME

    return ChannelBooking(
        external_id=str(raw["id"]),
        room_id=BEDS24_ROOM_MAP.get(beds24_room_id, beds24_room_id),
        arrival=raw.get("arrival"),
        departure=raw.get("departure"),
        num_adult=raw.get("numAdult") or 1,
        num_child=raw.get("numChild") or 0,
        first_name=raw.get("firstName") or "",
        last_name=raw.get("lastName") or "",
        email=raw.get("email") or "",
        phone=raw.get("phone") or raw.get("mobile") or "",
        price=raw.get("price") or 0,
        status=BLOCKED_STATUS if blocked else str(raw.get("status") or ""),
        channel_id=None,
        channel_name=raw.get("referer") or raw.get("channel") or "",
        notes=raw.get("notes") or "",
        raw=raw,
    )
