"""
Booking reconciliation: import channel manager bookings without duplicates.

Each record is classified, parsed and deduplicated against the Booking Store
on its own; a bad record is counted as skipped and never aborts the batch.
"""

from collections import Counter
from decimal import Decimal
from typing import Any, Optional, Union

import structlog

from bnb_booking.db.store import BookingStore
from bnb_booking.metrics import records_reconciled
from bnb_booking.normalizers.channel_bookings import (
    classify_origin,
    is_blocked_status,
    is_confirmed_status,
)
from bnb_booking.policies.pricing import round_half_up
from bnb_booking.schemas.bookings import Booking, BookingStatus, ChannelBooking, ReconcileResult
from bnb_booking.utils.datetime import parse_channel_date, utc_now

logger = structlog.get_logger(__name__)

ChannelRecord = Union[ChannelBooking, dict[str, Any]]

SYNCED = "synced"
DUPLICATE = "duplicate"
UNRECOGNIZED = "unrecognized"
INVALID = "invalid"
BLOCKED = "blocked"
ERROR = "error"


def to_booking(record: ChannelBooking, currency: str = "EUR") -> Optional[Booking]:
    """
    Build the Booking to store for a channel record.

    Returns None when the channel is not recognized or the stay dates are
    missing or unparseable.
    """
    origin = classify_origin(record)
    if origin is None:
        return None

    check_in = parse_channel_date(record.arrival)
    check_out = parse_channel_date(record.departure)
    if check_in is None or check_out is None or check_out <= check_in:
        return None

    total = round_half_up(Decimal(str(record.price or 0)) * 100)
    confirmed = is_confirmed_status(record.status)
    now = utc_now()

    return Booking(
        channel_booking_id=record.external_id,
        channel_id=record.channel_id,
        channel_name=record.channel_name,
        room_id=record.room_id,
        check_in=check_in,
        check_out=check_out,
        guests=max(1, record.num_adult + record.num_child),
        nights=(check_out - check_in).days,
        total_amount=total,
        currency=currency,
        # Paid to the channel, not through this site
        deposit_paid=0,
        balance_due=total,
        origin=origin,
        status=BookingStatus.CONFIRMED if confirmed else BookingStatus.PENDING,
        first_name=record.first_name,
        last_name=record.last_name,
        email=record.email,
        phone=record.phone,
        notes=record.notes,
        created_at=now,
        synced_at=now,
    )


def _is_duplicate(store: BookingStore, booking: Booking) -> bool:
    if store.find_by_channel_id(str(booking.channel_booking_id)):
        return True
    return bool(
        store.find_same_stay(
            booking.check_in, booking.check_out, booking.room_id, booking.last_name
        )
    )


def _reconcile_record(
    record: ChannelRecord, store: BookingStore, channel: str, dry_run: bool
) -> str:
    if not isinstance(record, ChannelBooking):
        return INVALID
    if is_blocked_status(record.status):
        return BLOCKED

    if classify_origin(record) is None:
        logger.info(
            "channel_record_unrecognized",
            channel=channel,
            external_id=record.external_id,
            channel_id=record.channel_id,
            channel_name=record.channel_name,
        )
        return UNRECOGNIZED

    booking = to_booking(record)
    if booking is None:
        logger.warning(
            "channel_record_invalid_dates",
            channel=channel,
            external_id=record.external_id,
            arrival=record.arrival,
            departure=record.departure,
        )
        return INVALID

    if _is_duplicate(store, booking):
        return DUPLICATE

    if dry_run:
        logger.info("[DRY RUN] Would import booking", external_id=record.external_id)
        return SYNCED

    booking_id = store.insert(booking)
    logger.info(
        "channel_booking_imported",
        channel=channel,
        booking_id=booking_id,
        external_id=record.external_id,
        origin=booking.origin.value,
    )
    return SYNCED


def reconcile_batch(
    records: list[ChannelRecord],
    store: BookingStore,
    channel: str,
    dry_run: bool = False,
) -> ReconcileResult:
    """
    Import a batch of channel records into the Booking Store.

    Records are processed one at a time, in order, so that a duplicate pair
    inside the same batch is caught by the second record's dedup lookup.

    Args:
        records: Normalized records (raw dicts for payloads that failed normalization)
        store: Booking Store
        channel: Channel manager name, used in logs and metrics
        dry_run: If True, count would-be imports without writing

    Returns:
        ReconcileResult: synced + skipped == total; unrecognized records are also skipped
    """
    outcomes: Counter[str] = Counter()

    for record in records:
        try:
            outcome = _reconcile_record(record, store, channel, dry_run)
        except Exception as e:
            external_id = (
                record.external_id if isinstance(record, ChannelBooking) else record.get("id")
            )
            logger.exception(
                "channel_record_failed", channel=channel, external_id=external_id, error=str(e)
            )
            outcome = ERROR

        outcomes[outcome] += 1
        records_reconciled.labels(channel=channel, outcome=outcome).inc()

    synced = outcomes[SYNCED]
    result = ReconcileResult(
        synced=synced,
        skipped=len(records) - synced,
        unrecognized=outcomes[UNRECOGNIZED],
        total=len(records),
        breakdown=dict(outcomes),
    )

    logger.info("reconcile_completed", channel=channel, dry_run=dry_run, **result.model_dump())
    return result
