"""
Unit tests for services/reconciliation.py against an in-memory Booking Store.
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import Mock

import pytest

from bnb_booking.db.store import BookingStore
from bnb_booking.schemas.bookings import Booking, BookingStatus, ChannelBooking, Origin
from bnb_booking.services.reconciliation import reconcile_batch, to_booking


def channel_record(**overrides: Any) -> ChannelBooking:
    values: dict[str, Any] = {
        "external_id": "X-100",
        "room_id": "1",
        "arrival": "2026-07-01",
        "departure": "2026-07-04",
        "num_adult": 2,
        "first_name": "Marco",
        "last_name": "Bianchi",
        "email": "marco@example.com",
        "price": 540.5,
        "status": "confirmed",
        "channel_id": "2",
    }
    values.update(overrides)
    return ChannelBooking(**values)


@pytest.mark.unit
def test_to_booking_maps_channel_record() -> None:
    booking = to_booking(channel_record())

    assert booking is not None
    assert booking.channel_booking_id == "X-100"
    assert booking.origin == Origin.BOOKING
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.nights == 3
    assert booking.guests == 2
    assert booking.total_amount == 54050
    assert booking.deposit_paid == 0
    assert booking.balance_due == 54050
    assert booking.synced_at is not None


@pytest.mark.unit
def test_to_booking_unconfirmed_status_is_pending() -> None:
    booking = to_booking(channel_record(status="request"))

    assert booking is not None
    assert booking.status == BookingStatus.PENDING


@pytest.mark.unit
def test_to_booking_rejects_bad_dates() -> None:
    assert to_booking(channel_record(departure="2026-07-01")) is None
    assert to_booking(channel_record(arrival=None)) is None


@pytest.mark.unit
def test_sync_twice_imports_once(store: BookingStore) -> None:
    """The same external record imported by two sync runs is stored once."""
    first = reconcile_batch([channel_record()], store, "smoobu")
    second = reconcile_batch([channel_record()], store, "smoobu")

    assert (first.synced, first.skipped, first.total) == (1, 0, 1)
    assert (second.synced, second.skipped, second.total) == (0, 1, 1)
    assert second.breakdown == {"duplicate": 1}
    assert len(store.find_by_channel_id("X-100")) == 1


@pytest.mark.unit
def test_duplicate_inside_one_batch(store: BookingStore) -> None:
    result = reconcile_batch([channel_record(), channel_record()], store, "smoobu")

    assert result.synced == 1
    assert result.skipped == 1


@pytest.mark.unit
def test_same_stay_with_new_external_id_is_duplicate(store: BookingStore) -> None:
    """A record re-issued under a new id (same stay, room and guest) is not imported again."""
    reconcile_batch([channel_record()], store, "smoobu")

    result = reconcile_batch([channel_record(external_id="X-200")], store, "smoobu")

    assert result.synced == 0
    assert result.breakdown == {"duplicate": 1}


@pytest.mark.unit
def test_site_booking_block_is_not_imported(
    store: BookingStore, stored_booking: Callable[..., Booking]
) -> None:
    """The channel block of a paid site booking is deduplicated by its block id."""
    stored_booking(channel_booking_id="B-1")
    block = channel_record(external_id="B-1", first_name="", last_name="PRENOTAZIONE SITO 1")

    result = reconcile_batch([block], store, "smoobu")

    assert result.synced == 0
    assert result.skipped == 1


@pytest.mark.unit
def test_mixed_batch_counts(store: BookingStore) -> None:
    """synced + skipped == total for a batch mixing every kind of record."""
    records: list[Any] = [
        channel_record(external_id="ok-1"),
        channel_record(external_id="blk-1", status="blocked", last_name="Nero"),
        channel_record(external_id="unk-1", channel_id="999", last_name="Gialli"),
        channel_record(external_id="bad-1", departure="garbage", last_name="Blu"),
        {"id": "raw-1", "arrival": "2026-07-01"},
        channel_record(
            external_id="ok-2", channel_id=None, channel_name="Airbnb", last_name="Verdi"
        ),
    ]

    result = reconcile_batch(records, store, "beds24")

    assert result.total == 6
    assert result.synced == 2
    assert result.skipped == 4
    assert result.unrecognized == 1
    assert result.synced + result.skipped == result.total
    assert result.breakdown == {
        "synced": 2,
        "blocked": 1,
        "unrecognized": 1,
        "invalid": 2,
    }


@pytest.mark.unit
def test_dry_run_does_not_write(store: BookingStore) -> None:
    result = reconcile_batch([channel_record()], store, "smoobu", dry_run=True)

    assert result.synced == 1
    assert store.find_by_channel_id("X-100") == []


@pytest.mark.unit
def test_failing_record_does_not_abort_batch(store: BookingStore) -> None:
    flaky = Mock(wraps=store)
    flaky.find_by_channel_id.side_effect = [RuntimeError("db hiccup"), []]
    flaky.find_same_stay.return_value = []

    result = reconcile_batch(
        [channel_record(), channel_record(external_id="X-101", last_name="Neri")], flaky, "smoobu"
    )

    assert result.breakdown == {"error": 1, "synced": 1}
    assert result.synced + result.skipped == result.total
