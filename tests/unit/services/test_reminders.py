"""
Unit tests for services/reminders.py.
"""

from __future__ import annotations

from datetime import date
from typing import Callable
from unittest.mock import Mock

import pytest

from bnb_booking.db.store import BookingStore
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.schemas.bookings import Booking, BookingStatus, Origin
from bnb_booking.services.reminders import send_reminders

TODAY = date(2026, 6, 1)


@pytest.fixture
def notifier() -> Mock:
    return Mock(spec=Notifier)


@pytest.mark.unit
def test_reminders_go_out_30_and_7_days_ahead(
    store: BookingStore, stored_booking: Callable[..., Booking], notifier: Mock
) -> None:
    month = stored_booking(check_in=date(2026, 7, 1))
    week = stored_booking(check_in=date(2026, 6, 8), status=BookingStatus.CONFIRMED)
    stored_booking(check_in=date(2026, 6, 9))

    sent = send_reminders(store, notifier, today=TODAY, days_before=[30, 7])

    assert sent == {30: 1, 7: 1}
    reminded = {(c.args[0].id, c.args[1]) for c in notifier.send_stay_reminder.call_args_list}
    assert reminded == {(month.id, 30), (week.id, 7)}


@pytest.mark.unit
def test_unpaid_cancelled_and_ota_bookings_are_skipped(
    store: BookingStore, stored_booking: Callable[..., Booking], notifier: Mock
) -> None:
    check_in = date(2026, 6, 8)
    stored_booking(check_in=check_in, status=BookingStatus.PENDING, deposit_paid=0)
    stored_booking(check_in=check_in, status=BookingStatus.CANCELLED)
    stored_booking(check_in=check_in, origin=Origin.AIRBNB, channel_booking_id="ab-9")

    sent = send_reminders(store, notifier, today=TODAY, days_before=[7])

    assert sent == {7: 0}
    notifier.send_stay_reminder.assert_not_called()


@pytest.mark.unit
def test_failed_reminder_does_not_stop_the_run(
    store: BookingStore, stored_booking: Callable[..., Booking], notifier: Mock
) -> None:
    stored_booking(check_in=date(2026, 6, 8), email="first@example.com")
    stored_booking(check_in=date(2026, 6, 8), email="second@example.com")
    notifier.send_stay_reminder.side_effect = [RuntimeError("resend 500"), None]

    sent = send_reminders(store, notifier, today=TODAY, days_before=[7])

    assert sent == {7: 1}
    assert notifier.send_stay_reminder.call_count == 2
