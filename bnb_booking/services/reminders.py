"""
Stay reminders.

Run once a day: every paid or confirmed site booking whose check-in falls
exactly REMINDER_DAYS_BEFORE days from today gets a reminder email. Running
twice on the same day sends twice; the schedule is the only guard.
"""

from datetime import date, timedelta
from functools import partial
from typing import Optional

import structlog

from bnb_booking.config import REMINDER_DAYS_BEFORE
from bnb_booking.db.store import BookingStore
from bnb_booking.metrics import reminders_sent
from bnb_booking.notifications.notifier import Notifier
from bnb_booking.schemas.bookings import Booking, BookingStatus, Origin
from bnb_booking.services.side_effects import run_best_effort
from bnb_booking.utils.datetime import utc_today

logger = structlog.get_logger(__name__)

REMINDED_STATUSES = {BookingStatus.PAID, BookingStatus.CONFIRMED}


def bookings_due(store: BookingStore, check_in: date) -> list[Booking]:
    """Site bookings checking in on ``check_in`` that still expect the guest."""
    return [
        booking
        for booking in store.query_by_fields(check_in=check_in, origin=Origin.SITE)
        if booking.status in REMINDED_STATUSES and booking.email
    ]


def send_reminders(
    store: BookingStore,
    notifier: Notifier,
    today: Optional[date] = None,
    days_before: Optional[list[int]] = None,
) -> dict[int, int]:
    """
    Send the reminders due today.

    Returns:
        dict[int, int]: Reminders sent per number of days before check-in
    """
    today = today or utc_today()
    sent: dict[int, int] = {}
    for days in days_before or REMINDER_DAYS_BEFORE:
        sent[days] = 0
        for booking in bookings_due(store, today + timedelta(days=days)):
            delivered = run_best_effort(
                "notify_reminder",
                partial(_send, notifier, booking, days),
                booking_id=booking.id,
                days_before=days,
            )
            status = "success" if delivered else "failure"
            reminders_sent.labels(days_before=str(days), status=status).inc()
            if delivered:
                sent[days] += 1

    logger.info("reminders_sent", today=today.isoformat(), sent=sent)
    return sent


def _send(notifier: Notifier, booking: Booking, days: int) -> bool:
    notifier.send_stay_reminder(booking, days)
    return True
