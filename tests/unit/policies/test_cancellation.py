"""
Unit tests for policies/cancellation.py.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from bnb_booking.errors import BookingAlreadyStarted
from bnb_booking.policies.cancellation import (
    cancellation_outcome,
    get_policy_description,
    refund_percentage_for,
)


@pytest.mark.unit
def test_free_cancellation_ten_days_ahead(now: datetime) -> None:
    outcome = cancellation_outcome(date(2026, 6, 11), 20000, now)

    assert outcome.refund_amount == 20000
    assert outcome.penalty_amount == 0
    assert outcome.refund_percentage == 100
    assert outcome.days_until_check_in == 10


@pytest.mark.unit
def test_late_cancellation_three_days_ahead(now: datetime) -> None:
    outcome = cancellation_outcome(date(2026, 6, 4), 20000, now)

    assert outcome.refund_amount == 0
    assert outcome.penalty_amount == 20000
    assert outcome.refund_percentage == 0
    assert outcome.days_until_check_in == 3


@pytest.mark.unit
def test_refund_plus_penalty_equals_total(now: datetime) -> None:
    """For every lead time and amount, nothing is lost or created."""
    for days in range(0, 30):
        for total in (0, 1, 9999, 20000, 54321):
            outcome = cancellation_outcome(now.date() + timedelta(days=days), total, now)
            assert outcome.refund_amount + outcome.penalty_amount == total
            assert outcome.refund_amount >= 0
            assert outcome.penalty_amount >= 0


@pytest.mark.unit
def test_cancellation_on_check_in_day_is_allowed(now: datetime) -> None:
    """Check-in today (already started at midnight) counts as 0 days, not refused."""
    outcome = cancellation_outcome(now.date(), 20000, now)

    assert outcome.days_until_check_in == 0
    assert outcome.refund_amount == 0


@pytest.mark.unit
def test_cancellation_after_check_in_is_refused(now: datetime) -> None:
    with pytest.raises(BookingAlreadyStarted):
        cancellation_outcome(now.date() - timedelta(days=1), 20000, now)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("days", "expected"),
    [(30, 100), (7, 100), (6, 0), (0, 0)],
)
def test_refund_percentage_tiers(days: int, expected: int) -> None:
    assert refund_percentage_for(days) == expected


@pytest.mark.unit
def test_policy_description_mentions_threshold() -> None:
    assert "7 giorni" in get_policy_description()
