"""
Refunds against the payments a booking collected.

A booking collects one payment at checkout (the deposit) and one more for
every paid modification. A gateway refunds at most what a single charge
collected, so a refund is split across the payments, newest first, each part
capped at what that payment still holds.

Every part carries an idempotency key derived from the booking, the payment
and what was already refunded from it: two requests racing to refund the same
thing send the same key and the gateway issues the refund once.
"""

from __future__ import annotations

from functools import partial
from typing import Optional

import structlog

from bnb_booking.gateways.base import PaymentGateway
from bnb_booking.schemas.bookings import Booking, PaymentRecord, RefundPart, RefundRecord
from bnb_booking.services.side_effects import run_best_effort
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def collected_payments(booking: Booking) -> list[PaymentRecord]:
    """Payments of the booking, oldest first."""
    if booking.payments:
        return list(booking.payments)
    if booking.payment_reference and booking.deposit_paid > 0:
        # Bookings paid before payments were itemized only know their deposit
        return [
            PaymentRecord(
                reference=booking.payment_reference,
                amount=booking.deposit_paid,
                provider=booking.payment_provider,
                at=booking.paid_at,
            )
        ]
    return []


def refundable_amount(booking: Booking, owed: int) -> int:
    """Part of ``owed`` that can go back through the gateway."""
    available = sum(payment.refundable for payment in collected_payments(booking))
    return max(0, min(owed, available))


def allocate_refund(payments: list[PaymentRecord], amount: int) -> list[tuple[int, int]]:
    """
    Split ``amount`` across payments, newest first.

    Returns:
        list[tuple[int, int]]: (index into ``payments``, amount) per part
    """
    parts: list[tuple[int, int]] = []
    remaining = amount
    for index in reversed(range(len(payments))):
        if remaining <= 0:
            break
        part = min(remaining, payments[index].refundable)
        if part > 0:
            parts.append((index, part))
            remaining -= part
    return parts


def refund_idempotency_key(
    booking_id: int, reason: str, index: int, payment: PaymentRecord, amount: int
) -> str:
    return f"booking-{booking_id}-{reason}-{index}-{payment.reference}-{payment.refunded}-{amount}"


def refund_payment(
    booking: Booking, amount: int, reason: str, gateway: PaymentGateway
) -> tuple[Optional[RefundRecord], list[PaymentRecord]]:
    """
    Refund ``amount`` against the booking's payments (best-effort).

    Failed parts are logged and flagged on the record for manual handling;
    they are not counted as refunded in the returned ledger.

    Args:
        booking: Booking as currently stored
        amount: Amount to refund in minor units, already capped by ``refundable_amount``
        reason: 'cancellation' or 'date_change'
        gateway: Payment gateway

    Returns:
        tuple: The refund record (None if nothing was refunded) and the
        booking's payment ledger after the refund
    """
    payments = collected_payments(booking)
    allocation = allocate_refund(payments, amount)
    if not allocation:
        return None, list(booking.payments)

    booking_id = booking.stored_id
    parts: list[RefundPart] = []
    for index, part_amount in allocation:
        payment = payments[index]
        key = refund_idempotency_key(booking_id, reason, index, payment, part_amount)
        result = run_best_effort(
            "refund",
            partial(
                gateway.create_refund,
                payment.reference,
                part_amount,
                reason,
                idempotency_key=key,
            ),
            booking_id=booking_id,
            amount=part_amount,
            payment_reference=payment.reference,
        )
        failed = result is None or not result.success
        if failed:
            logger.error(
                "refund_failed",
                booking_id=booking_id,
                amount=part_amount,
                payment_reference=payment.reference,
                error=getattr(result, "error_message", None),
            )
        else:
            payments[index] = payment.model_copy(
                update={"refunded": payment.refunded + part_amount}
            )
        parts.append(
            RefundPart(
                payment_reference=payment.reference,
                amount=part_amount,
                refund_id=None if result is None else result.refund_id,
                failed=failed,
            )
        )

    record = RefundRecord(
        amount=sum(part.amount for part in parts),
        reason=reason,
        refund_id=next((part.refund_id for part in parts if part.refund_id), None),
        failed=any(part.failed for part in parts),
        at=utc_now(),
        parts=parts,
    )
    logger.info(
        "refund_issued",
        booking_id=booking_id,
        amount=record.amount,
        parts=len(parts),
        failed=record.failed,
    )
    return record, payments
