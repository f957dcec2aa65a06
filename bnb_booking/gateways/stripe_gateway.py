"""Stripe payment gateway adapter (Checkout Sessions)."""

from typing import Optional

import stripe
import structlog

from bnb_booking.config import STRIPE_SECRET_KEY
from bnb_booking.gateways.base import (
    ChargeResult,
    GatewayType,
    PaymentGateway,
    PaymentStatus,
    RefundResult,
)
from bnb_booking.metrics import payment_operations

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    """Stripe payment gateway implementation."""

    def __init__(self, secret_key: Optional[str] = None):
        self.secret_key = secret_key or STRIPE_SECRET_KEY

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

    def _record(self, operation: str, success: bool) -> None:
        payment_operations.labels(
            provider="stripe", operation=operation, status="success" if success else "failure"
        ).inc()

    def _payment_intent_id(self, payment_reference: str) -> str:
        """Resolve a Checkout Session reference to its PaymentIntent."""
        if not payment_reference.startswith("cs_"):
            return payment_reference
        session = stripe.checkout.Session.retrieve(payment_reference, api_key=self.secret_key)
        return str(session.payment_intent)

    def create_charge(
        self,
        amount: int,
        currency: str,
        booking_ref: str,
        description: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        """Create a Stripe Checkout Session."""
        if not self.secret_key:
            self._record("charge", False)
            return ChargeResult(success=False, error_message="Stripe not configured")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": amount,
                            "product_data": {"name": description},
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=booking_ref,
                metadata={"booking_id": booking_ref, **(metadata or {})},
            )
        except stripe.StripeError as e:
            logger.error("stripe_charge_failed", booking_id=booking_ref, error=str(e))
            self._record("charge", False)
            return ChargeResult(success=False, error_message=str(e))

        self._record("charge", True)
        return ChargeResult(
            success=True,
            payment_reference=session.id,
            redirect_url=session.url,
            raw_response={"id": session.id, "status": session.status},
        )

    def create_refund(
        self,
        payment_reference: str,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Process Stripe refund."""
        if not self.secret_key:
            self._record("refund", False)
            return RefundResult(success=False, error_message="Stripe not configured")

        options = {"idempotency_key": idempotency_key} if idempotency_key else {}
        try:
            refund = stripe.Refund.create(
                api_key=self.secret_key,
                payment_intent=self._payment_intent_id(payment_reference),
                amount=amount,
                reason="requested_by_customer",
                metadata={"reason": reason[:500]},
                **options,
            )
        except stripe.StripeError as e:
            logger.error("stripe_refund_failed", payment_reference=payment_reference, error=str(e))
            self._record("refund", False)
            return RefundResult(success=False, error_message=str(e))

        success = refund.status in ("succeeded", "pending")
        self._record("refund", success)
        return RefundResult(
            success=success,
            refund_id=refund.id,
            error_message=None if success else f"Refund status {refund.status}",
            raw_response={"status": refund.status, "id": refund.id},
        )

    def get_status(self, payment_reference: str) -> PaymentStatus:
        """Verify Stripe payment status."""
        try:
            if payment_reference.startswith("cs_"):
                session = stripe.checkout.Session.retrieve(
                    payment_reference, api_key=self.secret_key
                )
                status = session.payment_status
                paid = status == "paid"
            else:
                intent = stripe.PaymentIntent.retrieve(payment_reference, api_key=self.secret_key)
                status = intent.status
                paid = status == "succeeded"
        except stripe.StripeError as e:
            self._record("status", False)
            return PaymentStatus(
                paid=False, payment_reference=payment_reference, error_message=str(e)
            )

        self._record("status", True)
        return PaymentStatus(paid=paid, payment_reference=payment_reference, status=status)
