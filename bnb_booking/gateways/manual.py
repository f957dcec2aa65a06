"""Manual payment gateway adapter for bank transfers."""

from bnb_booking.config import SITE_URL
from bnb_booking.gateways.base import (
    ChargeResult,
    GatewayType,
    PaymentGateway,
    PaymentStatus,
    RefundResult,
)
from bnb_booking.metrics import payment_operations


class ManualGateway(PaymentGateway):
    """Manual payment gateway for bank transfers.

    Charges and refunds are recorded as pending and settled by the owner;
    the payment callback is posted once the transfer is seen on the account.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

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
        """Create manual payment request (always succeeds)."""
        payment_operations.labels(provider="manual", operation="charge", status="success").inc()
        return ChargeResult(
            success=True,
            payment_reference=f"manual_{booking_ref}",
            redirect_url=f"{SITE_URL}/checkout/bonifico?booking={booking_ref}",
            raw_response={
                "type": "bank_transfer",
                "status": "pending_verification",
                "amount": amount,
                "currency": currency,
            },
        )

    def create_refund(
        self,
        payment_reference: str,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Process manual refund (requires owner action)."""
        payment_operations.labels(provider="manual", operation="refund", status="success").inc()
        return RefundResult(
            success=True,
            refund_id=f"refund_{idempotency_key or payment_reference}",
            raw_response={
                "type": "manual_refund",
                "status": "pending",
                "amount": amount,
                "reason": reason,
            },
        )

    def get_status(self, payment_reference: str) -> PaymentStatus:
        """Manual payments are only known once the owner confirms them."""
        return PaymentStatus(
            paid=False,
            payment_reference=payment_reference,
            status="pending_verification",
        )
