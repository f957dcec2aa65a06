"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
Adapters never retry a charge or refund on their own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    STRIPE = "stripe"
    MANUAL = "manual"


@dataclass
class ChargeResult:
    """Result of a charge request."""

    success: bool
    payment_reference: str | None = None
    redirect_url: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class PaymentStatus:
    """Current status of a payment."""

    paid: bool
    payment_reference: str
    status: str | None = None
    error_message: str | None = None


@dataclass
class RefundResult:
    """Result of a refund operation."""

    success: bool
    refund_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
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
        """Start collecting a payment from the guest.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            booking_ref: Internal booking id
            description: Line item shown to the guest
            success_url: Where the guest lands after paying
            cancel_url: Where the guest lands after abandoning
            metadata: Echoed back on the payment callback

        Returns:
            ChargeResult with the payment reference and checkout redirect
        """
        pass

    @abstractmethod
    def create_refund(
        self,
        payment_reference: str,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> RefundResult:
        """Refund part or all of a captured payment.

        Args:
            payment_reference: Reference of the original payment
            amount: Refund amount in minor currency units
            reason: Refund reason
            idempotency_key: Repeating a request with the same key returns the
                first refund instead of issuing a second one

        Returns:
            RefundResult with refund details
        """
        pass

    @abstractmethod
    def get_status(self, payment_reference: str) -> PaymentStatus:
        """Look up whether a payment has been captured."""
        pass
