"""
Pydantic schemas for bookings and booking operations.

Rows read from the Booking Store are parsed through ``Booking`` before any
policy sees them, so a record with missing or inconsistent fields fails at the
store boundary instead of deep inside a pricing calculation.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BookingStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Origin(str, Enum):
    SITE = "site"
    BOOKING = "booking"
    AIRBNB = "airbnb"
    DIRECT = "direct"
    OTHER = "other"


class PaymentKind(str, Enum):
    DEPOSIT = "deposit"
    CHANGE_DATES = "change_dates"
    ADD_GUEST = "add_guest"


class PaymentRecord(BaseModel):
    """One amount the booking collected through the payment gateway."""

    reference: str
    amount: int = Field(..., ge=0, description="Collected amount in minor units")
    refunded: int = Field(0, ge=0)
    kind: PaymentKind = PaymentKind.DEPOSIT
    provider: Optional[str] = None
    at: Optional[datetime] = None

    @property
    def refundable(self) -> int:
        return max(0, self.amount - self.refunded)


class RefundPart(BaseModel):
    """Refund issued against a single payment."""

    payment_reference: str
    amount: int = Field(..., ge=0)
    refund_id: Optional[str] = None
    failed: bool = False


class RefundRecord(BaseModel):
    amount: int = Field(..., ge=0, description="Refunded amount in minor units")
    reason: str
    refund_id: Optional[str] = None
    failed: bool = False
    at: datetime
    parts: list[RefundPart] = Field(default_factory=list)


class Booking(BaseModel):
    """
    A stay in one room, as stored in the Booking Store.

    All amounts are integers in minor currency units (cents).
    """

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    channel_booking_id: Optional[str] = None
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None

    room_id: str
    check_in: date
    check_out: date
    guests: int = Field(..., ge=1)
    nights: int = Field(..., ge=1)

    total_amount: int = Field(..., ge=0)
    currency: str = "EUR"
    deposit_paid: int = Field(0, ge=0)
    balance_due: int = Field(0, ge=0)

    origin: Origin = Origin.SITE
    status: BookingStatus = BookingStatus.PENDING

    payment_reference: Optional[str] = None
    payment_provider: Optional[str] = None
    user_id: Optional[str] = None

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    notes: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    last_refund: Optional[RefundRecord] = None
    payments: list[PaymentRecord] = Field(default_factory=list)

    @field_validator("payments", mode="before")
    @classmethod
    def payments_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def check_stay_and_money(self) -> "Booking":
        stay_days = (self.check_out - self.check_in).days
        if stay_days < 1:
            raise ValueError("check_out must be at least one day after check_in")
        if self.nights != stay_days:
            raise ValueError(f"nights={self.nights} does not match the {stay_days}-day stay")
        if self.deposit_paid + self.balance_due != self.total_amount:
            raise ValueError("deposit_paid + balance_due must equal total_amount")
        return self

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @property
    def stored_id(self) -> int:
        """
        Raises:
            ValueError: If the booking was never inserted into the store
        """
        if self.id is None:
            raise ValueError("Booking has no id; insert it into the store first")
        return self.id


class RoomRate(BaseModel):
    """
    Nightly pricing of a room, amounts in minor units.

    Rates may carry fractions of a cent (e.g. seasonal percentage discounts);
    the stay total is rounded once, never per night.
    """

    room_id: str
    name: str = ""
    max_guests: int = Field(..., ge=1)
    base_occupancy: int = Field(2, ge=1)
    nightly_rate: Decimal = Field(..., ge=0)
    extra_guest_rate: Decimal = Field(Decimal("0"), ge=0)


class BlockedDateRange(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    room_id: str
    date_from: date
    date_to: date
    reason: str = ""
    channel_block_id: Optional[str] = None


# =============================================================================
# Policy outputs
# =============================================================================


class DateChangeQuote(BaseModel):
    new_check_in: date
    new_check_out: date
    nights: int
    original_amount: int
    new_base_amount: int
    penalty: int
    delta: int
    deposit_due: int = 0
    balance_due: int = 0

    @property
    def new_total_amount(self) -> int:
        return self.original_amount + self.delta


class GuestChangeQuote(BaseModel):
    new_guests: int
    original_amount: int
    price_difference: int
    deposit_due: int = 0
    balance_due: int = 0

    @property
    def new_total_amount(self) -> int:
        return self.original_amount + self.price_difference


class StayQuote(BaseModel):
    """Price of a new stay with its deposit/balance split."""

    room_id: str
    check_in: date
    check_out: date
    guests: int
    nights: int
    total_amount: int
    deposit_due: int
    balance_due: int
    currency: str = "EUR"


class Availability(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    available: bool
    conflicting_booking_ids: list[int] = Field(default_factory=list)
    blocked: bool = False


class CancellationOutcome(BaseModel):
    refund_amount: int
    penalty_amount: int
    refund_percentage: int
    days_until_check_in: int


class ReconcileResult(BaseModel):
    synced: int = 0
    skipped: int = 0
    unrecognized: int = 0
    total: int = 0
    breakdown: dict[str, int] = Field(default_factory=dict)


# =============================================================================
# Operation results
# =============================================================================


class ModificationStatus(str, Enum):
    APPLIED = "applied"
    PAYMENT_REQUIRED = "payment_required"
    UNCHANGED = "unchanged"


class ModificationResult(BaseModel):
    """
    Outcome of a date or guest change.

    ``payment_required`` means nothing was committed yet: the guest must pay
    ``quote.deposit_due`` at ``redirect_url`` and the change is applied when
    the payment callback arrives.
    """

    status: ModificationStatus
    booking: Booking
    quote: Optional[Union[DateChangeQuote, GuestChangeQuote]] = None
    redirect_url: Optional[str] = None
    payment_reference: Optional[str] = None
    refund: Optional[RefundRecord] = None


class CancellationResult(BaseModel):
    booking: Booking
    outcome: CancellationOutcome
    refund: Optional[RefundRecord] = None


class CheckoutResult(BaseModel):
    """A pending site booking and the checkout where the guest pays its deposit."""

    booking: Booking
    quote: StayQuote
    redirect_url: Optional[str] = None
    payment_reference: Optional[str] = None


class PaymentCallbackResult(BaseModel):
    booking: Booking
    changed: bool
    modification: Optional[ModificationResult] = None


# =============================================================================
# Channel manager records
# =============================================================================


class ChannelBooking(BaseModel):
    """A booking as reported by a channel manager, before reconciliation."""

    external_id: str
    room_id: str
    arrival: Optional[str] = None
    departure: Optional[str] = None
    num_adult: int = 1
    num_child: int = 0
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    price: float = 0
    status: str = ""
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None
    notes: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Request payloads
# =============================================================================


class DateChangeRequest(BaseModel):
    check_in: date = Field(..., description="New check-in date")
    check_out: date = Field(..., description="New check-out date")


class GuestChangeRequest(BaseModel):
    guests: int = Field(..., ge=1, description="New total number of guests")
    guest_names: list[str] = Field(default_factory=list, description="Names of the added guests")


class PaymentCallback(BaseModel):
    booking_id: int
    payment_reference: str
    provider: str = "stripe"
    status: str = Field("paid", description="Provider payment status")
    metadata: dict[str, str] = Field(default_factory=dict)


class SyncRequest(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class BlockDatesRequest(BaseModel):
    room_id: str
    date_from: date
    date_to: date
    reason: str = "manual"


class StayQuoteRequest(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    guests: int = Field(..., ge=1)


class SiteBookingRequest(StayQuoteRequest):
    """Guest details submitted by the site's booking form."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str = ""
    notes: str = Field("", max_length=2000)
