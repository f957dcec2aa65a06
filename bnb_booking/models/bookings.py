# models/bookings.py

from sqlalchemy import JSON, Column, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from bnb_booking.config import SCHEMA
from bnb_booking.models.base import Base


class Booking(Base):
    """
    ORM model for guest bookings.

    A booking is created by the site checkout flow (status pending) or imported
    from a channel manager (Beds24/Smoobu) by reconciliation. Bookings are never
    deleted; cancellation only flips the status. channel_booking_id holds the
    channel manager's reservation id and is unique when present.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_stay_guest", "check_in", "check_out", "room_id", "last_name"),
        Index("ix_bookings_room_stay", "room_id", "check_in", "check_out"),
        {"schema": SCHEMA},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_booking_id = Column(String, nullable=True, unique=True, index=True)
    channel_id = Column(String, nullable=True)
    channel_name = Column(String, nullable=True)

    room_id = Column(String, nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False)
    nights = Column(Integer, nullable=False)

    total_amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String(3), nullable=False, server_default="EUR")
    deposit_paid = Column(Integer, nullable=False, server_default="0")
    balance_due = Column(Integer, nullable=False, server_default="0")

    origin = Column(String, nullable=False, server_default="site")
    status = Column(String, nullable=False, server_default="pending", index=True)

    payment_reference = Column(String, nullable=True)
    payment_provider = Column(String, nullable=True)
    user_id = Column(String, nullable=True, index=True)

    first_name = Column(String, nullable=False, server_default="")
    last_name = Column(String, nullable=False, server_default="")
    email = Column(String, nullable=False, server_default="")
    phone = Column(String, nullable=False, server_default="")
    notes = Column(Text, nullable=False, server_default="")

    last_refund = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    # Collected payments with their refunded amounts, one entry per gateway charge
    payments = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=True)
