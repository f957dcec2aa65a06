"""SQLAlchemy model for guest accounts linked to paid bookings."""

from sqlalchemy import Column, DateTime, String, func

from bnb_booking.config import SCHEMA
from bnb_booking.models.base import Base


class GuestAccount(Base):
    """
    ORM model for guest accounts.

    An account is created the first time a guest's booking is paid, keyed by
    email, so the guest can later log in and manage their bookings.
    """

    __tablename__ = "guest_accounts"
    __table_args__ = {"schema": SCHEMA}

    user_id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=False, server_default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
