from sqlalchemy import Column, Date, DateTime, Integer, String
from sqlalchemy.sql import func

from bnb_booking.config import SCHEMA
from bnb_booking.models.base import Base


class BlockedDateRange(Base):
    """
    ORM model for manually blocked date ranges.

    Marks a room unavailable independent of any booking. Created by admin
    action and mirrored to the channel manager; channel_block_id is the id of
    the blocking reservation on the channel side.
    """

    __tablename__ = "blocked_date_ranges"
    __table_args__ = {"schema": SCHEMA}

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(String, nullable=False, index=True)
    date_from = Column(Date, nullable=False)
    date_to = Column(Date, nullable=False)
    reason = Column(String, nullable=False, server_default="")
    channel_block_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
