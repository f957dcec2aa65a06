"""SQLAlchemy model for persisted channel manager access tokens."""

from sqlalchemy import TIMESTAMP, Column, DateTime, String, func

from bnb_booking.config import SCHEMA
from bnb_booking.models.base import Base


class ChannelToken(Base):
    """
    ORM model for channel manager access tokens.

    One row per token kind (e.g. "beds24_write"). Tokens survive process
    restarts so short-lived serverless invocations do not refresh on every call.
    """

    __tablename__ = "channel_tokens"
    __table_args__ = {"schema": SCHEMA}

    kind = Column(String, primary_key=True)
    token = Column(String, nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
