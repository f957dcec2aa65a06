"""
Guest account directory: one account per email, created on first paid booking.
"""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from bnb_booking.db.readers.accounts import get_guest_account_id
from bnb_booking.db.writers.accounts import insert_guest_account
from bnb_booking.metrics import db_operations

logger = structlog.get_logger(__name__)


@dataclass
class AccountLink:
    user_id: str
    created: bool


class AccountDirectory:
    def __init__(self, engine: Engine):
        self.engine = engine

    def ensure_account(self, email: str, display_name: str) -> AccountLink:
        """
        Return the account registered with ``email``, creating it if missing.

        Args:
            email: Guest email (case-insensitive)
            display_name: Guest full name, used only when creating

        Returns:
            AccountLink: user_id and whether the account was just created

        Raises:
            ValueError: If email is empty
        """
        if not email or not email.strip():
            raise ValueError("Cannot create an account without an email")

        with self.engine.connect() as conn:
            user_id = get_guest_account_id(conn, email)
        if user_id:
            return AccountLink(user_id=user_id, created=False)

        user_id = uuid.uuid4().hex
        try:
            with self.engine.begin() as conn:
                insert_guest_account(conn, user_id, email, display_name)
        except IntegrityError:
            # Created concurrently by another callback
            with self.engine.connect() as conn:
                existing = get_guest_account_id(conn, email)
            if not existing:
                raise
            return AccountLink(user_id=existing, created=False)

        db_operations.labels(operation="insert", table="guest_accounts").inc()
        return AccountLink(user_id=user_id, created=True)
