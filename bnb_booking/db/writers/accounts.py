from datetime import datetime

import structlog
from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection

from bnb_booking.models.channel_tokens import ChannelToken
from bnb_booking.models.guest_accounts import GuestAccount
from bnb_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def save_channel_token(conn: Connection, kind: str, token: str, expires_at: datetime) -> None:
    """
    Insert or replace the persisted token of the given kind.

    A single INSERT ... ON CONFLICT (kind) DO UPDATE, so two processes
    refreshing the same kind never collide on the unique key.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        kind (str): Token kind.
        token (str): New access token.
        expires_at (datetime): Expiry instant.
    """
    dialect_insert = sqlite_insert if conn.dialect.name == "sqlite" else pg_insert
    stmt = dialect_insert(ChannelToken).values(
        kind=kind, token=token, expires_at=expires_at, updated_at=utc_now()
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["kind"],
        set_={
            "token": stmt.excluded.token,
            "expires_at": stmt.excluded.expires_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    conn.execute(stmt)


def insert_guest_account(conn: Connection, user_id: str, email: str, display_name: str) -> None:
    """
    Register a guest account.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        user_id (str): New account id.
        email (str): Guest email (stored lower-cased).
        display_name (str): Guest full name.
    """
    conn.execute(
        insert(GuestAccount).values(
            user_id=user_id,
            email=email.strip().lower(),
            display_name=display_name,
            created_at=utc_now(),
        )
    )
    logger.info("guest_account_created", user_id=user_id)
