from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from bnb_booking.models.channel_tokens import ChannelToken
from bnb_booking.models.guest_accounts import GuestAccount


def get_channel_token(conn: Connection, kind: str) -> Optional[dict[str, Any]]:
    """
    Fetch the persisted token of the given kind.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        kind (str): Token kind, e.g. "beds24_write"

    Returns:
        Optional[dict[str, Any]]: Dict with 'token' and 'expires_at' or None if not found
    """
    result = conn.execute(
        select(ChannelToken.token, ChannelToken.expires_at).where(ChannelToken.kind == kind)
    )
    row = result.mappings().fetchone()
    return dict(row) if row else None


def get_guest_account_id(conn: Connection, email: str) -> Optional[str]:
    """
    Get the user_id of the guest account registered with ``email``.

    Returns:
        Optional[str]: user_id or None
    """
    result = conn.execute(
        select(GuestAccount.user_id).where(GuestAccount.email == email.strip().lower())
    )
    row = result.fetchone()
    return row[0] if row else None
