"""
Booking Store engine.

One engine per process, shared by the API workers, the cron sync and the
scripts. Pool sizes come from configuration so the cron job can run with a
smaller pool than the API.
"""

from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from bnb_booking.config import DATABASE_URL, DB_MAX_OVERFLOW, DB_POOL_SIZE


def build_engine(url: str, pool_size: int = DB_POOL_SIZE) -> Engine:
    """
    Create a pooled engine for the Booking Store database.

    Args:
        url: SQLAlchemy database URL
        pool_size: Persistent connections kept in the pool

    Raises:
        RuntimeError: If the URL is empty
    """
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")

    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # Detect stale connections before use
        pool_recycle=3600,
        echo=False,
    )


engine: Engine = build_engine(DATABASE_URL or "")


def check_engine_health(db_engine: Optional[Engine] = None) -> bool:
    """
    Check that the Booking Store database answers a trivial query.

    Args:
        db_engine: Engine to check (defaults to the process engine)

    Returns:
        bool: True if database is reachable and healthy, False otherwise
    """
    try:
        with (db_engine or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
