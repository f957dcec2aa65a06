"""Channel sync orchestrator: fetch bookings from channel managers and reconcile them."""

from datetime import date, timedelta
from typing import Optional

import structlog

from bnb_booking.channels.registry import build_channel_manager, build_token_provider
from bnb_booking.config import CHANNEL_MANAGERS, SYNC_LOOKAHEAD_DAYS
from bnb_booking.db.engine import engine
from bnb_booking.db.store import BookingStore
from bnb_booking.metrics import sync_duration, sync_total
from bnb_booking.schemas.bookings import ReconcileResult
from bnb_booking.services.reconciliation import reconcile_batch
from bnb_booking.utils.datetime import utc_today

logger = structlog.get_logger(__name__)


def sync_channel(
    channel_name: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    dry_run: bool = False,
    store: Optional[BookingStore] = None,
) -> ReconcileResult:
    """
    Import the bookings of one channel manager.

    Args:
        channel_name: 'beds24' or 'smoobu'
        date_from: First arrival date to fetch (defaults to today)
        date_to: Last arrival date to fetch (defaults to SYNC_LOOKAHEAD_DAYS ahead)
        dry_run: If True, skip DB writes
        store: Booking Store (defaults to one over the shared engine)

    Returns:
        ReconcileResult

    Raises:
        requests.RequestException: If the channel manager cannot be read
        ValueError: If the channel is unknown or not configured
    """
    date_from = date_from or utc_today()
    date_to = date_to or date_from + timedelta(days=SYNC_LOOKAHEAD_DAYS)
    store = store or BookingStore(engine)

    logger.info(
        "sync_started",
        channel=channel_name,
        date_from=date_from.isoformat(),
        date_to=date_to.isoformat(),
        dry_run=dry_run,
    )

    try:
        with sync_duration.labels(channel=channel_name).time():
            manager = build_channel_manager(channel_name, build_token_provider(store.engine))
            records = manager.list_bookings(date_from, date_to)
            result = reconcile_batch(records, store, channel_name, dry_run=dry_run)
    except Exception:
        sync_total.labels(channel=channel_name, status="failure").inc()
        raise

    sync_total.labels(channel=channel_name, status="success").inc()
    logger.info("sync_completed", channel=channel_name, synced=result.synced, total=result.total)
    return result


def sync_all_channels(dry_run: bool = False) -> dict[str, ReconcileResult]:
    """
    Run sync_channel() for every configured channel manager.

    A failing channel is logged and does not stop the others.

    Args:
        dry_run (bool): If True, do not write to DB.

    Returns:
        dict[str, ReconcileResult]: Results of the channels that succeeded
    """
    logger.info("sync_all_channels_started", channels=CHANNEL_MANAGERS)

    results: dict[str, ReconcileResult] = {}
    for channel_name in CHANNEL_MANAGERS:
        try:
            results[channel_name] = sync_channel(channel_name, dry_run=dry_run)
        except Exception as e:
            logger.exception("channel_sync_failed", channel=channel_name, error=str(e))

    logger.info(
        "sync_all_channels_completed",
        total_channels=len(CHANNEL_MANAGERS),
        succeeded=len(results),
    )
    return results
