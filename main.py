"""
Cron entry point: import bookings from every configured channel manager.

Scheduled by the hosting platform (e.g. every 15 minutes); the HTTP API lives
in bnb_booking.main and is served separately with uvicorn.
"""

import structlog

from bnb_booking.config import DRY_RUN
from bnb_booking.logging_config import setup_logging
from bnb_booking.services.sync import sync_all_channels

setup_logging()
logger = structlog.get_logger(__name__)


def run() -> None:
    results = sync_all_channels(dry_run=DRY_RUN)
    logger.info(
        "cron_sync_finished",
        dry_run=DRY_RUN,
        synced={channel: result.synced for channel, result in results.items()},
    )


if __name__ == "__main__":
    run()
