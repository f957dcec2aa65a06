import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import json
import os
from datetime import date, timedelta

import structlog

from bnb_booking.channels.registry import build_channel_manager, build_token_provider
from bnb_booking.config import SYNC_LOOKAHEAD_DAYS
from bnb_booking.db.engine import engine
from bnb_booking.logging_config import setup_logging
from bnb_booking.services.sync import sync_channel

setup_logging()
logger = structlog.get_logger(__name__)


def save_fixture(channel: str, date_from: date, date_to: date) -> None:
    """Dump the channel's raw booking records to tests/fixtures for inspection."""
    manager = build_channel_manager(channel, build_token_provider(engine))
    records = manager.fetch_bookings(date_from, date_to)

    os.makedirs("tests/fixtures", exist_ok=True)
    path = f"tests/fixtures/{channel}_bookings.json"
    with open(path, "w") as f:
        json.dump(records, f, indent=2, default=str)
    logger.info("fixture_saved", channel=channel, path=path, records=len(records))


def main() -> None:
    parser = argparse.ArgumentParser(description="Sync one channel manager into the Booking Store.")
    parser.add_argument("channel", choices=["beds24", "smoobu"])
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat, default=None)
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat, default=None)
    parser.add_argument("--dry-run", action="store_true", help="Log instead of writing bookings")
    parser.add_argument(
        "--save-fixture", action="store_true", help="Save raw records instead of syncing"
    )
    args = parser.parse_args()

    if args.save_fixture:
        date_from = args.date_from or date.today()
        save_fixture(
            args.channel, date_from, args.date_to or date_from + timedelta(SYNC_LOOKAHEAD_DAYS)
        )
        return

    try:
        result = sync_channel(args.channel, args.date_from, args.date_to, dry_run=args.dry_run)
        logger.info("manual_sync_completed", channel=args.channel, **result.model_dump())
    except Exception:
        logger.exception("manual_sync_failed", channel=args.channel)
        raise


if __name__ == "__main__":
    main()
