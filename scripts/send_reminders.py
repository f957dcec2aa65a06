import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from datetime import date

import structlog

from bnb_booking.db.engine import engine
from bnb_booking.db.store import BookingStore
from bnb_booking.dependencies import get_notifier
from bnb_booking.logging_config import setup_logging
from bnb_booking.services.reminders import send_reminders

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Send the stay reminders due today.")
    parser.add_argument(
        "--today", type=date.fromisoformat, default=None, help="Pretend today is this date"
    )
    args = parser.parse_args()

    try:
        sent = send_reminders(BookingStore(engine), get_notifier(), today=args.today)
        logger.info("reminders_completed", sent=sent, total=sum(sent.values()))
    except Exception:
        logger.exception("reminders_failed")
        raise


if __name__ == "__main__":
    main()
