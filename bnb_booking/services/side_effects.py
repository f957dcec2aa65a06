"""
Best-effort side effects run after a booking change is committed.
"""

from typing import Any, Callable, Optional, TypeVar

import structlog

from bnb_booking.metrics import side_effect_failures

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def run_best_effort(side_effect: str, fn: Callable[[], T], **context: Any) -> Optional[T]:
    """
    Run ``fn`` and swallow its failure.

    The failure is logged with ``context`` (enough to retry by hand) and
    counted in ``side_effect_failures``. The committed state is never touched.

    Args:
        side_effect: Name of the side effect, e.g. 'refund', 'notify_cancelled'
        fn: Zero-argument callable performing the side effect
        **context: Booking id, amounts, references to log on failure

    Returns:
        fn's result, or None if it raised
    """
    try:
        return fn()
    except Exception as e:
        side_effect_failures.labels(side_effect=side_effect).inc()
        logger.exception("side_effect_failed", side_effect=side_effect, error=str(e), **context)
        return None
