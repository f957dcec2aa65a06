"""
Liveness and readiness checks.

Readiness only depends on the Booking Store: a channel manager or payment
provider outage degrades single operations (they answer 502) but never takes
the whole API out of rotation. Their configuration is still reported so a
misconfigured deployment is visible at a glance.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from bnb_booking.config import CHANNEL_MANAGERS, PAYMENT_PROVIDER, PRIMARY_CHANNEL
from bnb_booking.db.engine import check_engine_health

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> JSONResponse:
    return JSONResponse(content={"status": "ok"})


@router.get("/ready")
def readiness_check() -> JSONResponse:
    """
    Returns 200 if the Booking Store database is reachable, 503 otherwise.

    Example:
        >>> GET /ready
        {"status": "ready", "checks": {"database": "ok"},
         "config": {"payment_provider": "stripe", "channels": ["smoobu"],
                    "primary_channel": "smoobu"}}
    """
    config: dict[str, Any] = {
        "payment_provider": PAYMENT_PROVIDER,
        "channels": CHANNEL_MANAGERS,
        "primary_channel": PRIMARY_CHANNEL or None,
    }

    if check_engine_health():
        return JSONResponse(
            content={"status": "ready", "checks": {"database": "ok"}, "config": config}
        )

    logger.error("readiness_check_failed", reason="database_not_accessible")
    return JSONResponse(
        status_code=503,
        content={"status": "not ready", "checks": {"database": "failed"}, "config": config},
    )
