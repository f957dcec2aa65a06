"""
structlog setup shared by the API, the cron job and the scripts.

Guest contact details show up in log context all over the booking flows
(``email=booking.email``, ``to=...``); they are masked before rendering so
log aggregation never stores them in clear.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, MutableMapping, cast

import structlog

from bnb_booking.config import LOG_LEVEL

# Type alias for structlog processor
Processor = Callable[[Any, str, MutableMapping[str, Any]], Any]

MASKED_KEYS = ("email", "to", "phone")


def mask_contact(value: str) -> str:
    """
    Mask an email address or phone number, keeping enough to recognise it.

    Example:
        >>> mask_contact("giulia.rossi@example.com")
        'g***@example.com'
        >>> mask_contact("+39 333 1234567")
        '***4567'
    """
    if not value:
        return value
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{value[-4:]}"


def mask_guest_contacts(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: mask guest emails and phone numbers in the event context."""
    for key in MASKED_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = mask_contact(value)
    return event_dict


def setup_logging() -> None:
    """
    Configures structured logging globally using structlog.

    In production (LOG_LEVEL=INFO): Outputs JSON for log aggregation
    In development (LOG_LEVEL=DEBUG): Outputs human-readable console format
    """
    logging.basicConfig(
        format="[%(asctime)s] %(levelname)s in %(name)s:%(lineno)d: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        level=LOG_LEVEL,
    )

    # HTTP clients of Stripe, Resend and the channel managers are chatty at INFO
    for noisy_logger in ["urllib3", "requests", "stripe", "uvicorn.access"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    renderer: Processor = cast(
        Processor,
        (
            structlog.processors.JSONRenderer()
            if LOG_LEVEL == "INFO"
            else structlog.dev.ConsoleRenderer(colors=True)
        ),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            mask_guest_contacts,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
