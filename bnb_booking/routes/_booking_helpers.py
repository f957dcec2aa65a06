"""
Internal helper functions for booking route handlers.

Domain errors raised by the services are translated here into HTTP errors, so
the route handlers only deal with the happy path.
"""

from __future__ import annotations

import hmac
from typing import NoReturn, Optional

from fastapi import HTTPException, status

from bnb_booking.errors import (
    BookingError,
    NotFoundError,
    PolicyViolation,
    UpstreamFailure,
    ValidationError,
)

ERROR_STATUS_CODES: list[tuple[type[BookingError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PolicyViolation, status.HTTP_409_CONFLICT),
    (UpstreamFailure, status.HTTP_502_BAD_GATEWAY),
]


def status_code_for(error: BookingError) -> int:
    """HTTP status code for a domain error; unknown kinds are client errors."""
    for error_type, code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def raise_http_error(error: BookingError) -> NoReturn:
    """
    Re-raise a domain error as an HTTPException.

    The response body is ``{"detail": {"error": <reason>, "message": <message>}}``;
    the message is localized and can be shown to the guest as-is.

    Raises:
        HTTPException: Always
    """
    raise HTTPException(
        status_code=status_code_for(error),
        detail={"error": error.reason, "message": error.message},
    )


def validate_callback_secret_or_401(provided: Optional[str], expected: Optional[str]) -> None:
    """
    Validate the shared secret sent by the payment provider, raise 401 if wrong.

    A missing server-side secret rejects every callback.

    Raises:
        HTTPException: 401 if the secret is missing or does not match
    """
    if not expected or not provided or not hmac.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid callback secret",
        )
