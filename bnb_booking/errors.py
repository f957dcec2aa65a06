"""
Error taxonomy for booking operations.

Every error carries a stable ``reason`` code (for API clients and logs) and a
localized ``message`` that can be shown to the guest as-is. Routes translate
the error kinds to HTTP status codes, see ``routes/_booking_helpers.py``.
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for all booking domain errors."""

    reason = "booking_error"
    default_message = "Si è verificato un errore con la prenotazione"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


# =============================================================================
# Validation errors: malformed input, raised before any external call
# =============================================================================


class ValidationError(BookingError):
    reason = "validation_error"
    default_message = "I dati inseriti non sono validi"


class InvalidDateRange(ValidationError):
    reason = "invalid_date_range"
    default_message = "Le date non sono valide"


class InvalidGuestCount(ValidationError):
    reason = "invalid_guest_count"
    default_message = "Il numero di ospiti non è valido"


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(BookingError):
    reason = "not_found"
    default_message = "Risorsa non trovata"


class BookingNotFound(NotFoundError):
    reason = "booking_not_found"
    default_message = "Prenotazione non trovata"


class RoomNotFound(NotFoundError):
    reason = "room_not_found"
    default_message = "Camera non trovata"


# =============================================================================
# Policy violations: well-formed requests the booking rules refuse
# =============================================================================


class PolicyViolation(BookingError):
    reason = "policy_violation"
    default_message = "Operazione non consentita per questa prenotazione"


class GuestLimitExceeded(PolicyViolation):
    reason = "guest_limit_exceeded"
    default_message = "Numero massimo di ospiti raggiunto"


class GuestReductionNotAllowed(PolicyViolation):
    reason = "guest_reduction_not_allowed"
    default_message = "Non è possibile ridurre il numero di ospiti con questa operazione"


class DatesUnavailable(PolicyViolation):
    reason = "dates_unavailable"
    default_message = "La camera non è disponibile per le date selezionate"


class BookingCancelled(PolicyViolation):
    reason = "booking_cancelled"
    default_message = "La prenotazione è stata cancellata e non può essere modificata"


class BookingAlreadyStarted(PolicyViolation):
    reason = "booking_already_started"
    default_message = "Il soggiorno è già iniziato e non può essere cancellato"


class InvalidTransition(PolicyViolation):
    reason = "invalid_transition"
    default_message = "Cambio di stato non consentito"


# =============================================================================
# Upstream failures: payment gateway, channel manager, notifier
# =============================================================================


class UpstreamFailure(BookingError):
    """
    A call to an external collaborator failed.

    Attributes:
        side_effect: Which side effect failed (e.g. "charge", "refund", "unblock")
        required: True if the failure blocks the operation (required-before-commit)
    """

    reason = "upstream_failure"
    default_message = "Servizio temporaneamente non disponibile, riprova più tardi"

    def __init__(
        self,
        side_effect: str,
        required: bool = True,
        message: str | None = None,
        **context: Any,
    ) -> None:
        self.side_effect = side_effect
        self.required = required
        super().__init__(message, **context)
