"""
Guest email notifications.

``ResendNotifier`` sends through the Resend HTTP API; ``LoggingNotifier``
only logs and is used when no API key is configured. Notifiers raise on
failure; callers wrap them with ``run_best_effort`` so a failed email never
undoes a committed booking change.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

import requests
import structlog

from bnb_booking.config import ADMIN_EMAIL, EMAIL_FROM, RESEND_API_KEY, ROOMS, SITE_URL
from bnb_booking.schemas.bookings import Booking, CancellationOutcome, RefundRecord

logger = structlog.get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def format_amount(amount: int, currency: str = "EUR") -> str:
    """Format minor units for display, e.g. 18050 -> '180.50 EUR'."""
    return f"{Decimal(amount) / 100:.2f} {currency}"


def _room_name(booking: Booking) -> str:
    return str(ROOMS.get(booking.room_id, {}).get("name") or f"Camera {booking.room_id}")


def _stay_lines(booking: Booking) -> list[str]:
    return [
        f"Prenotazione n. {booking.id}",
        f"Camera: {_room_name(booking)}",
        f"Check-in: {booking.check_in.isoformat()}",
        f"Check-out: {booking.check_out.isoformat()}",
        f"Notti: {booking.nights}",
        f"Ospiti: {booking.guests}",
        f"Totale: {format_amount(booking.total_amount, booking.currency)}",
    ]


class Notifier(ABC):
    """Abstract base class for guest notifications."""

    @abstractmethod
    def send(self, to: str, subject: str, text: str) -> None:
        pass

    def send_booking_confirmed(
        self, booking: Booking, credentials: Optional[dict[str, str]] = None
    ) -> None:
        lines = [f"Gentile {booking.first_name},", "la tua prenotazione è confermata.", ""]
        lines += _stay_lines(booking)
        lines.append(f"Acconto versato: {format_amount(booking.deposit_paid, booking.currency)}")
        lines.append(f"Saldo all'arrivo: {format_amount(booking.balance_due, booking.currency)}")
        if credentials:
            lines += [
                "",
                "Abbiamo creato un account per gestire la prenotazione:",
                f"Email: {credentials.get('email', booking.email)}",
                f"Accedi su {SITE_URL}/user",
            ]
        self.send(booking.email, f"Prenotazione Confermata - {booking.id}", "\n".join(lines))

    def send_booking_cancelled(
        self,
        booking: Booking,
        outcome: CancellationOutcome,
        refund: Optional[RefundRecord] = None,
    ) -> None:
        lines = [f"Gentile {booking.first_name},", "la tua prenotazione è stata cancellata.", ""]
        lines += _stay_lines(booking)
        lines.append(f"Rimborso: {format_amount(outcome.refund_amount, booking.currency)}")
        lines.append(f"Penale: {format_amount(outcome.penalty_amount, booking.currency)}")
        if refund is not None and refund.failed:
            lines.append("Il rimborso verrà elaborato manualmente nei prossimi giorni.")
        self.send(booking.email, f"Prenotazione Cancellata - {booking.id}", "\n".join(lines))

    def send_booking_modified(self, booking: Booking, breakdown: dict[str, Any]) -> None:
        lines = [f"Gentile {booking.first_name},", "la tua prenotazione è stata modificata.", ""]
        lines += _stay_lines(booking)
        for label, amount in breakdown.items():
            if isinstance(amount, int):
                lines.append(f"{label}: {format_amount(amount, booking.currency)}")
            else:
                lines.append(f"{label}: {amount}")
        self.send(booking.email, f"Prenotazione Modificata - {booking.id}", "\n".join(lines))

    def send_stay_reminder(self, booking: Booking, days_before: int) -> None:
        when = "un mese" if days_before >= 30 else f"{days_before} giorni"
        lines = [
            f"Ciao {booking.first_name},",
            f"ti ricordiamo che il tuo check-in è previsto tra {when}.",
            "",
        ]
        lines += _stay_lines(booking)
        lines.append(f"Saldo all'arrivo: {format_amount(booking.balance_due, booking.currency)}")
        lines.append(f"Per modificare la prenotazione accedi su {SITE_URL}/user")
        subject = f"Promemoria: Check-in tra {when} - {_room_name(booking)}"
        self.send(booking.email, subject, "\n".join(lines))

    def send_admin_new_booking(self, booking: Booking, channel: str, blocked: bool) -> None:
        """Tell the owner a site booking was paid and whether the channel block went through."""
        lines = ["Nuova prenotazione dal sito web.", ""]
        lines += _stay_lines(booking)
        lines += [
            f"Ospite: {booking.first_name} {booking.last_name} <{booking.email}>",
            f"Acconto versato: {format_amount(booking.deposit_paid, booking.currency)}",
            "",
        ]
        if blocked:
            lines.append(f"Le date sono state bloccate automaticamente su {channel}.")
        else:
            lines.append(f"ATTENZIONE: blocco date su {channel} non riuscito, bloccale a mano.")
        self.send(ADMIN_EMAIL, f"Nuova Prenotazione Sito - Verifica su {channel}", "\n".join(lines))


class ResendNotifier(Notifier):
    """Sends email through the Resend API."""

    def __init__(self, api_key: Optional[str] = None, sender: str = EMAIL_FROM):
        self.api_key = api_key or RESEND_API_KEY
        if not self.api_key:
            raise ValueError("RESEND_API_KEY must be set in the environment")
        self.sender = sender

    def send(self, to: str, subject: str, text: str) -> None:
        """
        Send one email.

        Raises:
            ValueError: If the recipient is empty
            requests.RequestException: If Resend rejects the request
        """
        if not to:
            raise ValueError("Recipient email is empty")

        res = requests.post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": self.sender, "to": [to], "subject": subject, "text": text},
            timeout=10,
        )
        res.raise_for_status()
        logger.info("email_sent", subject=subject, email_id=res.json().get("id"))


class LoggingNotifier(Notifier):
    """Logs emails instead of sending them (development, dry runs)."""

    def send(self, to: str, subject: str, text: str) -> None:
        logger.info("email_skipped", to=to, subject=subject)
        logger.debug("Email body:\n%s", text)
