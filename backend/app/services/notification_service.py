# Overview: Role-based e-mail notifications sent after travel request transitions.

"""
Travel request notifications.

RECIPIENTS:
    request_submitted:  every active PM
    request_approved:   every active user of the assigned operations team
    booking_completed:  the requester and the PM who approved

Delivery never decides a transition: notify() runs after the commit, logs
any failure and returns False. With no MAIL_SERVER configured nothing is
sent.
"""

from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

from ..models import TravelRequest, User
from app.time_utils import to_iso_date
from .destination_service import format_route


EVENTS = ("request_submitted", "request_approved", "booking_completed")

_SUBJECTS = {
    "request_submitted": "Travel Request Submitted - {traveler} to {destination}",
    "request_approved": "Travel Approved - {traveler} to {destination}",
    "booking_completed": "Travel Arrangements Confirmed - {traveler} to {destination}",
}


@dataclass(frozen=True)
class Recipient:
    email: str
    role: str


class SmtpMailer:
    """Plain-text mail over SMTP, configured from MAIL_* settings."""

    def __init__(
        self,
        *,
        server: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        use_tls: bool = True,
        timeout: float = 30.0,
    ):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SmtpMailer":
        return cls(
            server=config.get("MAIL_SERVER"),
            port=int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            sender=config.get("MAIL_DEFAULT_SENDER"),
            use_tls=config.get("MAIL_USE_TLS", True),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.server and self.sender)

    def send(self, to_emails: list[str], subject: str, body: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = ", ".join(to_emails)
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg, to_addrs=to_emails)


def get_mailer():
    """Application-scoped mailer, created on first use."""
    mailer = current_app.extensions.get("mailer")
    if mailer is None:
        mailer = SmtpMailer.from_config(current_app.config)
        current_app.extensions["mailer"] = mailer
    return mailer


def _active_users_with_role(role: str) -> list[User]:
    return User.query.filter_by(role=role, is_active=True).order_by(User.id.asc()).all()


def recipients_for(event: str, tx: TravelRequest) -> list[Recipient]:
    """Who hears about `event` on `tx`; one entry per address."""
    if event not in EVENTS:
        raise ValueError(f"Unknown notification event: {event}")

    found: list[Recipient] = []
    if event == "request_submitted":
        found = [Recipient(u.email, u.role) for u in _active_users_with_role("pm")]
    elif event == "request_approved":
        if tx.assigned_operations_team:
            found = [Recipient(u.email, u.role) for u in _active_users_with_role(tx.assigned_operations_team)]
    else:
        if tx.requester is not None:
            found.append(Recipient(tx.requester.email, "requester"))
        if tx.pm_approver is not None:
            found.append(Recipient(tx.pm_approver.email, "pm"))

    unique: list[Recipient] = []
    seen: set[str] = set()
    for recipient in found:
        key = (recipient.email or "").strip().lower()
        if key and key not in seen:
            seen.add(key)
            unique.append(recipient)
    return unique


def _name(user: User | None) -> str:
    if user is None:
        return "Unknown"
    return user.full_name or user.email


def compose(event: str, tx: TravelRequest) -> tuple[str, str]:
    """Subject and plain-text body for one event."""
    subject = _SUBJECTS[event].format(traveler=_name(tx.traveler), destination=tx.destination)

    lines = [
        f"Request #{tx.id}",
        f"Traveller: {_name(tx.traveler)}",
        f"Requested by: {_name(tx.requester)}",
        f"Route: {format_route(tx)}",
        f"Dates: {to_iso_date(tx.departure_date)} to {to_iso_date(tx.return_date)}",
        f"Purpose: {tx.custom_purpose or tx.purpose}",
    ]
    if tx.project is not None:
        lines.append(f"Project: {tx.project.name}")

    if event == "request_approved":
        lines.append(f"Approved by: {_name(tx.pm_approver)}")
        lines.append(f"Assigned to: {tx.assigned_operations_team}")
    elif event == "booking_completed":
        lines.append(f"Completed by: {_name(tx.operations_completer)}")
        for booking in tx.bookings:
            ref = f" ({booking.booking_reference})" if booking.booking_reference else ""
            lines.append(f"  - {booking.type}: {booking.provider or 'n/a'}{ref} {float(booking.cost or 0):.2f}")
        lines.append(f"Total cost: {float(tx.actual_total_cost or 0):.2f}")

    return subject, "\n".join(lines) + "\n"


def notify(event: str, tx: TravelRequest) -> bool:
    """
    Send the notification for `event`. Returns True when a message was
    handed to the mailer; failures are logged, never raised.
    """
    if event not in EVENTS:
        raise ValueError(f"Unknown notification event: {event}")

    try:
        recipients = recipients_for(event, tx)
        if not recipients:
            current_app.logger.info("No recipients for %s on travel request %s", event, tx.id)
            return False

        mailer = get_mailer()
        if not mailer.is_configured:
            current_app.logger.debug("Mail not configured; %s for travel request %s not sent", event, tx.id)
            return False

        subject, body = compose(event, tx)
        mailer.send([r.email for r in recipients], subject, body)
    except Exception:
        current_app.logger.exception("Failed to send %s notification for travel request %s", event, tx.id)
        return False

    current_app.logger.info(
        "Sent %s notification for travel request %s to %d recipient(s)", event, tx.id, len(recipients)
    )
    return True
