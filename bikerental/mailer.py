"""
Outbound email over SMTP.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    sender: Optional[str] = None


class Mailer(Protocol):
    def send(self, email: OutgoingEmail) -> None:
        ...


def build_message(email: OutgoingEmail, default_sender: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = email.subject
    msg["From"] = email.sender or default_sender
    msg["To"] = email.to
    msg.set_content(email.text or "")
    if email.html:
        msg.add_alternative(email.html, subtype="html")
    return msg


@dataclass
class SmtpMailer:
    """Implicit TLS on port 465, STARTTLS on any other port."""

    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: int = 30

    def send(self, email: OutgoingEmail) -> None:
        msg = build_message(email, self.username or "")
        context = ssl.create_default_context()
        logger.info("Sending email to %s (%s)", email.to, email.subject)
        if self.port == 465:
            with smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            ) as server:
                self._login(server)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                self._login(server)
                server.send_message(msg)

    def _login(self, server: smtplib.SMTP) -> None:
        if self.username and self.password:
            server.login(self.username, self.password)


@dataclass
class InMemoryMailer:
    """Collects messages instead of sending them."""

    outbox: list[OutgoingEmail] = field(default_factory=list)

    def send(self, email: OutgoingEmail) -> None:
        self.outbox.append(email)
