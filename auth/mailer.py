"""
auth/mailer.py -- Notification channel for password reset mail.

The Authenticator depends on the Mailer protocol only, so tests and
alternative transports can be injected. SmtpMailer is the production
implementation on top of smtplib.

send() never raises for transport problems: a refused connection, a
rejected recipient or a timeout is logged and reported as False. The message
body is not logged -- it carries a temporary password.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from core.config import Settings, get_settings

logger = logging.getLogger("salesdesk.mail")


class Mailer(Protocol):
    def send(self, address: str, subject: str, body: str) -> bool: ...


class SmtpMailer:
    """Send plain-text mail through the SMTP relay named in Settings."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def _build(self, address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._settings.mail_from
        msg["To"] = address
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, address: str, subject: str, body: str) -> bool:
        s = self._settings
        msg = self._build(address, subject, body)
        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout) as smtp:
                if s.smtp_use_tls:
                    smtp.starttls()
                if s.smtp_username:
                    smtp.login(s.smtp_username, s.smtp_password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Mail to %s failed (%s): %s", address, subject, exc)
            return False
        logger.info("Mail sent to %s (%s)", address, subject)
        return True
