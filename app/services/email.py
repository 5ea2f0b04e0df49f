"""Outgoing account emails (verification and password reset) over SMTP."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

PRODUCT_NAME = "IronLedger MedMap"


class EmailDeliveryError(Exception):
    """Raised when the SMTP server cannot be reached or rejects the message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmailSender(Protocol):
    def send_email_verification(self, email: str, token: str) -> None: ...

    def send_password_reset(self, email: str, token: str) -> None: ...


class EmailService:
    """SMTP sender. With EMAIL_ENABLED=false the message is logged instead of sent."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _build(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._settings.FROM_EMAIL
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send_email(self, to: str, subject: str, body: str) -> None:
        msg = self._build(to, subject, body)
        s = self._settings
        if not s.EMAIL_ENABLED:
            logger.info("Email delivery disabled; would send %r to %s", subject, to)
            logger.debug("Email body for %s:\n%s", to, body)
            return
        try:
            with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SEC) as server:
                if s.SMTP_USE_TLS:
                    server.starttls()
                if s.SMTP_USER:
                    password = s.SMTP_PASSWORD.get_secret_value() if s.SMTP_PASSWORD else ""
                    server.login(s.SMTP_USER, password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send {subject!r} to {to}: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)

    def send_email_verification(self, email: str, token: str) -> None:
        url = f"{self._settings.FRONTEND_URL}/verify-email?token={token}"
        hours = self._settings.EMAIL_VERIFICATION_EXPIRE_HOURS
        body = (
            f"Welcome to {PRODUCT_NAME}!\n\n"
            f"Please verify your email address by opening this link:\n{url}\n\n"
            f"The link expires in {hours} hours. If you did not create an account, "
            "you can ignore this email."
        )
        self.send_email(email, f"Verify Your Email Address - {PRODUCT_NAME}", body)

    def send_password_reset(self, email: str, token: str) -> None:
        url = f"{self._settings.FRONTEND_URL}/reset-password?token={token}"
        hours = self._settings.PASSWORD_RESET_EXPIRE_HOURS
        body = (
            f"We received a request to reset the password of your {PRODUCT_NAME} account.\n\n"
            f"Choose a new password here:\n{url}\n\n"
            f"The link expires in {hours} hour(s). If you did not ask for a reset, "
            "you can ignore this email; your password stays unchanged."
        )
        self.send_email(email, f"Password Reset Request - {PRODUCT_NAME}", body)
