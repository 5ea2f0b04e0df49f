"""EmailService: logging when disabled, SMTP delivery when enabled, wrapped failures."""

import smtplib
import unittest
from unittest.mock import patch

from app.core.config import Settings
from app.services.email import EmailDeliveryError, EmailService


class TestEmailDisabled(unittest.TestCase):
    def test_logs_instead_of_sending(self) -> None:
        service = EmailService(Settings(EMAIL_ENABLED=False))
        with patch("app.services.email.smtplib.SMTP") as smtp, self.assertLogs(
            "app.services.email", level="INFO"
        ) as logs:
            service.send_email_verification("doctor@example.com", "tok")
        smtp.assert_not_called()
        self.assertIn("doctor@example.com", logs.output[0])


class TestEmailEnabled(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings(
            EMAIL_ENABLED=True,
            SMTP_HOST="smtp.example.com",
            SMTP_PORT=587,
            SMTP_USER="mailer",
            SMTP_PASSWORD="secret",
            FROM_EMAIL="noreply@medmap.co.za",
            FRONTEND_URL="https://ironledgermedmap.com",
        )
        self.service = EmailService(self.settings)

    def test_verification_link_is_sent_over_starttls(self) -> None:
        with patch("app.services.email.smtplib.SMTP") as smtp:
            self.service.send_email_verification("doctor@example.com", "abc123")
        smtp.assert_called_once_with("smtp.example.com", 587, timeout=self.settings.SMTP_TIMEOUT_SEC)
        server = smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        message = server.send_message.call_args[0][0]
        self.assertEqual(message["To"], "doctor@example.com")
        self.assertEqual(message["From"], "noreply@medmap.co.za")
        self.assertIn("Verify Your Email Address", message["Subject"])
        self.assertIn("https://ironledgermedmap.com/verify-email?token=abc123", message.get_content())

    def test_reset_link_points_at_frontend(self) -> None:
        with patch("app.services.email.smtplib.SMTP") as smtp:
            self.service.send_password_reset("doctor@example.com", "r3set")
        message = smtp.return_value.__enter__.return_value.send_message.call_args[0][0]
        self.assertIn("https://ironledgermedmap.com/reset-password?token=r3set", message.get_content())
        self.assertIn("Password Reset Request", message["Subject"])

    def test_smtp_failure_is_wrapped(self) -> None:
        with patch("app.services.email.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException(
                "rejected"
            )
            with self.assertRaises(EmailDeliveryError) as ctx:
                self.service.send_password_reset("doctor@example.com", "r3set")
        self.assertIn("rejected", ctx.exception.message)

    def test_connection_refused_is_wrapped(self) -> None:
        with patch("app.services.email.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with self.assertRaises(EmailDeliveryError):
                self.service.send_email_verification("doctor@example.com", "abc123")


if __name__ == "__main__":
    unittest.main()
