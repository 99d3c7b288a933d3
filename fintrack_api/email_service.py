# fintrack_api/email_service.py

import logging
import secrets
import smtplib
from email.message import EmailMessage

logger = logging.getLogger("fintrack-api")


class EmailService:
    """Sends account emails over SMTP. Without SMTP settings nothing is sent."""

    def __init__(self, host="", port=587, user="", password="", sender="", frontend_url=""):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config.get("SMTP_HOST", ""),
            port=config.get("SMTP_PORT", 587),
            user=config.get("SMTP_USER", ""),
            password=config.get("SMTP_PASSWORD", ""),
            sender=config.get("EMAIL_FROM", ""),
            frontend_url=config.get("FRONTEND_URL", ""),
        )

    @property
    def configured(self):
        return bool(self.host)

    @staticmethod
    def generate_verification_token():
        return secrets.token_hex(32)

    def send_email_verification(self, email, name, token):
        link = f"{self.frontend_url}/verify-email?token={token}"
        body = (
            f"Hi {name},\n\n"
            "Welcome to FinTrack! Please confirm your email address by opening the link below.\n\n"
            f"{link}\n\n"
            "The link expires in 24 hours."
        )
        return self._send(email, "Verify your FinTrack account", body)

    def send_password_reset(self, email, name, token):
        link = f"{self.frontend_url}/reset-password?token={token}"
        body = (
            f"Hi {name},\n\n"
            "We received a request to reset your FinTrack password.\n\n"
            f"{link}\n\n"
            "The link expires in 1 hour. If you did not ask for this, ignore this email."
        )
        return self._send(email, "Reset your FinTrack password", body)

    def _send(self, to, subject, body):
        if not self.configured:
            logger.warning(f"SMTP not configured, email '{subject}' to {to} was not sent")
            return False

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
            logger.info(f"📧 Email '{subject}' sent to {to}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e}")
            return False
