"""Outbound transactional email delivered over SMTP."""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from string import Template

from .config import Settings, get_settings
from .domain.errors import MailDeliveryError

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_SUBJECT = "Your password reset code"

FORGOT_PASSWORD_TEMPLATE = Template(
    """Hello,

We received a request to reset the password of your account.

Your reset code is: $code

The code is valid for $minutes minutes (until $expires_at UTC).
Expiry reference (epoch milliseconds): $expires_at_ms
If you did not request a password reset, you can ignore this email.
"""
)


def render_forgot_password_email(code: str, expires_at_ms: int, now: datetime | None = None) -> str:
    """Render the plain-text body of the forgot-password email."""
    now = now or datetime.now(timezone.utc)
    expires_at = datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc)
    minutes = max(0, round((expires_at - now).total_seconds() / 60))
    return FORGOT_PASSWORD_TEMPLATE.substitute(
        code=code,
        minutes=minutes,
        expires_at=expires_at.strftime("%Y-%m-%d %H:%M"),
        expires_at_ms=expires_at_ms,
    )


class SmtpMailer:
    """Sends templated account emails from the configured system address."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        if not self._settings.smtp_host:
            logger.warning("SMTP_HOST not configured; outbound email is disabled")

    def send_forgot_password_email(self, to: str, code: str, expires_at_ms: int) -> None:
        """Deliver the password reset code to ``to``.

        Raises
        ------
        MailDeliveryError
            When the SMTP exchange fails.
        """
        message = MIMEText(render_forgot_password_email(code, expires_at_ms), "plain", "utf-8")
        message["From"] = self._settings.mail_from
        message["To"] = to
        message["Subject"] = FORGOT_PASSWORD_SUBJECT
        self._send(message, to)

    def _send(self, message: MIMEText, to: str) -> None:
        settings = self._settings
        if not settings.smtp_host:
            logger.warning("email '%s' not sent: SMTP_HOST not configured", message["Subject"])
            return

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
                if settings.smtp_use_tls:
                    server.starttls()
                if settings.smtp_username:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(message, to_addrs=[to])
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"failed to send email: {exc}") from exc

        logger.info("email '%s' sent via %s", message["Subject"], settings.smtp_host)
