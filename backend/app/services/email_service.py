"""Transactional email over SMTP (password reset links)."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from backend.app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_PASSWORD_RESET_SUBJECT = "Password Reset"
_PASSWORD_RESET_BODY = (
    "<h2>Password Reset</h2>"
    "<p>Hi {name},</p>"
    "<p>We received a request to reset your SkillShareHub password. "
    '<a href="{link}">Choose a new password</a>.</p>'
    "<p>This link expires in {expire_minutes} minutes. If you did not ask "
    "for a reset you can ignore this email.</p>"
)


class EmailService:
    """Send HTML emails through the configured SMTP relay.

    Sending is a no-op (returns ``False``) unless ``NOTIFICATION_ENABLED``.
    Delivery failures are logged, never raised: a lost email must not fail
    the request that triggered it.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or default_settings

    def send(self, to: str, subject: str, body_html: str) -> bool:
        cfg = self._config
        if not cfg.NOTIFICATION_ENABLED:
            logger.info("Notifications disabled, skipping email to %s", to)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = cfg.SMTP_USERNAME
        msg["To"] = to
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT) as server:
                server.ehlo()
                if cfg.SMTP_PORT != 25:
                    server.starttls()
                if cfg.SMTP_USERNAME:
                    server.login(cfg.SMTP_USERNAME, cfg.SMTP_PASSWORD)
                server.sendmail(msg["From"], [to], msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", to)
            return False
        logger.info("Email sent to %s: %s", to, subject)
        return True

    def send_password_reset(self, to: str, *, name: str, link: str, expire_minutes: int) -> bool:
        body = _PASSWORD_RESET_BODY.format(
            name=html.escape(name), link=html.escape(link), expire_minutes=expire_minutes
        )
        return self.send(to, _PASSWORD_RESET_SUBJECT, body)
