"""SMTP submission for outgoing messages."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage

import structlog

from . import errors
from .config import SmtpConfig

logger = structlog.get_logger()


class SmtpMailer:
    """Sends composed messages through the configured SMTP server.

    A fresh SMTP session is opened per message; submission is stateless.
    """

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def send(self, message: EmailMessage) -> None:
        """Submit *message*, raising :class:`errors.DeliveryError` on failure."""
        config = self._config
        try:
            with smtplib.SMTP(config.host, config.port, timeout=config.timeout_seconds) as smtp:
                if config.starttls:
                    smtp.starttls()
                if config.username and config.password is not None:
                    smtp.login(config.username, config.password.get_secret_value())
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise errors.DeliveryError(f"Couldn't deliver email: {exc}") from exc
        logger.info(
            "email_delivered",
            host=config.host,
            message_id=message.get("Message-ID"),
            recipients=len(message.get_all("To", [])),
        )
