"""Client configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars
(``GMAIL_USERNAME``, ``GMAIL_IMAP_HOST``, ``GMAIL_RETRY_MAX_ATTEMPTS`` ...).
"""

from __future__ import annotations

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

GMAIL_DOMAIN = "gmail.com"


def fill_username(username: str) -> str:
    """Append ``@gmail.com`` to bare account names."""
    return username if "@" in username else f"{username}@{GMAIL_DOMAIN}"


class ImapConfig(BaseSettings):
    """IMAP server connection settings."""

    model_config = {"env_prefix": "GMAIL_IMAP_"}

    host: str = Field(default="imap.gmail.com", description="IMAP server hostname")
    port: int = Field(default=993, description="IMAP server port")
    use_ssl: bool = Field(default=True, description="Use SSL/TLS connection")
    timeout_seconds: float | None = Field(
        default=None,
        description="Socket timeout for IMAP commands (None blocks indefinitely)",
    )


class SmtpConfig(BaseSettings):
    """SMTP submission settings used by :meth:`GmailClient.deliver`."""

    model_config = {"env_prefix": "GMAIL_SMTP_"}

    host: str = Field(default="smtp.gmail.com", description="SMTP server hostname")
    port: int = Field(default=587, description="SMTP submission port")
    starttls: bool = Field(default=True, description="Upgrade the connection with STARTTLS")
    username: str | None = Field(default=None, description="SMTP login username")
    password: SecretStr | None = Field(default=None, description="SMTP login password")
    timeout_seconds: float = Field(default=30.0, description="SMTP socket timeout")


class RetryConfig(BaseSettings):
    """Retry / backoff settings for establishing the IMAP connection."""

    model_config = {"env_prefix": "GMAIL_RETRY_"}

    max_attempts: int = Field(default=3, description="Maximum connection attempts")
    initial_wait_seconds: float = Field(
        default=1.0,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=30.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class ClientConfig(BaseSettings):
    """Root configuration for a :class:`GmailClient`.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "GMAIL_"}

    username: str = Field(description="Account address; bare names get @gmail.com")

    imap: ImapConfig = Field(default_factory=ImapConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("username")
    @classmethod
    def _fill_username(cls, value: str) -> str:
        return fill_username(value.strip())

    @property
    def mail_domain(self) -> str:
        return self.username.split("@")[-1]
