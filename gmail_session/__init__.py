"""Gmail session client: lazily authenticated IMAP session with scoped
mailbox selection, Message-ID lookup and SMTP delivery.

Public API re-exported here for convenience::

    from gmail_session import ClientConfig, GmailClient
"""

from . import errors
from .auth import Authenticator
from .client import GmailClient
from .config import ClientConfig, ImapConfig, RetryConfig, SmtpConfig, fill_username
from .delivery import SmtpMailer
from .labels import LabelRegistry, SpecialMailbox, decode_mailbox_name, encode_mailbox_name
from .mailbox import Mailbox
from .message import Message
from .retry import with_retry
from .transport import ImaplibTransport, MailboxListing, Transport

__all__ = [
    "Authenticator",
    "ClientConfig",
    "GmailClient",
    "ImapConfig",
    "ImaplibTransport",
    "LabelRegistry",
    "Mailbox",
    "MailboxListing",
    "Message",
    "RetryConfig",
    "SmtpConfig",
    "SmtpMailer",
    "SpecialMailbox",
    "Transport",
    "decode_mailbox_name",
    "encode_mailbox_name",
    "errors",
    "fill_username",
    "with_retry",
]
