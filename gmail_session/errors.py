"""Error taxonomy for the Gmail session client."""

from __future__ import annotations

import builtins


class GmailError(Exception):
    """Base class for every error raised by :mod:`gmail_session`."""


class ConnectionError(GmailError, builtins.ConnectionError):  # noqa: A001
    """The IMAP service could not be reached."""


class AuthenticationError(GmailError):
    """The server rejected the login attempt."""


class NotFoundError(GmailError, LookupError):
    """A lookup by identifier matched no message."""


class TransportError(GmailError):
    """A protocol-level command (SELECT, SEARCH, LIST...) failed."""


class DeliveryError(GmailError):
    """An outgoing message could not be handed to the SMTP server."""
