"""Authentication strategy interface.

The client never implements a login mechanism itself.  A strategy receives
the connected transport and either authenticates it or raises
:class:`~gmail_session.errors.AuthenticationError`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .transport import Transport


@runtime_checkable
class Authenticator(Protocol):
    """Login mechanism supplied at client construction."""

    def authenticate(self, transport: Transport) -> None:
        """Authenticate *transport* or raise ``AuthenticationError``."""
        ...
