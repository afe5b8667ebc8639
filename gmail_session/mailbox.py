"""Mailbox handle: one named remote mailbox (label) of a client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .labels import encode_mailbox_name

if TYPE_CHECKING:
    from .client import GmailClient


@dataclass(frozen=True, eq=False)
class Mailbox:
    """A mailbox known to a :class:`~gmail_session.client.GmailClient`.

    Handles are cached per client, so identity is equality: two handles are
    the same context only when they are the same object.
    """

    client: GmailClient = field(repr=False)
    name: str
    encoded_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "encoded_name", encode_mailbox_name(self.name))

    def uid_search(self, *criteria: str) -> list[str]:
        """UIDs in this mailbox matching *criteria* (raw IMAP search keys)."""
        return self.client.mailbox(
            self.name,
            lambda _box: self.client.connection().uid_search(*criteria),
        )

    def count(self, *criteria: str) -> int:
        """Number of messages matching *criteria* (all messages by default)."""
        return len(self.uid_search(*(criteria or ("ALL",))))

    def __str__(self) -> str:
        return self.name
