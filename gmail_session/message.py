"""Message handle returned by lookups."""

from __future__ import annotations

from dataclasses import dataclass

from .mailbox import Mailbox


@dataclass(frozen=True)
class Message:
    """A message identified by its UID inside *mailbox*."""

    mailbox: Mailbox
    uid: str
