"""Label registry: special-use aliases and mailbox-name encoding."""

from __future__ import annotations

from base64 import b64decode, b64encode
from collections.abc import Callable
from enum import Enum

import structlog

from .transport import Transport

logger = structlog.get_logger()

INBOX = "INBOX"


class SpecialMailbox(str, Enum):
    """Reserved mailbox aliases, valued by their RFC 6154 special-use flag.

    These are distinct from any user label: ``SpecialMailbox.ALL`` always
    means the account's all-mail view, whatever the server calls it.
    """

    INBOX = "\\Inbox"
    ALL = "\\All"
    SENT = "\\Sent"
    DRAFTS = "\\Drafts"
    TRASH = "\\Trash"
    SPAM = "\\Junk"
    STARRED = "\\Flagged"
    IMPORTANT = "\\Important"


# Names used by an English-language Gmail account, for servers whose LIST
# response carries no special-use flags.
DEFAULT_NAMES: dict[SpecialMailbox, str] = {
    SpecialMailbox.INBOX: INBOX,
    SpecialMailbox.ALL: "[Gmail]/All Mail",
    SpecialMailbox.SENT: "[Gmail]/Sent Mail",
    SpecialMailbox.DRAFTS: "[Gmail]/Drafts",
    SpecialMailbox.TRASH: "[Gmail]/Trash",
    SpecialMailbox.SPAM: "[Gmail]/Spam",
    SpecialMailbox.STARRED: "[Gmail]/Starred",
    SpecialMailbox.IMPORTANT: "[Gmail]/Important",
}


# ----------------------------------------------------------------------
# Modified UTF-7 (RFC 3501 section 5.1.3)
# ----------------------------------------------------------------------


def _b64_section(chunk: str) -> str:
    encoded = b64encode(chunk.encode("utf-16-be"), b"+,").decode("ascii")
    return "&" + encoded.rstrip("=") + "-"


def encode_mailbox_name(name: str) -> str:
    """Encode *name* for use on the wire."""
    parts: list[str] = []
    start: int | None = None
    for i, char in enumerate(name):
        if 0x20 <= ord(char) <= 0x7E:
            if start is not None:
                parts.append(_b64_section(name[start:i]))
                start = None
            parts.append("&-" if char == "&" else char)
        elif start is None:
            start = i
    if start is not None:
        parts.append(_b64_section(name[start:]))
    return "".join(parts)


def decode_mailbox_name(encoded: str) -> str:
    """Decode a wire mailbox name back to text."""
    parts: list[str] = []
    pos = 0
    while True:
        start = encoded.find("&", pos)
        if start == -1:
            parts.append(encoded[pos:])
            return "".join(parts)
        parts.append(encoded[pos:start])
        stop = encoded.find("-", start)
        if stop == -1:
            raise ValueError(f"Mailbox name {encoded!r} ends in base64 mode")
        if stop == start + 1:
            parts.append("&")
        else:
            section = encoded[start + 1 : stop].encode("ascii")
            padding = b"=" * (-len(section) % 4)
            parts.append(b64decode(section + padding, b"+,").decode("utf-16-be"))
        pos = stop + 1


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------


class LabelRegistry:
    """Resolves user-facing mailbox names to canonical server names.

    *connection* is called lazily, only when the server's special-use
    folders must be discovered or labels listed.
    """

    def __init__(self, connection: Callable[[], Transport]) -> None:
        self._connection = connection
        self._special: dict[SpecialMailbox, str] | None = None

    def localize(self, name: str | SpecialMailbox) -> str:
        """Return the canonical mailbox name for *name*.

        Special aliases resolve to the server's folder carrying the matching
        flag; ``INBOX`` is case-insensitive; anything else passes through.
        """
        if isinstance(name, SpecialMailbox):
            if name is SpecialMailbox.INBOX:
                return INBOX
            return self.special_mailboxes()[name]
        if name.upper() == INBOX:
            return INBOX
        return name

    def special_mailboxes(self) -> dict[SpecialMailbox, str]:
        """Map each alias to a server folder, discovering flags once."""
        if self._special is None:
            discovered = dict(DEFAULT_NAMES)
            flags = {alias.value.lower(): alias for alias in SpecialMailbox}
            for listing in self._connection().list_mailboxes():
                for flag in listing.flags:
                    alias = flags.get(flag.lower())
                    if alias is not None and alias is not SpecialMailbox.INBOX:
                        discovered[alias] = decode_mailbox_name(listing.name)
            logger.debug(
                "special_mailboxes_discovered",
                mailboxes={alias.name: name for alias, name in discovered.items()},
            )
            self._special = discovered
        return self._special

    def all(self) -> list[str]:
        """Names of every mailbox/label on the server."""
        return [decode_mailbox_name(listing.name) for listing in self._connection().list_mailboxes()]
