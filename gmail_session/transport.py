"""Remote session capability and its default ``imaplib`` implementation.

The client core never speaks IMAP directly; it drives a :class:`Transport`.
:class:`ImaplibTransport` is the production implementation, tests plug in an
in-memory fake.
"""

from __future__ import annotations

import imaplib
import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog

from . import errors
from .config import ImapConfig

logger = structlog.get_logger()

_LIST_RE = re.compile(rb'\((?P<flags>[^)]*)\) (?P<delimiter>"(?:[^"\\]|\\.)*"|NIL) (?P<name>.*)')


@dataclass(frozen=True)
class MailboxListing:
    """One line of a ``LIST`` response.

    ``name`` is still in its wire (modified UTF-7) form.
    """

    flags: tuple[str, ...]
    delimiter: str | None
    name: str


@runtime_checkable
class Transport(Protocol):
    """Connected handle to the mail store."""

    def select(self, encoded_name: str) -> None: ...

    def uid_search(self, *criteria: str) -> list[str]: ...

    def list_mailboxes(self) -> list[MailboxListing]: ...

    def logout(self) -> None: ...

    def disconnect(self) -> None: ...


def quote(value: str) -> str:
    """Return *value* as an IMAP quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def parse_list_response(data: list) -> list[MailboxListing]:
    """Parse the untagged data returned by ``imaplib.IMAP4.list``.

    Names sent as literals arrive as ``(header, name)`` tuples.
    """
    listings: list[MailboxListing] = []
    for item in data:
        if item is None:
            continue
        literal: bytes | None = None
        if isinstance(item, tuple):
            item, literal = item
        match = _LIST_RE.match(item)
        if match is None:
            logger.debug("imap_list_line_skipped", line=item)
            continue
        flags = tuple(match.group("flags").decode("ascii").split())
        raw_delimiter = match.group("delimiter").decode("ascii")
        delimiter = None if raw_delimiter == "NIL" else _unquote(raw_delimiter)
        if literal is not None:
            name = literal.decode("ascii")
        else:
            name = _unquote(match.group("name").decode("ascii").strip())
        listings.append(MailboxListing(flags=flags, delimiter=delimiter, name=name))
    return listings


class ImaplibTransport:
    """:class:`Transport` over a stdlib ``imaplib`` connection.

    The raw connection is exposed as :attr:`imap` so authentication
    strategies can issue ``LOGIN`` or ``AUTHENTICATE`` themselves.
    """

    def __init__(self, imap: imaplib.IMAP4) -> None:
        self.imap = imap

    @classmethod
    def open(cls, config: ImapConfig) -> ImaplibTransport:
        """Connect to the configured server, mapping socket failures to
        :class:`errors.ConnectionError`."""
        factory = imaplib.IMAP4_SSL if config.use_ssl else imaplib.IMAP4
        try:
            imap = factory(config.host, config.port, timeout=config.timeout_seconds)
        except OSError as exc:
            raise errors.ConnectionError(
                f"Couldn't establish connection with IMAP service at "
                f"{config.host}:{config.port}: {exc}"
            ) from exc
        logger.info("imap_connected", host=config.host, port=config.port)
        return cls(imap)

    def _check(self, command: str, response: tuple[str, list]) -> list:
        status, data = response
        if status != "OK":
            raise errors.TransportError(f"IMAP {command} failed: {status} {data!r}")
        return data

    def select(self, encoded_name: str) -> None:
        try:
            self._check("SELECT", self.imap.select(quote(encoded_name)))
        except imaplib.IMAP4.error as exc:
            raise errors.TransportError(f"IMAP SELECT {encoded_name!r} failed: {exc}") from exc

    def uid_search(self, *criteria: str) -> list[str]:
        try:
            data = self._check("UID SEARCH", self.imap.uid("SEARCH", *criteria))
        except imaplib.IMAP4.error as exc:
            raise errors.TransportError(f"IMAP UID SEARCH failed: {exc}") from exc
        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    def list_mailboxes(self) -> list[MailboxListing]:
        try:
            data = self._check("LIST", self.imap.list())
        except imaplib.IMAP4.error as exc:
            raise errors.TransportError(f"IMAP LIST failed: {exc}") from exc
        return parse_list_response(data)

    def logout(self) -> None:
        try:
            self.imap.logout()
        except (imaplib.IMAP4.error, OSError) as exc:
            raise errors.TransportError(f"IMAP LOGOUT failed: {exc}") from exc

    def disconnect(self) -> None:
        # imaplib closes the socket itself on LOGOUT.
        if self.imap.state == "LOGOUT":
            return
        try:
            self.imap.shutdown()
        except OSError as exc:
            raise errors.TransportError(f"IMAP shutdown failed: {exc}") from exc
