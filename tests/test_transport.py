"""Tests for gmail_session.transport."""

from __future__ import annotations

import imaplib
import socket
from unittest.mock import MagicMock, patch

import pytest

from gmail_session import errors
from gmail_session.config import ImapConfig
from gmail_session.transport import (
    ImaplibTransport,
    MailboxListing,
    Transport,
    parse_list_response,
    quote,
)


def _make_mock_imap() -> MagicMock:
    """Create a mock imaplib.IMAP4_SSL with programmed responses."""
    mock = MagicMock()
    mock.select.return_value = ("OK", [b"12"])
    mock.uid.return_value = ("OK", [b"3 5 8"])
    mock.list.return_value = (
        "OK",
        [
            b'(\\HasNoChildren) "/" "INBOX"',
            b'(\\All \\HasNoChildren) "/" "[Gmail]/All Mail"',
        ],
    )
    mock.logout.return_value = ("BYE", [b"LOGOUT Requested"])
    mock.state = "SELECTED"
    return mock


@pytest.fixture
def mock_imap() -> MagicMock:
    return _make_mock_imap()


@pytest.fixture
def transport(mock_imap: MagicMock) -> ImaplibTransport:
    return ImaplibTransport(mock_imap)


class TestOpen:
    def test_open_ssl(self):
        config = ImapConfig(host="imap.test.com", port=993, timeout_seconds=5.0)
        with patch("gmail_session.transport.imaplib.IMAP4_SSL") as MockSSL:
            transport = ImaplibTransport.open(config)
        MockSSL.assert_called_once_with("imap.test.com", 993, timeout=5.0)
        assert transport.imap is MockSSL.return_value

    def test_open_plain(self):
        config = ImapConfig(host="imap.test.com", port=143, use_ssl=False)
        with patch("gmail_session.transport.imaplib.IMAP4") as MockIMAP:
            ImaplibTransport.open(config)
        MockIMAP.assert_called_once_with("imap.test.com", 143, timeout=None)

    def test_open_unreachable(self):
        config = ImapConfig(host="nowhere.invalid")
        with patch("gmail_session.transport.imaplib.IMAP4_SSL") as MockSSL:
            MockSSL.side_effect = socket.gaierror("Name or service not known")
            with pytest.raises(errors.ConnectionError, match="nowhere.invalid"):
                ImaplibTransport.open(config)

    def test_satisfies_protocol(self, transport: ImaplibTransport):
        assert isinstance(transport, Transport)


class TestSelect:
    def test_select_quotes_name(self, transport: ImaplibTransport, mock_imap: MagicMock):
        transport.select("[Gmail]/All Mail")
        mock_imap.select.assert_called_once_with('"[Gmail]/All Mail"')

    def test_select_no_response(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.select.return_value = ("NO", [b"Unknown Mailbox"])
        with pytest.raises(errors.TransportError, match="SELECT"):
            transport.select("Missing")

    def test_select_protocol_error(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.select.side_effect = imaplib.IMAP4.abort("socket error")
        with pytest.raises(errors.TransportError):
            transport.select("INBOX")


class TestSearch:
    def test_uid_search(self, transport: ImaplibTransport, mock_imap: MagicMock):
        assert transport.uid_search("X-GM-RAW", '"rfc822msgid:a@b"') == ["3", "5", "8"]
        mock_imap.uid.assert_called_once_with("SEARCH", "X-GM-RAW", '"rfc822msgid:a@b"')

    def test_uid_search_empty(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.uid.return_value = ("OK", [b""])
        assert transport.uid_search("ALL") == []

    def test_uid_search_error(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.uid.side_effect = imaplib.IMAP4.error("BAD command")
        with pytest.raises(errors.TransportError):
            transport.uid_search("ALL")


class TestList:
    def test_list_mailboxes(self, transport: ImaplibTransport):
        assert transport.list_mailboxes() == [
            MailboxListing(flags=("\\HasNoChildren",), delimiter="/", name="INBOX"),
            MailboxListing(flags=("\\All", "\\HasNoChildren"), delimiter="/", name="[Gmail]/All Mail"),
        ]

    def test_parse_literal_and_nil_delimiter(self):
        data = [
            (b'(\\HasNoChildren) "/" {12}', b"Quote\"d name"),
            b"(\\Noselect) NIL Top",
            None,
            b"garbage",
        ]
        assert parse_list_response(data) == [
            MailboxListing(flags=("\\HasNoChildren",), delimiter="/", name='Quote"d name'),
            MailboxListing(flags=("\\Noselect",), delimiter=None, name="Top"),
        ]

    def test_parse_escaped_quoted_name(self):
        data = [b'() "/" "A \\"quoted\\" label"']
        assert parse_list_response(data)[0].name == 'A "quoted" label'


class TestLifecycle:
    def test_logout(self, transport: ImaplibTransport, mock_imap: MagicMock):
        transport.logout()
        mock_imap.logout.assert_called_once()

    def test_logout_error(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.logout.side_effect = OSError("reset")
        with pytest.raises(errors.TransportError):
            transport.logout()

    def test_disconnect(self, transport: ImaplibTransport, mock_imap: MagicMock):
        transport.disconnect()
        mock_imap.shutdown.assert_called_once()

    def test_disconnect_after_logout_skips_shutdown(self, transport: ImaplibTransport, mock_imap: MagicMock):
        mock_imap.state = "LOGOUT"
        mock_imap.shutdown.side_effect = OSError(9, "Bad file descriptor")
        transport.disconnect()
        mock_imap.shutdown.assert_not_called()


def test_quote_escapes():
    assert quote('a "b" \\c') == '"a \\"b\\" \\\\c"'
