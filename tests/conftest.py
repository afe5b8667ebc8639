"""Shared test fixtures for the gmail_session test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fakes import FakeAuthenticator, FakeTransport

from gmail_session import client as client_module
from gmail_session.client import GmailClient
from gmail_session.config import ClientConfig, ImapConfig, RetryConfig, SmtpConfig


@pytest.fixture(autouse=True)
def atexit_register(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Keep tests from registering real interpreter-exit handlers."""
    register = MagicMock()
    monkeypatch.setattr(client_module.atexit, "register", register)
    return register


@pytest.fixture(autouse=True)
def atexit_unregister(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    unregister = MagicMock()
    monkeypatch.setattr(client_module.atexit, "unregister", unregister)
    return unregister


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=2,
        initial_wait_seconds=0.0,
        max_wait_seconds=0.0,
        multiplier=1.0,
    )


@pytest.fixture
def client_config(retry_config: RetryConfig) -> ClientConfig:
    return ClientConfig(
        username="jane.doe",
        imap=ImapConfig(host="imap.test.com", port=993, use_ssl=True),
        smtp=SmtpConfig(host="smtp.test.com", port=587),
        retry=retry_config,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def authenticator() -> FakeAuthenticator:
    return FakeAuthenticator()


@pytest.fixture
def mailer() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(
    client_config: ClientConfig,
    authenticator: FakeAuthenticator,
    transport: FakeTransport,
    mailer: MagicMock,
) -> GmailClient:
    return GmailClient(
        client_config,
        authenticator,
        transport_factory=lambda _config: transport,
        mailer=mailer,
    )
