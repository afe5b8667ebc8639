"""GmailClient: session lifecycle, mailbox context and message lookup."""

from __future__ import annotations

import atexit
import contextlib
import threading
from collections.abc import Callable, Iterator
from email.message import EmailMessage
from typing import TypeVar

import structlog

from . import errors
from .auth import Authenticator
from .config import ClientConfig, ImapConfig
from .delivery import SmtpMailer
from .labels import INBOX, LabelRegistry, SpecialMailbox
from .mailbox import Mailbox
from .message import Message
from .retry import with_retry
from .transport import ImaplibTransport, Transport, quote

logger = structlog.get_logger()

T = TypeVar("T")

TransportFactory = Callable[[ImapConfig], Transport]


class GmailClient:
    """Stateful client for one Gmail account.

    The IMAP session is opened and authenticated lazily: every component
    reaches the server through :meth:`connection`, which logs in on first
    use.  Mailbox switches are serialized by a client-owned lock and can be
    scoped so the previous selection is restored afterwards::

        gmail = GmailClient(ClientConfig(username="jane"), authenticator)
        gmail.mailbox("Work", lambda box: box.count("UNSEEN"))
        message = gmail.find("<CAF3x@mail.gmail.com>")
    """

    def __init__(
        self,
        config: ClientConfig,
        authenticator: Authenticator | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        mailer: SmtpMailer | None = None,
    ) -> None:
        self.config = config
        self._authenticator = authenticator
        self._transport_factory: TransportFactory = transport_factory or ImaplibTransport.open
        if mailer is None:
            smtp = config.smtp
            if smtp.username is None:
                smtp = smtp.model_copy(update={"username": config.username})
            mailer = SmtpMailer(smtp)
        self._mailer = mailer

        self._transport: Transport | None = None
        self._logged_in = False
        self._logout_registered = False
        self._labels: LabelRegistry | None = None

        self._mailboxes: dict[str, Mailbox] = {}
        self._current_mailbox: Mailbox | None = None
        self._mailbox_stack: list[Mailbox | None] = []

        self._session_lock = threading.Lock()
        self._mailbox_lock = threading.RLock()

    @property
    def username(self) -> str:
        return self.config.username

    @property
    def mail_domain(self) -> str:
        return self.config.mail_domain

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, raise_errors: bool = False) -> Transport | None:
        """Open a new IMAP session, replacing any existing one.

        Returns the transport, or ``None`` when the server is unreachable
        and *raise_errors* is false.
        """
        open_transport = with_retry(
            self.config.retry,
            retryable_exceptions=(errors.ConnectionError,),
        )(self._transport_factory)
        try:
            transport = open_transport(self.config.imap)
        except errors.ConnectionError as exc:
            logger.warning("imap_connect_failed", host=self.config.imap.host, error=str(exc))
            if raise_errors:
                raise
            return None

        previous = self._transport
        if previous is not None:
            # A fresh session has nothing selected.
            with self._mailbox_lock:
                self._current_mailbox = None
        self._transport = transport
        self._logged_in = False
        if previous is not None:
            self._close(previous)
        return transport

    def connect_strict(self) -> Transport:
        """Like :meth:`connect` but raises :class:`errors.ConnectionError`."""
        transport = self.connect(raise_errors=True)
        assert transport is not None
        return transport

    def connection(self) -> Transport:
        """Return the authenticated transport, logging in if necessary.

        The first successful login schedules :meth:`logout` to run at
        interpreter exit.
        """
        if not self._logged_in:
            with self._session_lock:
                if not self._logged_in:
                    self.login_strict()
                    if not self._logout_registered:
                        atexit.register(self.logout)
                        self._logout_registered = True
        transport = self._transport
        if transport is None:
            raise errors.ConnectionError("IMAP session was disconnected")
        return transport

    conn = connection

    def login(self, raise_errors: bool = False) -> bool:
        """Authenticate the session with the configured strategy.

        Connects first when no session exists.  Returns whether the login
        succeeded; with *raise_errors* failures propagate instead.
        """
        if self._authenticator is None:
            raise NotImplementedError(
                f"{type(self).__name__} has no authenticator; "
                "pass one to the constructor or override login()"
            )
        try:
            transport = self._transport
            if transport is None:
                transport = self.connect_strict()
            self._authenticator.authenticate(transport)
        except (errors.ConnectionError, errors.AuthenticationError) as exc:
            logger.warning("imap_login_failed", username=self.username, error=str(exc))
            if raise_errors:
                raise
            return False

        self._logged_in = True
        logger.info("imap_logged_in", username=self.username)
        return True

    def login_strict(self) -> None:
        """Like :meth:`login` but raises on failure."""
        self.login(raise_errors=True)

    @property
    def logged_in(self) -> bool:
        return self._logged_in

    def logout(self) -> bool:
        """Log out of the session.  Best effort: never raises.

        The client is marked logged out even when the server command fails.
        """
        try:
            if self._transport is None or not self._logged_in:
                return False
            self._transport.logout()
        except Exception as exc:
            logger.warning("imap_logout_failed", username=self.username, error=str(exc))
            return False
        finally:
            self._logged_in = False
        logger.info("imap_logged_out", username=self.username)
        return True

    def disconnect(self) -> None:
        """Drop the transport whatever the login state.  No-op if never connected."""
        transport, self._transport = self._transport, None
        self._logged_in = False
        with self._mailbox_lock:
            self._current_mailbox = None
        if self._logout_registered:
            atexit.unregister(self.logout)
            self._logout_registered = False
        if transport is not None:
            self._close(transport)

    def _close(self, transport: Transport) -> None:
        try:
            transport.disconnect()
        except Exception as exc:
            logger.warning("imap_disconnect_failed", username=self.username, error=str(exc))
            return
        logger.info("imap_disconnected", username=self.username)

    def __enter__(self) -> GmailClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.logout()
        self.disconnect()

    # ------------------------------------------------------------------
    # Mailbox context
    # ------------------------------------------------------------------

    @property
    def labels(self) -> LabelRegistry:
        if self._labels is None:
            self._labels = LabelRegistry(self.connection)
        return self._labels

    @property
    def mailboxes(self) -> dict[str, Mailbox]:
        return self._mailboxes

    @property
    def current_mailbox(self) -> Mailbox | None:
        return self._current_mailbox

    @property
    def mailbox_stack(self) -> tuple[Mailbox | None, ...]:
        return tuple(self._mailbox_stack)

    def mailbox(
        self,
        name: str | SpecialMailbox,
        action: Callable[[Mailbox], T] | None = None,
    ) -> Mailbox | T:
        """Select mailbox *name*, or run *action* with it selected.

        Without *action* the mailbox stays selected and its handle is
        returned.  With *action*, ``action(mailbox)`` runs while the mailbox
        is selected and its result is returned; the previous selection is
        restored afterwards, even when *action* raises.
        """
        if action is None:
            with self._mailbox_lock:
                return self._switch_to(self._resolve(name))
        with self.select_mailbox(name) as mailbox:
            return action(mailbox)

    label = in_label = in_mailbox = mailbox

    @contextlib.contextmanager
    def select_mailbox(self, name: str | SpecialMailbox) -> Iterator[Mailbox]:
        """Scope guard: select *name* for the duration of the ``with`` block.

        The context lock is held until the block exits so no other thread
        can change the selection underneath it.
        """
        with self._mailbox_lock:
            previous = self._current_mailbox
            mailbox = self._switch_to(self._resolve(name))
            self._mailbox_stack.append(previous)
            try:
                yield mailbox
            finally:
                self._switch_to(self._mailbox_stack.pop())

    def inbox(self, action: Callable[[Mailbox], T] | None = None) -> Mailbox | T:
        """Shorthand for ``mailbox("INBOX", action)``."""
        return self.mailbox(INBOX, action)

    def _resolve(self, name: str | SpecialMailbox) -> Mailbox:
        canonical = self.labels.localize(name)
        mailbox = self._mailboxes.get(canonical)
        if mailbox is None:
            mailbox = self._mailboxes[canonical] = Mailbox(self, canonical)
        return mailbox

    def _switch_to(self, mailbox: Mailbox | None) -> Mailbox | None:
        if mailbox is self._current_mailbox:
            return mailbox
        if mailbox is not None:
            try:
                self.connection().select(mailbox.encoded_name)
            except Exception:
                # A failed SELECT leaves the session with nothing selected.
                self._current_mailbox = None
                raise
            logger.debug("mailbox_selected", mailbox=mailbox.name)
        self._current_mailbox = mailbox
        return mailbox

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, message_id: str) -> Message:
        """Find the message whose ``Message-ID`` header is *message_id*.

        Searches the all-mail view with Gmail's ``X-GM-RAW`` extension and
        raises :class:`errors.NotFoundError` when nothing matches.
        """
        message_id = str(message_id).strip()

        def _lookup(mailbox: Mailbox) -> Message:
            uids = self.connection().uid_search("X-GM-RAW", quote(f"rfc822msgid:{message_id}"))
            if not uids:
                raise errors.NotFoundError(f"Can't find message with ID {message_id}")
            return Message(mailbox, uids[0])

        return self.mailbox(SpecialMailbox.ALL, _lookup)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def compose(self, message: EmailMessage | None = None) -> EmailMessage:
        """Return *message* (or a new one) with ``From`` defaulted to the account."""
        if message is None:
            message = EmailMessage()
        if message["From"] is None:
            message["From"] = self.username
        return message

    def deliver(self, message: EmailMessage | None = None, raise_errors: bool = False) -> bool:
        """Compose and send *message* over SMTP.

        Returns whether delivery succeeded; with *raise_errors* a
        :class:`errors.DeliveryError` propagates instead.
        """
        message = self.compose(message)
        try:
            self._mailer.send(message)
        except errors.DeliveryError as exc:
            logger.warning("email_delivery_failed", username=self.username, error=str(exc))
            if raise_errors:
                raise
            return False
        return True

    def deliver_strict(self, message: EmailMessage | None = None) -> None:
        """Like :meth:`deliver` but raises :class:`errors.DeliveryError`."""
        self.deliver(message, raise_errors=True)

    def __repr__(self) -> str:
        state = "connected" if self._logged_in else "disconnected"
        return f"<GmailClient 0x{id(self):04x} ({self.username}) {state}>"
