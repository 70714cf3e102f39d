# tinyimap/imap/client.py
from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional, Set, Union

from tinyimap.auth import AuthContext, AuthMechanism, xoauth2_string
from tinyimap.config import IMAPConfig
from tinyimap.errors import (
    ConfigError,
    InvalidArgumentError,
    ProtocolError,
    TransportError,
    UnsupportedAuthMechanismError,
)
from tinyimap.imap.response import (
    TAG,
    Response,
    ResponseKind,
    classify,
    literal_size,
    number_after,
    number_before,
    parse_capabilities,
)
from tinyimap.imap.transport import LineReader, SocketTransport, Transport
from tinyimap.mime import PartHandler, parse_message
from tinyimap.models import Message
from tinyimap.utils import parse_list_mailbox_name, quote

logger = logging.getLogger(__name__)

# RFC 3501 IMAP system flags
SEEN = r"\Seen"
ANSWERED = r"\Answered"
FLAGGED = r"\Flagged"
DELETED = r"\Deleted"
DRAFT = r"\Draft"

MailCallback = Callable[["IMAPClient", str], None]


class SessionState(Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    SELECTED = "selected"
    LOGGED_OUT = "logged_out"


@dataclass(frozen=True)
class FolderStatus:
    name: str
    exists: int
    recent: int
    unseen: int


@dataclass(eq=False)
class IMAPClient:
    """
    One IMAP session over an already connected transport.

    Commands are strictly serialized: each call writes one tagged command and
    reads until the tagged completion line. The only call meant to run
    concurrently with another is cancel_wait(), which ends an idle() blocked
    in a different thread.
    """
    transport: Transport

    part_handler: Optional[PartHandler] = None
    on_new_mail: Optional[MailCallback] = None
    on_wait_interrupted: Optional[MailCallback] = None
    max_line_length: Optional[int] = None

    state: SessionState = field(default=SessionState.UNCONNECTED, init=False)
    current_folder: str = field(default="", init=False)
    message_count: int = field(default=0, init=False)
    recent_count: int = field(default=0, init=False)
    unseen_count: int = field(default=0, init=False)
    capabilities: Set[str] = field(default_factory=set, init=False)

    _reader: LineReader = field(init=False, repr=False)
    # held for the whole of every command
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    # guards transport writes and the idling flag
    _state_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _idling: bool = field(default=False, init=False, repr=False)
    _idle_thread: Optional[int] = field(default=None, init=False, repr=False)
    _idle_finished: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _idle_result: Optional[str] = field(default=None, init=False, repr=False)

    @classmethod
    def from_config(cls, config: IMAPConfig, **kwargs) -> "IMAPClient":
        """Open a socket for `config`, read the greeting and authenticate."""
        if not config.host:
            raise ConfigError("IMAP host required")

        port = config.effective_port
        transport = SocketTransport.open(
            config.host, port, use_ssl=config.use_ssl, timeout=config.timeout
        )
        client = cls(transport, **kwargs)
        try:
            client.connect()
            if config.auth is not None:
                config.auth.apply_imap(client, AuthContext(host=config.host, port=port))
        except Exception:
            client.close()
            raise
        return client

    def __post_init__(self) -> None:
        self._reader = LineReader(self.transport, max_line_length=self.max_line_length)
        self._idle_finished.set()

    @property
    def is_idling(self) -> bool:
        return self._idling

    # -----------------------
    # Wire helpers
    # -----------------------

    def _write_line(self, line: str, *, log_as: Optional[str] = None) -> None:
        # caller holds _state_lock
        if self.state is SessionState.LOGGED_OUT:
            raise TransportError("IMAP session is closed")
        logger.debug(">> %s", line if log_as is None else log_as)
        try:
            self.transport.write(line.encode("utf-8") + b"\r\n")
        except OSError as e:
            self.close()
            raise TransportError(f"IMAP write failed: {e}") from e

    def _send(self, line: str, *, log_as: Optional[str] = None) -> None:
        with self._state_lock:
            self._write_line(line, log_as=log_as)

    def _command(self, command: str, *, log_as: Optional[str] = None) -> None:
        self._send(f"{TAG} {command}", log_as=None if log_as is None else f"{TAG} {log_as}")

    def _read_bytes(self) -> bytes:
        if self.state is SessionState.LOGGED_OUT:
            raise TransportError("IMAP session is closed")
        try:
            return self._reader.read_line()
        except TransportError:
            self.close()
            raise

    def _read(self) -> Response:
        raw = self._read_bytes().decode("utf-8", errors="replace")
        logger.debug("<< %s", raw.rstrip("\r\n"))
        return classify(raw)

    def _drain(self, on_line: Optional[Callable[[Response], None]] = None) -> Response:
        """Read until the tagged completion line and return it."""
        while True:
            resp = self._read()
            if resp.kind is ResponseKind.TAGGED:
                return resp
            if on_line is not None:
                on_line(resp)

    @staticmethod
    def _expect_ok(resp: Response, what: str) -> None:
        if not resp.ok:
            raise ProtocolError(
                f"{what} failed: {resp.detail or resp.text}",
                line=resp.text,
                detail=resp.detail,
            )

    def _reset_folder(self) -> None:
        self.current_folder = ""
        self.message_count = 0
        self.recent_count = 0
        self.unseen_count = 0

    # -----------------------
    # Connection / auth
    # -----------------------

    def connect(self, *, fetch_capabilities: bool = True) -> str:
        """Read and check the server greeting. Returns the greeting line."""
        with self._lock:
            greeting = self._read()
            if not greeting.is_greeting:
                raise ProtocolError(
                    f"unexpected IMAP greeting: {greeting.text!r}",
                    line=greeting.text,
                )
            self.state = SessionState.CONNECTED
            logger.info("IMAP server ready: %s", greeting.text)

            if fetch_capabilities:
                self.capability()
            return greeting.text

    def capability(self) -> Set[str]:
        with self._lock:
            self._command("CAPABILITY")
            caps: Set[str] = set()

            def _collect(resp: Response) -> None:
                if resp.kind is ResponseKind.UNTAGGED:
                    caps.update(parse_capabilities(resp))

            self._expect_ok(self._drain(_collect), "CAPABILITY")
            self.capabilities = caps
            return set(caps)

    def login(self, username: str, password: str) -> None:
        with self._lock:
            self._command(
                f"LOGIN {quote(username)} {quote(password)}",
                log_as=f"LOGIN {quote(username)} ****",
            )
            self._expect_ok(self._drain(), "LOGIN")
            self.state = SessionState.AUTHENTICATED
            logger.info("logged in as %s", username)

    def authenticate(
        self,
        mechanism: Union[AuthMechanism, str],
        username: str,
        secret: str,
    ) -> None:
        """
        SASL authentication. `secret` is the password for PLAIN and the access
        token for XOAUTH2.
        """
        name = mechanism.value if isinstance(mechanism, AuthMechanism) else str(mechanism).upper()
        if name == AuthMechanism.PLAIN.value:
            raw = f"\0{username}\0{secret}".encode("utf-8")
            payload = base64.b64encode(raw).decode("ascii")
        elif name == AuthMechanism.XOAUTH2.value:
            payload = xoauth2_string(username, secret)
        else:
            raise UnsupportedAuthMechanismError(f"unsupported auth mechanism {mechanism!r}")

        with self._lock:
            self._command(f"AUTHENTICATE {name}")
            resp = self._read()
            if resp.kind is not ResponseKind.CONTINUATION:
                if resp.kind is not ResponseKind.TAGGED:
                    resp = self._drain()
                raise ProtocolError(
                    f"AUTHENTICATE {name}: server did not ask for credentials: {resp.text!r}",
                    line=resp.text,
                    detail=resp.detail,
                )

            self._send(payload, log_as="<credentials>")

            def _answer_challenge(r: Response) -> None:
                # XOAUTH2 failures come back as a challenge; an empty reply lets the server finish
                if r.kind is ResponseKind.CONTINUATION:
                    self._send("", log_as="<empty>")

            self._expect_ok(self._drain(_answer_challenge), f"AUTHENTICATE {name}")
            self.state = SessionState.AUTHENTICATED
            logger.info("authenticated as %s via %s", username, name)

    def logout(self) -> str:
        """Send LOGOUT, expect "* BYE", then close the transport."""
        with self._lock:
            self._command("LOGOUT")
            first = self._read()
            if not first.text.startswith("* BYE"):
                raise ProtocolError(f"unexpected LOGOUT response: {first.text!r}", line=first.text)

            resp = first
            try:
                while resp.kind is not ResponseKind.TAGGED:
                    resp = self._read()
            except TransportError:
                logger.debug("server closed the stream after BYE")
            finally:
                self.close()

            logger.info("logged out")
            return first.text

    def close(self) -> None:
        """Drop the transport without a LOGOUT exchange."""
        if self.state is SessionState.LOGGED_OUT:
            return
        self.state = SessionState.LOGGED_OUT
        self._reset_folder()
        try:
            self.transport.close()
        except OSError as e:
            logger.debug("error closing transport: %s", e)

    def __enter__(self) -> "IMAPClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -----------------------
    # Folders
    # -----------------------

    def list_folders(self, pattern: str = "*") -> Iterator[str]:
        """
        Lazily yield folder names matching `pattern`.

        The command is sent on first iteration and its whole response is read
        before the first name is yielded, so the caller may issue other commands
        (select_folder, ...) from inside the loop. A non-OK completion raises
        ProtocolError once the names are exhausted.
        """
        names: List[str] = []

        def _collect(resp: Response) -> None:
            if resp.kind is ResponseKind.UNTAGGED and resp.payload.upper().startswith("LIST"):
                name = parse_list_mailbox_name(resp.text)
                if name:
                    names.append(name)

        with self._lock:
            self._command(f'LIST "" {quote(pattern)}')
            resp = self._drain(_collect)

        yield from names
        self._expect_ok(resp, "LIST")

    def select_folder(self, folder: str) -> FolderStatus:
        with self._lock:
            self._command(f"SELECT {quote(folder)}")
            self._reset_folder()
            self.current_folder = folder

            def _counts(resp: Response) -> None:
                if resp.kind is not ResponseKind.UNTAGGED:
                    return
                upper = resp.text.upper()
                if "EXISTS" in upper:
                    n = number_before(resp, "EXISTS")
                    if n is not None:
                        self.message_count = n
                elif "RECENT" in upper:
                    n = number_before(resp, "RECENT")
                    if n is not None:
                        self.recent_count = n
                elif "UNSEEN" in upper:
                    n = number_after(resp, "UNSEEN")
                    if n is not None:
                        self.unseen_count = n

            resp = self._drain(_counts)
            if not resp.ok:
                self._reset_folder()
                if self.state is SessionState.SELECTED:
                    self.state = SessionState.AUTHENTICATED
                raise ProtocolError(resp.detail or resp.text, line=resp.text, detail=resp.detail)

            self.state = SessionState.SELECTED
            logger.info(
                "selected %r: %d messages, %d recent, unseen %d",
                folder, self.message_count, self.recent_count, self.unseen_count,
            )
            return FolderStatus(
                name=folder,
                exists=self.message_count,
                recent=self.recent_count,
                unseen=self.unseen_count,
            )

    def get_email_count(self) -> int:
        return self.message_count

    # -----------------------
    # Messages
    # -----------------------

    def fetch_raw(self, message_id: int) -> str:
        """Raw RFC 822 payload of message `message_id`, untrimmed."""
        with self._lock:
            self._command(f"FETCH {message_id} BODY[]")
            first = self._read()
            if f"{message_id} FETCH" not in first.text.upper():
                if first.kind is not ResponseKind.TAGGED:
                    first = self._drain()
                raise ProtocolError(
                    f"FETCH {message_id} failed: {first.detail or first.text}",
                    line=first.text,
                    detail=first.detail,
                )

            size = literal_size(first)
            if size is not None:
                buf = bytearray()
                while len(buf) < size:
                    buf += self._read_bytes()
                payload = bytes(buf[:size]).decode("utf-8", errors="replace")
                resp = self._drain()
            else:
                parts: List[str] = []
                while True:
                    resp = self._read()
                    if resp.kind is ResponseKind.TAGGED:
                        break
                    if resp.raw.startswith((".", ")", "*")):
                        continue
                    parts.append(resp.raw)
                payload = "".join(parts)

            self._expect_ok(resp, f"FETCH {message_id}")
            return payload

    def fetch_message(self, message_id: int) -> Message:
        return parse_message(self.fetch_raw(message_id), handler=self.part_handler)

    def delete(self, message_id: int) -> None:
        """Flag the message \\Deleted and expunge the folder."""
        with self._lock:
            self._command(f"UID STORE {message_id} +FLAGS (\\Deleted)")
            self._expect_ok(self._drain(), "UID STORE")
            self._command("EXPUNGE")
            self._expect_ok(self._drain(), "EXPUNGE")

    def set_flag(self, message_id: int, flag: str) -> bool:
        return self._store(message_id, "+flags", flag)

    def remove_flag(self, message_id: int, flag: str) -> bool:
        return self._store(message_id, "-flags", flag)

    def mark_as_read(self, message_id: int) -> bool:
        return self.set_flag(message_id, SEEN)

    def _store(self, message_id: int, mode: str, flag: str) -> bool:
        if not flag.startswith("\\"):
            raise InvalidArgumentError(f"invalid flag {flag!r}: flags start with a backslash")

        with self._lock:
            self._command(f"STORE {message_id} {mode} {flag}")
            resp = self._drain()
            return "OK STORE" in resp.text.upper()

    # -----------------------
    # IDLE
    # -----------------------

    def idle(self) -> str:
        """
        Block in IDLE until the server completes the command, normally after
        cancel_wait() from another thread. Untagged updates are reported through
        on_new_mail (lines mentioning RECENT) or on_wait_interrupted.
        Returns the tagged completion line.
        """
        with self._lock:
            try:
                # cancel_wait sees either no idle at all or one that is idling
                with self._state_lock:
                    self._idle_result = None
                    self._idle_thread = threading.get_ident()
                    self._idle_finished.clear()
                    self._idling = True
                    self._write_line(f"{TAG} IDLE")
                logger.info("idling on %r", self.current_folder)

                while True:
                    resp = self._read()
                    if resp.kind is ResponseKind.CONTINUATION:
                        continue
                    if resp.kind is ResponseKind.TAGGED:
                        self._idle_result = resp.text
                        break

                    if "RECENT" in resp.text.upper():
                        callback = self.on_new_mail
                    else:
                        callback = self.on_wait_interrupted
                    if callback is not None:
                        callback(self, resp.text)
            finally:
                with self._state_lock:
                    self._idling = False
                self._idle_thread = None
                self._idle_finished.set()

            logger.info("idle finished: %s", resp.text)
            self._expect_ok(resp, "IDLE")
            return resp.text

    def cancel_wait(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        End a running idle(). Sends "done" only while idling.

        Called from another thread, waits (up to `timeout`) for the idle loop to
        read the completion line and returns it. Returns None when no idle loop
        is running, when called from inside an idle callback, or on timeout.
        """
        with self._state_lock:
            was_idling = self._idling
            if was_idling:
                self._write_line("done")
            self._idling = False

        if self._idle_thread == threading.get_ident():
            return None
        if not was_idling and self._idle_finished.is_set():
            return None
        if not self._idle_finished.wait(timeout):
            return None
        return self._idle_result
