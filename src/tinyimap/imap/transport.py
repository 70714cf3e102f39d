# tinyimap/imap/transport.py
from __future__ import annotations

import logging
import socket
import ssl
from typing import Optional, Protocol

from tinyimap.errors import ProtocolError, TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """
    Connected byte stream used by IMAPClient.

    read() blocks until at least one byte is available and returns b"" once the
    peer has closed the stream.
    """

    def write(self, data: bytes) -> None:
        ...

    def read(self, size: int = 1) -> bytes:
        ...

    def close(self) -> None:
        ...


class SocketTransport:
    """Plain or TLS socket. `timeout` (seconds) bounds every blocking read."""

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._file = sock.makefile("rb")

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        *,
        use_ssl: bool = False,
        timeout: Optional[float] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> "SocketTransport":
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
            if use_ssl:
                ctx = ssl_context or ssl.create_default_context()
                sock = ctx.wrap_socket(sock, server_hostname=host)
        except OSError as e:
            raise TransportError(f"IMAP network error connecting to {host}:{port}: {e}") from e

        logger.debug("connected to %s:%s (ssl=%s)", host, port, use_ssl)
        return cls(sock)

    def write(self, data: bytes) -> None:
        self._sock.sendall(data)

    def read(self, size: int = 1) -> bytes:
        return self._file.read(size)

    def close(self) -> None:
        try:
            self._file.close()
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            logger.debug("socket already shut down")
        finally:
            self._sock.close()


class LineReader:
    """
    Frames a transport into LF-terminated lines.

    No length cap by default; pass `max_line_length` to reject runaway lines.
    """

    def __init__(self, transport: Transport, *, max_line_length: Optional[int] = None):
        self._transport = transport
        self.max_line_length = max_line_length

    def read_line(self) -> bytes:
        buf = bytearray()
        while True:
            try:
                chunk = self._transport.read(1)
            except OSError as e:
                raise TransportError(f"IMAP read failed: {e}") from e

            if not chunk:
                if not buf:
                    raise TransportError("IMAP connection closed by server")
                return bytes(buf)

            buf += chunk
            if chunk == b"\n":
                return bytes(buf)

            if self.max_line_length is not None and len(buf) > self.max_line_length:
                raise ProtocolError(
                    f"got more than {self.max_line_length} bytes in one line",
                    line=bytes(buf[:80]).decode("utf-8", errors="replace"),
                )
