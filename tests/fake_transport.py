# tests/fake_transport.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Tuple, Union


def _as_line(line: Union[str, bytes]) -> bytes:
    data = line.encode("utf-8") if isinstance(line, str) else line
    if not data.endswith(b"\n"):
        data += b"\r\n"
    return data


@dataclass
class FakeTransport:
    """
    Scripted in-memory byte stream for testing IMAPClient.

      - feed(): queue server lines for the client to read
      - on_write(prefix, ...): queue lines once the client writes a line starting with prefix
        (each reply fires once, in registration order)
      - writes: every write the client made, as decoded strings

    read() blocks like a socket; it raises OSError after `read_timeout` seconds
    so a broken test fails instead of hanging.
    """

    read_timeout: float = 5.0

    writes: List[str] = field(default_factory=list)
    closed: bool = False

    # If True, the next write raises OSError (for error paths).
    fail_next_write: bool = False

    _incoming: bytearray = field(default_factory=bytearray)
    _replies: List[Tuple[str, List[bytes]]] = field(default_factory=list)
    _cond: threading.Condition = field(default_factory=threading.Condition)

    # --- scripting -------------------------------------------------------

    def feed(self, *lines: Union[str, bytes]) -> None:
        with self._cond:
            for line in lines:
                self._incoming += _as_line(line)
            self._cond.notify_all()

    def feed_raw(self, data: bytes) -> None:
        with self._cond:
            self._incoming += data
            self._cond.notify_all()

    def on_write(self, prefix: str, *lines: Union[str, bytes]) -> None:
        with self._cond:
            self._replies.append((prefix, [_as_line(line) for line in lines]))

    def finish(self) -> None:
        """Simulate the server closing the stream once queued lines are read."""
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    @property
    def sent(self) -> List[str]:
        return [w.rstrip("\r\n") for w in self.writes]

    # --- Transport protocol ----------------------------------------------

    def write(self, data: bytes) -> None:
        with self._cond:
            if self.fail_next_write:
                self.fail_next_write = False
                raise OSError("FakeTransport forced write failure")
            if self.closed:
                raise OSError("FakeTransport is closed")

            text = data.decode("utf-8")
            self.writes.append(text)
            for i, (prefix, lines) in enumerate(self._replies):
                if text.startswith(prefix):
                    del self._replies[i]
                    for line in lines:
                        self._incoming += line
                    break
            self._cond.notify_all()

    def read(self, size: int = 1) -> bytes:
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._incoming or self.closed, timeout=self.read_timeout
            )
            if not ready:
                raise OSError("FakeTransport read timed out")
            if not self._incoming:
                return b""
            chunk = bytes(self._incoming[:size])
            del self._incoming[:size]
            return chunk

    def close(self) -> None:
        self.finish()
