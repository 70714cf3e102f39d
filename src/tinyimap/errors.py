# tinyimap/errors.py
from __future__ import annotations

from typing import Optional


class TinyIMAPError(Exception):
    """Base class for every error raised by tinyimap."""


class ConfigError(TinyIMAPError):
    pass


class IMAPError(TinyIMAPError):
    pass


class ProtocolError(IMAPError):
    """
    The server answered with something the session did not expect:
    a bad greeting, a missing continuation or a non-OK tagged status.

    `line` is the raw offending line (CRLF stripped), `detail` the server text
    after the status token when there is one.
    """

    def __init__(self, message: str, *, line: str = "", detail: Optional[str] = None):
        super().__init__(message)
        self.line = line
        self.detail = detail if detail is not None else message


class TransportError(IMAPError):
    """Reading from or writing to the byte stream failed, or it was closed."""


class AuthError(TinyIMAPError):
    pass


class UnsupportedAuthMechanismError(AuthError):
    pass


class InvalidArgumentError(TinyIMAPError, ValueError):
    pass


class DecodeError(TinyIMAPError):
    """Malformed base64/hex data or an unknown charset."""


class UnsupportedEncodingError(DecodeError):
    pass
