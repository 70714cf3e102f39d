from tinyimap.auth import OAuth2Auth, PasswordAuth
from tinyimap.config import IMAPConfig
from tinyimap.errors import (
    AuthError,
    ConfigError,
    DecodeError,
    IMAPError,
    InvalidArgumentError,
    ProtocolError,
    TinyIMAPError,
    TransportError,
)
from tinyimap.imap import IMAPClient, SessionState
from tinyimap.mime import parse_message
from tinyimap.models import Attachment, Message


__all__ = [
    "IMAPClient",
    "IMAPConfig",
    "SessionState",
    "Message",
    "Attachment",
    "parse_message",
    "PasswordAuth",
    "OAuth2Auth",
    "TinyIMAPError",
    "ConfigError",
    "IMAPError",
    "ProtocolError",
    "TransportError",
    "AuthError",
    "InvalidArgumentError",
    "DecodeError",
]
