from tinyimap.imap.client import FolderStatus, IMAPClient, SessionState
from tinyimap.imap.response import Response, ResponseKind, classify
from tinyimap.imap.transport import LineReader, SocketTransport, Transport

__all__ = [
    "IMAPClient",
    "FolderStatus",
    "SessionState",
    "Response",
    "ResponseKind",
    "classify",
    "LineReader",
    "SocketTransport",
    "Transport",
]
