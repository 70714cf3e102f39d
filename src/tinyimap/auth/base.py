from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tinyimap.imap.client import IMAPClient


class AuthMechanism(str, Enum):
    PLAIN = "PLAIN"
    XOAUTH2 = "XOAUTH2"


@dataclass(frozen=True)
class AuthContext:
    host: str
    port: int


class IMAPAuth(Protocol):
    def apply_imap(self, client: "IMAPClient", ctx: AuthContext) -> None:
        ...
