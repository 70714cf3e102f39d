# tinyimap/imap/response.py
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set

# Every command is sent with this literal tag; the session never pipelines.
TAG = "."

LITERAL_RE = re.compile(r"\{(\d+)\}\s*$")


class ResponseKind(Enum):
    CONTINUATION = "continuation"
    UNTAGGED = "untagged"
    TAGGED = "tagged"
    DATA = "data"


@dataclass(frozen=True)
class Response:
    raw: str
    kind: ResponseKind
    payload: str = ""
    status: str = ""
    detail: str = ""

    @property
    def text(self) -> str:
        """The line without its CRLF."""
        return self.raw.rstrip("\r\n")

    @property
    def is_greeting(self) -> bool:
        return self.kind is ResponseKind.UNTAGGED and self.text.startswith("* OK")

    @property
    def ok(self) -> bool:
        return self.kind is ResponseKind.TAGGED and self.status == "OK"

    def tokens(self) -> List[str]:
        return self.payload.split()


def classify(raw: str, tag: str = TAG) -> Response:
    """
    Sort one response line into continuation / untagged / tagged / data.

    The raw line is kept untouched; matching is done on the CRLF-stripped text.
    """
    text = raw.rstrip("\r\n")

    if text.startswith("+"):
        return Response(raw=raw, kind=ResponseKind.CONTINUATION, payload=text[1:].strip())

    if text.startswith("*"):
        return Response(raw=raw, kind=ResponseKind.UNTAGGED, payload=text[1:].strip())

    if text == tag or text.startswith(tag + " "):
        rest = text[len(tag):].strip()
        status, _, detail = rest.partition(" ")
        return Response(
            raw=raw,
            kind=ResponseKind.TAGGED,
            payload=rest,
            status=status.upper(),
            detail=detail.strip(),
        )

    return Response(raw=raw, kind=ResponseKind.DATA, payload=text)


def parse_capabilities(response: Response) -> Set[str]:
    """'* CAPABILITY IMAP4rev1 IDLE AUTH=PLAIN' -> {"IMAP4REV1", "IDLE", "AUTH=PLAIN"}"""
    tokens = response.tokens()
    if not tokens or tokens[0].upper() != "CAPABILITY":
        return set()
    return {t.upper() for t in tokens[1:]}


def _to_int(token: str) -> Optional[int]:
    token = token.strip("[]()")
    return int(token) if token.isdigit() else None


def number_before(response: Response, keyword: str) -> Optional[int]:
    """'* 5 EXISTS' -> 5 for keyword EXISTS."""
    tokens = response.tokens()
    for i, tok in enumerate(tokens):
        if tok.upper().strip("[]") == keyword and i > 0:
            return _to_int(tokens[i - 1])
    return None


def number_after(response: Response, keyword: str) -> Optional[int]:
    """'* OK [UNSEEN 12] first unseen' -> 12 for keyword UNSEEN."""
    tokens = response.tokens()
    for i, tok in enumerate(tokens):
        if tok.upper().strip("[]") == keyword and i + 1 < len(tokens):
            return _to_int(tokens[i + 1])
    return None


def literal_size(response: Response) -> Optional[int]:
    """Size of the `{N}` literal announced at the end of the line, if any."""
    m = LITERAL_RE.search(response.text)
    return int(m.group(1)) if m else None
