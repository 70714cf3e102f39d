# tinyimap/mime/parser.py
from __future__ import annotations

from typing import Optional

from tinyimap.mime.body import PartHandler, parse_body
from tinyimap.mime.headers import resolve_headers, split_lines, unfold_headers
from tinyimap.models import Message


def parse_message(raw: str, handler: Optional[PartHandler] = None) -> Message:
    """
    Turn one fetched payload into a Message.

    Headers are parsed and resolved first; the body parser relies on the
    resolved content type and boundary. `raw` is kept verbatim on the result.
    """
    lines = split_lines(raw)
    headers, blank = unfold_headers(lines, 0)

    message = Message(headers=headers, raw=raw)
    resolve_headers(message)
    parse_body(message, lines, blank + 1, handler)
    return message
