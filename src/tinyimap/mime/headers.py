# tinyimap/mime/headers.py
from __future__ import annotations

import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Sequence, Tuple

from tinyimap.models import Header, Message

logger = logging.getLogger(__name__)

_TRAILING_COMMENT_RE = re.compile(r"\s*\([^()]*\)\s*$")


def split_lines(raw: str) -> List[str]:
    """Split a payload on LF and drop the CR of every CRLF."""
    return [line.rstrip("\r") for line in raw.split("\n")]


def _is_continuation(line: str) -> bool:
    return line[:1] in (" ", "\t") and bool(line.strip())


def unfold_headers(lines: Sequence[str], start: int = 0) -> Tuple[List[Header], int]:
    """
    Read a header block starting at `start`.

    Returns the headers in encounter order and the index of the blank line that
    ends the block (len(lines) when there is none). Folded lines are joined to
    their header with a single space.
    """
    headers: List[Header] = []
    i = start
    n = len(lines)

    while i < n:
        if not lines[i].strip():
            break

        current = lines[i].strip()
        while i + 1 < n and _is_continuation(lines[i + 1]):
            i += 1
            current = current + " " + lines[i].strip()

        name, sep, value = current.partition(":")
        if sep:
            headers.append(Header(name.strip(), value.strip()))
        else:
            logger.debug("skipping header line without colon: %r", current)
        i += 1

    return headers, i


def split_header_params(value: str) -> Tuple[str, Dict[str, str]]:
    """
    'multipart/mixed; boundary="abc"' -> ("multipart/mixed", {"boundary": "abc"})

    The primary token is lower-cased, parameter names too; parameter values keep
    their case with one pair of surrounding quotes removed.
    """
    bits = value.split(";")
    primary = bits[0].strip().lower()
    params: Dict[str, str] = {}
    for bit in bits[1:]:
        key, sep, val = bit.strip().partition("=")
        if not sep:
            continue
        val = val.strip()
        if len(val) >= 2 and val.startswith('"') and val.endswith('"'):
            val = val[1:-1]
        params[key.strip().lower()] = val
    return primary, params


def parse_mime_version(value: str) -> float:
    token = value.split()[0] if value.split() else ""
    try:
        return float(token)
    except ValueError:
        logger.debug("unparseable MIME-Version %r, using 0", value)
        return 0.0


def parse_date(value: str) -> datetime:
    """
    Parse a Date header. A trailing "(CEST)"-style comment is ignored.
    Never raises: anything unparseable yields the current local time.
    """
    cleaned = _TRAILING_COMMENT_RE.sub("", value).strip()
    try:
        parsed: Optional[datetime] = parsedate_to_datetime(cleaned)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        logger.debug("unparseable Date %r, using now", value)
        return datetime.now().astimezone()
    if parsed.tzinfo is None:
        return parsed.astimezone()
    return parsed


def resolve_headers(message: Message) -> None:
    """
    Fill the derived fields of `message` from its header list.
    Like Message.get_header, the first occurrence of a name wins.
    """
    seen = set()
    for h in message.headers:
        key = h.name.lower()
        if key in seen:
            continue
        seen.add(key)

        if key == "subject":
            message.subject = h.value
        elif key == "to":
            message.to = h.value
        elif key == "cc":
            message.cc = h.value
        elif key == "bcc":
            message.bcc = h.value
        elif key == "from":
            message.from_email = h.value
        elif key == "reply-to":
            message.reply_to = h.value
        elif key == "mime-version":
            message.mime_version = parse_mime_version(h.value)
        elif key == "date":
            message.date = parse_date(h.value)
        elif key == "content-type":
            primary, params = split_header_params(h.value)
            message.content_type = primary or "text/plain"
            if primary.startswith("multipart/"):
                message.content_boundary = params.get("boundary", "")
        elif key == "htmlbody":
            message.body_html = h.value
        elif key == "plaintext":
            message.body_text = h.value

    message.is_reply = (
        message.get_header("References") is not None
        or message.get_header("In-Reply-To") is not None
    )
