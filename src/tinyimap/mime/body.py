# tinyimap/mime/body.py
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from tinyimap.errors import DecodeError
from tinyimap.mime.headers import split_header_params, unfold_headers
from tinyimap.models import Attachment, Message

logger = logging.getLogger(__name__)


class PartHandler(Protocol):
    """
    Hook for content types the parser does not know (calendar invites, ...).

    `claim_part` is asked before every built-in classification, at the top level
    and inside every multipart section. Return None to leave the part to the
    parser, or the index of the first line you did not consume to claim it.
    The parser resumes its boundary scan at that index, so it must not be
    smaller than `cursor`.
    """

    def claim_part(
        self,
        content_type: str,
        lines: Sequence[str],
        cursor: int,
        message: Message,
    ) -> Optional[int]:
        ...


@dataclass
class _PartInfo:
    content_type: str = "text/plain"
    boundary: str = ""
    filename: str = ""
    transfer_encoding: str = "plain"
    is_attachment: bool = False


def _read_part_headers(lines: Sequence[str], start: int) -> Tuple[_PartInfo, int]:
    headers, end = unfold_headers(lines, start)
    info = _PartInfo()
    type_name = ""

    for h in headers:
        key = h.name.lower()
        if key == "content-type":
            primary, params = split_header_params(h.value)
            info.content_type = primary or "text/plain"
            info.boundary = params.get("boundary", "")
            type_name = params.get("name", "")
        elif key == "content-disposition":
            primary, params = split_header_params(h.value)
            info.is_attachment = primary == "attachment"
            info.filename = params.get("filename", "")
        elif key == "content-transfer-encoding":
            info.transfer_encoding = h.value.strip().lower()

    if info.is_attachment and not info.filename:
        info.filename = type_name
    # body starts after the blank separator line
    return info, (end + 1 if end < len(lines) else end)


def _b64decode(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"malformed base64 in {what}") from e


def _claim(
    handler: Optional[PartHandler],
    content_type: str,
    lines: Sequence[str],
    cursor: int,
    message: Message,
) -> Optional[int]:
    if handler is None:
        return None
    claimed = handler.claim_part(content_type, lines, cursor, message)
    if claimed is None:
        return None
    return max(claimed, cursor)


def parse_section(
    boundary: str,
    lines: Sequence[str],
    cursor: int,
    message: Message,
    handler: Optional[PartHandler] = None,
) -> int:
    """
    Walk the parts delimited by `boundary` starting at `cursor`.

    Returns the index of the closing "--boundary--" line, or len(lines) when the
    section is never closed.
    """
    delimiter = "--" + boundary
    closing = delimiter + "--"
    i = cursor
    n = len(lines)

    while i < n:
        line = lines[i]
        if line == closing:
            return i
        if line != delimiter:
            i += 1
            continue

        part, i = _read_part_headers(lines, i + 1)

        if part.boundary:
            i = parse_section(part.boundary, lines, i, message, handler)

        claimed = _claim(handler, part.content_type, lines, i, message)
        if claimed is not None:
            i = claimed
            continue

        chunks: List[str] = []
        while i < n and lines[i] != delimiter and lines[i] != closing:
            chunks.append(lines[i])
            i += 1
        # lines[i] is the next marker; the loop above re-examines it

        if part.is_attachment:
            data = _b64decode("".join(chunks), f"attachment {part.filename!r}")
            message.attachments.append(
                Attachment(name=part.filename, content_type=part.content_type, data=data)
            )
        elif part.content_type == "text/plain":
            message.body_text = "\n".join(chunks).strip()
        elif part.content_type == "text/html":
            html = "\n".join(chunks).strip()
            if part.transfer_encoding == "base64":
                html = _b64decode(html, "text/html part").decode("utf-8", errors="replace")
            message.body_html = html
        else:
            logger.debug("dropping %s part", part.content_type)

    return i


def parse_body(
    message: Message,
    lines: Sequence[str],
    cursor: int,
    handler: Optional[PartHandler] = None,
) -> int:
    """
    Parse the body that starts at `cursor` using the message's already
    resolved content type and boundary. Returns the final cursor.
    """
    claimed = _claim(handler, message.content_type, lines, cursor, message)
    if claimed is not None:
        return claimed

    if message.content_type in ("text/plain", "text/html"):
        text = "".join(line.rstrip() + "\n" for line in lines[cursor:])
        if message.content_type == "text/plain":
            message.body_text = text
        else:
            message.body_html = text
        return len(lines)

    if not message.content_boundary:
        logger.debug("no boundary for %s body, leaving it empty", message.content_type)
        return cursor

    return parse_section(message.content_boundary, lines, cursor, message, handler)
