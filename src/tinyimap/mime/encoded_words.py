# tinyimap/mime/encoded_words.py
from __future__ import annotations

import base64
import binascii
import codecs
from typing import List, Optional, Tuple

from tinyimap.errors import DecodeError, UnsupportedEncodingError


def _lookup_charset(name: str) -> str:
    try:
        return codecs.lookup(name).name
    except LookupError as e:
        raise DecodeError(f"unknown charset {name!r}") from e


def _b64decode(payload: str) -> bytes:
    padded = payload + "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"malformed base64 in encoded word: {payload!r}") from e


def _split_encoded_word(text: str, start: int) -> Optional[Tuple[str, str, str, int]]:
    """
    Split the encoded word whose "=?" sits at `start`.
    Returns (charset, sub_encoding, payload, index_of_closing_equals) or None
    when the text after "=?" is not a complete encoded word.
    """
    charset_end = text.find("?", start + 2)
    if charset_end == -1:
        return None
    enc_end = text.find("?", charset_end + 1)
    if enc_end == -1:
        return None
    payload_end = text.find("?=", enc_end + 1)
    if payload_end == -1:
        return None
    return (
        text[start + 2 : charset_end],
        text[charset_end + 1 : enc_end],
        text[enc_end + 1 : payload_end],
        payload_end + 1,
    )


def _decode_q(payload: str, charset: str) -> str:
    out: List[str] = []
    pending = bytearray()

    def flush() -> None:
        if pending:
            out.append(pending.decode(charset, errors="replace"))
            pending.clear()

    j = 0
    while j < len(payload):
        ch = payload[j]
        if ch == "=":
            hex_pair = payload[j + 1 : j + 3]
            try:
                if len(hex_pair) != 2:
                    raise ValueError(hex_pair)
                pending.append(int(hex_pair, 16))
            except ValueError as e:
                raise DecodeError(f"malformed =XX escape in encoded word: {payload!r}") from e
            j += 3
            continue
        flush()
        out.append(ch)
        j += 1

    flush()
    return "".join(out)


def decode_encoded_words(text: str) -> str:
    """
    Decode every RFC 2047 `=?charset?B|Q?payload?=` run in `text`.

    Characters outside encoded words are copied as-is. A single space directly
    after an encoded word is dropped so adjacent words join up.
    """
    out: List[str] = []
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if ch != "=" or i + 1 >= n or text[i + 1] != "?":
            out.append(ch)
            i += 1
            continue

        parts = _split_encoded_word(text, i)
        if parts is None:
            out.append(ch)
            i += 1
            continue

        charset_name, sub_encoding, payload, end = parts
        mode = sub_encoding.upper()
        if mode == "B":
            charset = _lookup_charset(charset_name)
            out.append(_b64decode(payload).decode(charset, errors="replace"))
        elif mode == "Q":
            charset = _lookup_charset(charset_name)
            out.append(_decode_q(payload, charset))
        else:
            raise UnsupportedEncodingError(
                f"unsupported encoded-word sub-encoding {sub_encoding!r}"
            )

        i = end + 1
        if i < n and text[i] == " ":
            i += 1

    return "".join(out)
