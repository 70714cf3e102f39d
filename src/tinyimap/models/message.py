from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional

from tinyimap.models.attachment import Attachment


class Header(NamedTuple):
    name: str
    value: str


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Message:
    """
    One parsed message. Header-derived fields hold the raw (possibly RFC 2047
    encoded) values; use `decoded_subject` for a readable subject.
    """
    headers: List[Header] = field(default_factory=list)

    subject: str = ""
    from_email: str = ""
    to: str = ""
    cc: str = ""
    bcc: str = ""
    reply_to: str = ""

    mime_version: float = 0.0
    content_type: str = "text/plain"
    content_boundary: str = ""
    date: datetime = field(default_factory=_now)
    is_reply: bool = False

    body_text: str = ""
    body_html: str = ""
    attachments: List[Attachment] = field(default_factory=list)

    raw: str = ""

    def get_header(self, name: str) -> Optional[str]:
        """First header called `name` (case-insensitive), later duplicates are ignored."""
        wanted = name.lower()
        for h in self.headers:
            if h.name.lower() == wanted:
                return h.value
        return None

    def get_all_headers(self, name: str) -> List[str]:
        wanted = name.lower()
        return [h.value for h in self.headers if h.name.lower() == wanted]

    @property
    def body(self) -> str:
        if self.body_html.strip():
            return self.body_html
        return self.body_text

    @property
    def decoded_subject(self) -> str:
        from tinyimap.mime.encoded_words import decode_encoded_words

        return decode_encoded_words(self.subject)

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "from": self.from_email,
            "to": self.to,
            "cc": self.cc,
            "bcc": self.bcc,
            "reply_to": self.reply_to,
            "date": self.date.isoformat(),
            "content_type": self.content_type,
            "is_reply": self.is_reply,
            "attachments": [a.to_dict() for a in self.attachments],
        }
