from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class Attachment:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"Attachment("
            f"name={self.name!r}, "
            f"content_type={self.content_type!r}, "
            f"size={len(self.data)} bytes)"
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "content_type": self.content_type,
            "size": self.size,
        }
