from tinyimap.models.attachment import Attachment
from tinyimap.models.message import Header, Message

__all__ = ["Attachment", "Header", "Message"]
