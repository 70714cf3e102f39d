from tinyimap.mime.body import PartHandler, parse_body, parse_section
from tinyimap.mime.encoded_words import decode_encoded_words
from tinyimap.mime.headers import parse_date, resolve_headers, split_lines, unfold_headers
from tinyimap.mime.parser import parse_message

__all__ = [
    "PartHandler",
    "decode_encoded_words",
    "parse_body",
    "parse_date",
    "parse_message",
    "parse_section",
    "resolve_headers",
    "split_lines",
    "unfold_headers",
]
