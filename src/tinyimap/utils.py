# tinyimap/utils.py
from __future__ import annotations

from typing import Optional

_TRIM_CHARS = ' \t\r\n"'


def quote(arg: str) -> str:
    """Quote a string argument for an IMAP command line."""
    arg = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{arg}"'


def parse_list_mailbox_name(line: str) -> Optional[str]:
    """
    Mailbox name from a LIST response line:

        * LIST (\\HasNoChildren) "/" INBOX         -> INBOX
        * LIST (\\HasNoChildren) "/" "Sent Items"  -> Sent Items

    Normally the last whitespace-separated token with quotes trimmed; a quoted
    name that contains spaces is returned whole.
    """
    s = line.rstrip("\r\n").rstrip()
    if not s:
        return None

    if s.endswith('"'):
        i = len(s) - 2
        while i >= 0:
            if s[i] == '"' and (i == 0 or s[i - 1] != "\\"):
                break
            i -= 1
        if i >= 0:
            name = s[i + 1 : -1].replace('\\"', '"').replace("\\\\", "\\")
            return name or None

    name = s.split()[-1].strip(_TRIM_CHARS)
    return name or None
