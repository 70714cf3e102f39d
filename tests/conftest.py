# tests/conftest.py

import pytest

from fake_transport import FakeTransport
from tinyimap import IMAPClient


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    """A client past the greeting and CAPABILITY exchange, with writes cleared."""
    transport.feed("* OK [CAPABILITY IMAP4rev1] Dovecot ready.")
    transport.on_write(
        ". CAPABILITY",
        "* CAPABILITY IMAP4rev1 IDLE AUTH=PLAIN AUTH=XOAUTH2",
        ". OK Pre-login capabilities listed",
    )
    c = IMAPClient(transport)
    c.connect()
    transport.writes.clear()
    return c


@pytest.fixture
def selected(client, transport):
    transport.on_write(
        '. SELECT "INBOX"',
        "* 4 EXISTS",
        "* 0 RECENT",
        ". OK [READ-WRITE] Select completed",
    )
    client.select_folder("INBOX")
    transport.writes.clear()
    return client
