# tests/test_idle.py

import threading
import time

import pytest

from tinyimap.errors import ProtocolError, TransportError


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


class TestIdle:
    def test_cancel_from_another_thread(self, selected, transport):
        """Notifications reach the callbacks and one 'done' ends the wait."""
        new_mail, interrupted = [], []
        selected.on_new_mail = lambda c, line: new_mail.append(line)
        selected.on_wait_interrupted = lambda c, line: interrupted.append(line)

        transport.on_write(". IDLE", "+ idling", "* 5 EXISTS", "* 1 RECENT")
        transport.on_write("done", ". OK Idle completed (0.5 + 0.5 secs).")

        result = {}
        waiter = threading.Thread(target=lambda: result.update(line=selected.idle()))
        waiter.start()
        _wait_for(lambda: selected.is_idling and new_mail and interrupted)

        line = selected.cancel_wait(timeout=5)
        waiter.join(5)

        assert not waiter.is_alive()
        assert line == ". OK Idle completed (0.5 + 0.5 secs)."
        assert result["line"] == line
        assert new_mail == ["* 1 RECENT"]
        assert interrupted == ["* 5 EXISTS"]
        assert transport.sent == [". IDLE", "done"]
        assert not selected.is_idling

    def test_second_cancel_is_a_no_op(self, selected, transport):
        transport.on_write(". IDLE", "+ idling")
        transport.on_write("done", ". OK Idle completed")

        waiter = threading.Thread(target=selected.idle)
        waiter.start()
        _wait_for(lambda: selected.is_idling)

        assert selected.cancel_wait(timeout=5) == ". OK Idle completed"
        waiter.join(5)
        assert selected.cancel_wait() is None
        assert transport.sent.count("done") == 1

    def test_cancel_when_not_idling(self, selected, transport):
        assert selected.cancel_wait() is None
        assert transport.writes == []

    def test_cancel_from_callback(self, selected, transport):
        """A callback may end the wait itself; idle() then returns normally."""
        transport.on_write(". IDLE", "+ idling", "* 2 RECENT")
        transport.on_write("done", ". OK Idle completed")
        returned = []
        selected.on_new_mail = lambda c, line: returned.append(c.cancel_wait())

        assert selected.idle() == ". OK Idle completed"
        assert returned == [None]
        assert transport.sent == [". IDLE", "done"]

    def test_commands_wait_for_idle_to_end(self, selected, transport):
        transport.on_write(". IDLE", "+ idling")
        transport.on_write("done", ". OK Idle completed")
        transport.on_write(". STORE", ". OK STORE completed")

        waiter = threading.Thread(target=selected.idle)
        waiter.start()
        _wait_for(lambda: selected.is_idling)

        stored = []
        other = threading.Thread(target=lambda: stored.append(selected.mark_as_read(1)))
        other.start()
        time.sleep(0.1)
        assert stored == []

        selected.cancel_wait(timeout=5)
        waiter.join(5)
        other.join(5)

        assert stored == [True]
        assert transport.sent == [". IDLE", "done", ". STORE 1 +flags \\Seen"]

    def test_idle_rejected(self, selected, transport):
        transport.on_write(". IDLE", ". BAD IDLE not supported")
        with pytest.raises(ProtocolError):
            selected.idle()
        assert not selected.is_idling

    def test_still_idling_after_notification(self, selected, transport):
        """An untagged update does not end the wait; cancel still has to send 'done'."""
        seen = []
        selected.on_wait_interrupted = lambda c, line: seen.append((line, c.is_idling))

        transport.on_write(". IDLE", "+ idling", "* 5 EXISTS")
        transport.on_write("done", ". OK Idle completed")

        waiter = threading.Thread(target=selected.idle)
        waiter.start()
        _wait_for(lambda: seen)

        assert seen == [("* 5 EXISTS", True)]
        assert selected.is_idling

        assert selected.cancel_wait(timeout=5) == ". OK Idle completed"
        waiter.join(5)
        assert transport.sent == [". IDLE", "done"]

    def test_idling_before_idle_reaches_the_wire(self, selected, transport, monkeypatch):
        flags_at_write = []
        write = transport.write

        def recording_write(data):
            if data.startswith(b". IDLE"):
                flags_at_write.append(selected.is_idling)
            write(data)

        monkeypatch.setattr(transport, "write", recording_write)
        transport.on_write(". IDLE", "+ idling", "* 1 RECENT")
        transport.on_write("done", ". OK Idle completed")
        selected.on_new_mail = lambda c, line: c.cancel_wait()

        selected.idle()

        assert flags_at_write == [True]

    def test_failed_idle_write_leaves_nothing_to_cancel(self, selected, transport):
        transport.fail_next_write = True
        with pytest.raises(TransportError):
            selected.idle()

        assert not selected.is_idling
        assert selected.cancel_wait() is None
