import os

from zlog.thread import FMT, HEX, Event, LogThread


def test_new_thread_state():
    thread = LogThread(3, 1024, 2048, 2)
    assert thread.init_version == 3
    assert (thread.buf_size_min, thread.buf_size_max) == (1024, 2048)
    assert len(thread.event.time_caches) == 2
    assert thread.mdc == {}


def test_rebuild_msg_buf_unchanged():
    thread = LogThread(1, 1024, 2048, 0)
    assert thread.rebuild_msg_buf(1024, 2048) is False
    assert (thread.buf_size_min, thread.buf_size_max) == (1024, 2048)


def test_rebuild_msg_buf_changed():
    thread = LogThread(1, 1024, 2048, 0)
    assert thread.rebuild_msg_buf(512, 4096) is True
    assert (thread.buf_size_min, thread.buf_size_max) == (512, 4096)


def test_rebuild_event_keeps_mdc():
    thread = LogThread(1, 10, 20, 1)
    thread.mdc["user"] = "alice"
    old_event = thread.event
    thread.rebuild_event(4)
    assert thread.event is not old_event
    assert len(thread.event.time_caches) == 4
    assert thread.mdc == {"user": "alice"}


def test_set_fmt_fields():
    event = Event(1)
    event.set_fmt("cat", "a/b.c", "main", 12, 40, "INFO", "x=%d", (3,))
    assert event.kind == FMT
    assert event.category == "cat"
    assert (event.file, event.func, event.line) == ("a/b.c", "main", 12)
    assert (event.level, event.level_name) == (40, "INFO")
    assert event.fmt % event.args == "x=3"
    assert event.data is None
    assert event.pid == os.getpid()
    assert 0 <= event.usec < 1_000_000
    assert event.sec > 0


def test_set_hex_fields():
    event = Event()
    event.set_fmt("cat", "f", "g", 1, 20, "DEBUG", "m", ())
    event.set_hex("cat", "f", "g", 2, 20, "DEBUG", bytearray(b"\x00\x01"))
    assert event.kind == HEX
    assert event.data == b"\x00\x01"
    assert event.fmt is None
    assert event.line == 2


def test_thread_ids_are_consistent():
    event = Event()
    assert int(event.tid_str) == event.tid
    assert int(event.tid_hex_str, 16) == event.tid