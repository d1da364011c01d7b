import time

import pytest

from zlog.spec import (
    HEX_HEAD,
    SpecError,
    adjust,
    hex_dump,
    parse_pattern,
    parse_spec,
)
from zlog.thread import LogThread


def make_thread(count=4):
    thread = LogThread(1, 1024, 2048, count)
    thread.event.set_fmt("cat", "/src/dir/main.c", "run", 42, 40, "Info",
                         "hello %d", (5,))
    return thread


def render(pattern, thread, counter=None):
    counter = [] if counter is None else counter
    return "".join(spec.render(thread) for spec in parse_pattern(pattern, counter))


def test_constant_text_is_one_spec():
    specs = parse_pattern("abc", [])
    assert len(specs) == 1
    assert specs[0].write(make_thread()) == "abc"


def test_parse_spec_returns_next_position():
    spec, nxt = parse_spec("ab%c", 0, [])
    assert spec.text == "ab"
    assert nxt == 2
    spec, nxt = parse_spec("ab%c", 2, [])
    assert spec.conversion == "c"
    assert nxt == 4


def test_specs_cover_whole_pattern():
    pattern = "%d(%Y) [%-5V] %c %m%n"
    specs = parse_pattern(pattern, [])
    assert "".join(spec.text for spec in specs) == pattern


def test_message_category_and_newline():
    thread = make_thread()
    assert render("%c:%m%n", thread) == "cat:hello 5\n"


def test_source_location_specs():
    thread = make_thread()
    assert render("%F", thread) == "/src/dir/main.c"
    assert render("%f", thread) == "main.c"
    assert render("%U", thread) == "run"
    assert render("%L", thread) == "42"


def test_missing_file_and_func():
    thread = make_thread()
    thread.event.set_fmt("cat", None, None, 1, 40, "Info", "x", ())
    assert render("%F", thread) == "(file=null)"
    assert render("%f", thread) == "(file=null)"
    assert render("%U", thread) == "(func=null)"


def test_level_case():
    thread = make_thread()
    assert render("%v", thread) == thread.event.level_name.lower()
    assert render("%V", thread) == thread.event.level_name.upper()


def test_percent_and_cr():
    thread = make_thread()
    assert render("%%%r", thread) == "%\r"


def test_null_format():
    thread = make_thread()
    thread.event.set_fmt("cat", "f", "g", 1, 40, "Info", None, ())
    assert render("%m", thread) == "format=(null)"


def test_bad_message_arguments_raise():
    thread = make_thread()
    thread.event.set_fmt("cat", "f", "g", 1, 40, "Info", "%d", ("x",))
    with pytest.raises(SpecError):
        render("%m", thread)


def test_pid_and_thread_ids():
    thread = make_thread()
    event = thread.event
    assert render("%p", thread) == str(event.pid)
    assert render("%t", thread) == event.tid_hex_str
    assert render("%T", thread) == event.tid_str
    assert render("%k", thread) == event.ktid_str
    assert render("%H", thread) == event.host_name


def test_mdc_lookup():
    thread = make_thread()
    thread.mdc["user"] = "alice"
    assert render("[%M(user)]", thread) == "[alice]"
    assert render("[%M(absent)]", thread) == "[]"


def test_ms_and_us():
    thread = make_thread()
    thread.event.sec = 1
    thread.event.usec = 123456
    assert render("%ms", thread) == "123"
    assert render("%us", thread) == "123456"


def test_ms_takes_precedence_over_m():
    specs = parse_pattern("%msg", [])
    assert [spec.conversion for spec in specs] == ["ms", ""]
    assert specs[1].text == "g"


def test_time_specs_register_caches():
    counter = []
    specs = parse_pattern("%d(%Y) %D %G %g()", counter)
    timed = [spec for spec in specs if spec.conversion]
    assert [spec.time_cache_index for spec in timed] == [0, 1, 2, 3]
    assert counter == timed
    assert timed[1].time_fmt == timed[2].time_fmt == timed[3].time_fmt


def test_utc_default_time():
    thread = make_thread()
    thread.event.sec = 86400
    assert render("%G", thread) == "1970-01-02 00:00:00"


def test_local_time_custom_format():
    thread = make_thread()
    thread.event.sec = 1_000_000_000
    expected = time.strftime("%Y/%m", time.localtime(1_000_000_000))
    assert render("%d(%Y/%m)", thread) == expected


def test_time_cache_reused_for_same_second():
    thread = make_thread(count=1)
    thread.event.sec = 86400
    specs = parse_pattern("%g(%Y)", [])
    first = specs[0].render(thread)
    assert thread.event.time_caches[0].text == first
    thread.event.time_caches[0].text = "cached"
    assert specs[0].render(thread) == "cached"
    thread.event.sec = 86401
    assert specs[0].render(thread) == first


def test_print_fmt_fields():
    spec, _ = parse_spec("%-10.3c", 0, [])
    assert spec.left_adjust is True
    assert spec.min_width == 10
    assert spec.max_width == 3
    zero, _ = parse_spec("%08c", 0, [])
    assert zero.left_fill_zeros is True
    assert zero.min_width == 8


def test_width_applied_on_render():
    thread = make_thread()
    out = render("%-10c|", thread)
    assert out.startswith("cat")
    assert len(out) == 11
    assert render("%.2c", thread) == "ca"


def test_adjust_invariants():
    right = adjust("abc", False, False, 5, 0)
    assert len(right) == 5 and right.endswith("abc") and right.strip() == "abc"
    left = adjust("abc", True, False, 5, 0)
    assert left.startswith("abc") and len(left) == 5
    zeros = adjust("abc", False, True, 5, 0)
    assert zeros.endswith("abc") and set(zeros[:2]) == {"0"}
    assert adjust("abcdef", False, False, 0, 3) == "abc"
    assert adjust("abcdef", False, False, 2, 0) == "abcdef"


def test_hex_dump_null():
    assert hex_dump(None) == "buf=(null)"


def test_hex_dump_layout():
    out = hex_dump(b"A" * 17)
    assert out.startswith(HEX_HEAD)
    rows = out[len(HEX_HEAD):].split("\n")[1:]
    assert len(rows) == 2
    assert rows[0].startswith("0000000001   ")
    assert rows[0].count("41 ") == 16
    assert rows[0].endswith("A" * 16)
    assert rows[1].startswith("0000000002")
    assert len(rows[0]) == len(rows[1])


def test_hex_dump_single_row_and_nonprintable():
    out = hex_dump(b"\x00a")
    rows = out[len(HEX_HEAD):].split("\n")[1:]
    assert len(rows) == 1
    assert "00 61 " in rows[0]
    assert ".a" in rows[0]


def test_hex_event_renders_dump():
    thread = make_thread()
    thread.event.set_hex("cat", "f", "g", 1, 40, "Info", b"xyz")
    assert render("%m", thread) == hex_dump(b"xyz")


@pytest.mark.parametrize("pattern", ["%d(abc", "%M(key", "%Mkey", "%q", "abc%", "%5"])
def test_bad_specs_raise(pattern):
    with pytest.raises(SpecError):
        parse_pattern(pattern, [])


def test_failed_time_spec_does_not_register():
    counter = []
    with pytest.raises(SpecError):
        parse_spec("%d(%Y", 0, counter)
    assert counter == []