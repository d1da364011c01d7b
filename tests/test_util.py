import pytest

from zlog.util import parse_byte_size, replace_env


def test_binary_suffix_uses_1024():
    assert parse_byte_size("1KB") == 1024


def test_decimal_suffix_uses_1000():
    assert parse_byte_size("1K") == 1000


def test_megabytes_are_kilobytes_squared():
    kib = parse_byte_size("1kb")
    assert parse_byte_size("1MB") == kib * kib
    assert parse_byte_size("1GB") == kib * kib * kib


def test_spaces_are_ignored():
    assert parse_byte_size(" 3 K B ") == parse_byte_size("3KB")


def test_plain_number():
    assert parse_byte_size("7") == 7


def test_unknown_suffix_ignored():
    assert parse_byte_size("3X") == 3


@pytest.mark.parametrize("text", ["0MB", "-5K", "abc", ""])
def test_non_positive_or_invalid_is_zero(text):
    assert parse_byte_size(text) == 0


def test_replace_env_simple(monkeypatch):
    monkeypatch.setenv("ZLOG_TEST_DIR", "/home/x")
    assert replace_env("%E(ZLOG_TEST_DIR)/log/a.log", 100) == "/home/x/log/a.log"


def test_replace_env_with_width(monkeypatch):
    monkeypatch.setenv("ZLOG_TEST_DIR", "ab")
    assert replace_env("%-5E(ZLOG_TEST_DIR)|", 100) == "ab".ljust(5) + "|"
    assert replace_env("%5E(ZLOG_TEST_DIR)|", 100) == "ab".rjust(5) + "|"


def test_replace_env_precision_truncates(monkeypatch):
    monkeypatch.setenv("ZLOG_TEST_DIR", "abcdef")
    assert replace_env("%.2E(ZLOG_TEST_DIR)", 100) == "ab"


def test_replace_env_several(monkeypatch):
    monkeypatch.setenv("ZLOG_A", "one")
    monkeypatch.setenv("ZLOG_B", "two")
    assert replace_env("%E(ZLOG_A)-%E(ZLOG_B)", 100) == "one-two"


def test_other_specs_untouched():
    assert replace_env("%d/%c.log", 100) == "%d/%c.log"


def test_empty_key_untouched():
    assert replace_env("a%E()b", 100) == "a%E()b"


def test_unset_variable(monkeypatch):
    monkeypatch.delenv("ZLOG_SURELY_UNSET", raising=False)
    assert replace_env("%E(ZLOG_SURELY_UNSET)", 100) == "(null)"


def test_missing_paren_raises():
    with pytest.raises(ValueError):
        replace_env("%E(ZLOG_TEST_DIR/log", 100)


def test_trailing_percent_raises():
    with pytest.raises(ValueError):
        replace_env("abc%", 100)


def test_overflow_raises(monkeypatch):
    monkeypatch.setenv("ZLOG_TEST_DIR", "x" * 50)
    with pytest.raises(ValueError):
        replace_env("%E(ZLOG_TEST_DIR)", 20)