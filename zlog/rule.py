"""Rules: which category and level go to which output, in which format."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from zlog.outputs import (
    DynamicFileOutput,
    OutputError,
    PipeOutput,
    RecordOutput,
    StaticFileOutput,
    StreamOutput,
    SyslogOutput,
    syslog_facility,
)
from zlog.profile import debug, error
from zlog.spec import SpecError, parse_pattern
from zlog.thread import PATH_BUF_SIZE, PATH_MAX_LEN
from zlog.util import parse_byte_size, replace_env

LEVEL_COUNT = 256
BITMAP_SIZE = LEVEL_COUNT // 8

_CATEGORY_EXTRA = frozenset("_-*!")
_ARCHIVE_SIZE = re.compile(r"\s*([0-9MmKkBb]+)")
_ARCHIVE_COUNT = re.compile(r"\s*\*\s*([+-]?\d+)")

_SYSLOG_PRIORITIES = {
    "*": 6,
    "DEBUG": 7,
    "INFO": 6,
    "NOTICE": 5,
    "WARN": 4,
    "WARNING": 4,
    "ERROR": 3,
    "FATAL": 1,
    "UNKNOWN": 3,
}


class RuleError(ValueError):
    """A rule line in the configuration cannot be parsed."""


def _fail(message: str, *args) -> RuleError:
    text = message % args if args else message
    error("%s", text)
    return RuleError(text)


def _render_format(fmt: Any, thread) -> str:
    render = getattr(fmt, "render", None)
    if callable(render):
        return render(thread)
    return "".join(spec.render(thread) for spec in fmt)


def _level_of(levels: Mapping, name: str, compare_char: str) -> int:
    if name in levels:
        value = levels[name]
    else:
        wanted = name.upper()
        for key, candidate in levels.items():
            if str(key).upper() == wanted:
                value = candidate
                break
        else:
            if compare_char == "*":
                return 0
            raise _fail("level[%s] not found in level list", name)
    value = int(value)
    if not 0 <= value < LEVEL_COUNT:
        raise _fail("level[%s] value %d out of range [0-255]", name, value)
    return value


def _bitmap(compare_char: str, level: int) -> bytes:
    bitmap = bytearray(BITMAP_SIZE)
    for candidate in range(LEVEL_COUNT):
        if compare_char == "*":
            allowed = True
        elif compare_char == "=":
            allowed = candidate == level
        elif compare_char == "!":
            allowed = candidate != level
        else:
            allowed = candidate >= level
        if allowed:
            bitmap[candidate // 8] |= 1 << (7 - candidate % 8)
    return bytes(bitmap)


def _parse_path(text: str, cache_counter: list) -> tuple[str, Optional[list]]:
    """Read a quoted path starting at ``text[0] == '"'``; return it and its specs."""
    body = text[1:]
    close = body.rfind('"')
    if close < 0:
        raise _fail('matching " not found in conf line[%s]', text)
    path = body[:close]
    if len(path) > PATH_MAX_LEN:
        raise _fail("file_path too long %d > %d", len(path), PATH_MAX_LEN)
    try:
        path = replace_env(path, PATH_BUF_SIZE)
    except ValueError as exc:
        raise _fail("replace env in [%s] fail: %s", path, exc) from exc
    if "%" not in path:
        return path, None
    try:
        return path, parse_pattern(path, cache_counter)
    except SpecError as exc:
        raise _fail("parse path [%s] fail: %s", path, exc) from exc


def _syslog_priorities(levels: Mapping) -> dict[int, int]:
    priorities = {}
    for name, value in levels.items():
        priority = _SYSLOG_PRIORITIES.get(str(name).upper())
        if priority is not None:
            priorities[int(value)] = priority
    return priorities


@dataclass
class Rule:
    """A parsed rule line such as ``aa.INFO "log/aa.log", 20MB * 12; MyFormat``."""

    category: str
    compare_char: str
    level: int
    level_bitmap: bytes
    format: Any
    target: Any
    file_perms: int = 0o600
    fsync_period: int = 0
    file_path: str = ""
    dynamic_specs: Optional[list] = None
    archive_max_size: int = 0
    archive_max_count: int = 0
    archive_path: str = ""
    archive_specs: Optional[list] = None
    record_name: str = ""
    record_path: str = ""
    extra: dict = field(default_factory=dict)

    def allows(self, level: int) -> bool:
        """Return True when an event of *level* passes this rule's level test."""
        if self.compare_char == "*":
            return True
        if self.compare_char == ".":
            return level >= self.level
        if self.compare_char == "=":
            return level == self.level
        if self.compare_char == "!":
            return level != self.level
        return False

    def output(self, thread) -> bool:
        """Format the thread's event and send it; return False if filtered out."""
        if not self.allows(thread.event.level):
            return False
        message = _render_format(self.format, thread)
        self.target.write(message, thread)
        return True

    def matches_category(self, category: str) -> bool:
        """Return True when *category* falls under this rule.

        ``*`` matches everything; ``aa_`` matches ``aa`` and ``aa_xx`` but not
        ``aa1_xx``.
        """
        if self.category == "*" or self.category == category:
            return True
        if self.category.endswith("_"):
            length = len(self.category)
            if len(category) == length - 1:
                length -= 1
            return self.category[:length] == category[:length]
        return False

    def is_wastebin(self) -> bool:
        """Return True for the ``!`` category, which catches unmatched events."""
        return self.category == "!"

    def set_record(self, records) -> bool:
        """Bind the record function named by this rule from *records*.

        Returns True when a function was bound.
        """
        if not isinstance(self.target, RecordOutput):
            return False
        record = records.get(self.record_name)
        if record is None:
            return False
        func = getattr(record, "output", record)
        self.target.record_func = func
        return True

    def close(self) -> None:
        """Release the output's files, pipes and descriptors."""
        self.target.close()

    def __enter__(self) -> "Rule":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def parse_rule(line: str, levels: Mapping, default_format: Any,
               formats: Optional[Mapping] = None, file_perms: int = 0o600,
               fsync_period: int = 0, cache_counter: Optional[list] = None) -> Rule:
    """Parse one rule line of the configuration.

    *levels* maps level names to numbers, *formats* maps format names to
    formats (anything with ``render(thread)`` or a sequence of specs). Specs
    that print a time are appended to *cache_counter*. Raises RuleError.
    """
    if cache_counter is None:
        cache_counter = []
    formats = formats or {}

    parts = line.split(None, 1)
    if not parts:
        raise _fail("sscanf [%s] fail, selector", line)
    selector = parts[0]
    action = parts[1] if len(parts) > 1 else ""

    category, dot, level_text = selector.partition(".")
    if not category or not dot or not level_text:
        raise _fail("sscanf [%s] fail, category or level is null", selector)
    if not all((ch.isascii() and ch.isalnum()) or ch in _CATEGORY_EXTRA for ch in category):
        raise _fail("category name[%s] character is not in [a-Z][0-9][_!*-]", category)

    first = level_text[0]
    if first in "=!":
        compare_char, level_name = first, level_text[1:]
    elif first == "*":
        compare_char, level_name = "*", level_text
    else:
        compare_char, level_name = ".", level_text
    level = _level_of(levels, level_name, compare_char)

    output_part, _, format_part = action.partition(";")
    output = output_part.lstrip()
    if not output:
        raise _fail("sscanf [%s] fail", action)
    format_words = format_part.split()
    format_name = format_words[0] if format_words else ""

    if not format_name:
        debug("no format specified, use default")
        fmt = default_format
    elif format_name in formats:
        fmt = formats[format_name]
    else:
        raise _fail("in conf file can't find format[%s], pls check", format_name)

    file_path, comma, limit = output.partition(",")
    if not file_path:
        raise _fail("sscanf [%s] fail", action)
    file_limit = limit.lstrip() if comma else None

    fields: dict = {}
    kind = file_path[0]
    if kind in ('"', "-"):
        sync = kind == "-"
        if sync:
            if file_path[1:2] != '"':
                raise _fail(" - must set before a file output")
            fsync_period = 0
        path, dynamic_specs = _parse_path(file_path[1:] if sync else file_path, cache_counter)

        archive_max_size = 0
        archive_max_count = 0
        archive_path = ""
        archive_specs = None
        if file_limit is not None:
            size_match = _ARCHIVE_SIZE.match(file_limit)
            if size_match:
                archive_max_size = parse_byte_size(size_match.group(1))
                count_match = _ARCHIVE_COUNT.match(file_limit, size_match.end())
                if count_match:
                    archive_max_count = int(count_match.group(1))
            quote = file_limit.find('"')
            if quote >= 0:
                archive_path, archive_specs = _parse_path(file_limit[quote:], cache_counter)
                hash_pos = archive_path.find("#")
                tail = archive_path[hash_pos:] if hash_pos >= 0 else ""
                if hash_pos < 0 or ("r" not in tail and "s" not in tail):
                    raise _fail("archive_path must contain #r or #s")

        options = dict(perms=file_perms, sync=sync, fsync_period=fsync_period,
                       archive_max_size=archive_max_size,
                       archive_max_count=archive_max_count,
                       archive_path=archive_path, archive_specs=archive_specs)
        try:
            if dynamic_specs:
                target = DynamicFileOutput(dynamic_specs, **options)
            else:
                target = StaticFileOutput(path, **options)
        except OutputError as exc:
            raise _fail("open file[%s] fail: %s", path, exc) from exc
        fields.update(file_path=path, dynamic_specs=dynamic_specs,
                      archive_max_size=archive_max_size,
                      archive_max_count=archive_max_count,
                      archive_path=archive_path, archive_specs=archive_specs)
    elif kind == "|":
        try:
            target = PipeOutput(output[1:])
        except OutputError as exc:
            raise _fail("popen [%s] fail: %s", output[1:], exc) from exc
    elif kind == ">":
        name = file_path[1:7]
        if name == "syslog":
            try:
                facility = syslog_facility(file_limit)
                target = SyslogOutput(facility, _syslog_priorities(levels))
            except OutputError as exc:
                raise _fail("syslog output fail: %s", exc) from exc
        elif name in ("stdout", "stderr"):
            target = StreamOutput(name)
        else:
            raise _fail("[%s]the string after is not syslog, stdout or stderr", output)
    elif kind == "$":
        name_words = file_path[1:].split()
        record_name = name_words[0] if name_words else ""
        record_path = ""
        if file_limit is not None:
            quote = file_limit.find('"')
            if quote < 0:
                raise _fail('record_path not start with ", [%s]', file_limit)
            body = file_limit[quote + 1:]
            close = body.rfind('"')
            if close < 0:
                raise _fail('matching " not found in conf line[%s]', body)
            record_path = body[:close]
            if len(record_path) > PATH_MAX_LEN:
                raise _fail("record_path too long %d > %d", len(record_path), PATH_MAX_LEN)
        try:
            record_path = replace_env(record_path, PATH_BUF_SIZE)
        except ValueError as exc:
            raise _fail("replace env in [%s] fail: %s", record_path, exc) from exc
        specs = None
        if "%" in record_path:
            try:
                specs = parse_pattern(record_path, cache_counter)
            except SpecError as exc:
                raise _fail("parse record path [%s] fail: %s", record_path, exc) from exc
        target = RecordOutput(record_name, record_path, specs)
        fields.update(record_name=record_name, record_path=record_path,
                      dynamic_specs=specs)
    else:
        raise _fail("the 1st char[%s] of file_path[%s] is wrong", kind, file_path)

    return Rule(
        category=category,
        compare_char=compare_char,
        level=level,
        level_bitmap=_bitmap(compare_char, level),
        format=fmt,
        target=target,
        file_perms=file_perms,
        fsync_period=fsync_period,
        **fields,
    )