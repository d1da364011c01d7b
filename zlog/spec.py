"""Conversion specifiers of format and path patterns such as ``%-10.5d(%F)``."""

from __future__ import annotations

import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable

from zlog.profile import debug, error
from zlog.thread import FMT, HEX

DEFAULT_TIME_FMT = "%F %T"
NEWLINE = "\n"
HEX_HEAD = (
    "\n             0  1  2  3  4  5  6  7  8  9  A  B  C  D  E  F"
    "    0123456789ABCDEF"
)

_PRINT_FMT = re.compile(r"[.0-9-]+")
_INTEGER = re.compile(r"[+-]?\d+")
_SINGLE = frozenset("cDFfGHkLmnrpUvVtT%")


class SpecError(ValueError):
    """A pattern holds a specifier that cannot be parsed or rendered."""


@dataclass
class Spec:
    """One piece of a pattern: constant text or a single ``%`` conversion."""

    text: str
    conversion: str = ""
    time_fmt: str = ""
    time_cache_index: int = -1
    mdc_key: str = ""
    print_fmt: str = ""
    left_adjust: bool = False
    left_fill_zeros: bool = False
    min_width: int = 0
    max_width: int = 0

    @property
    def reformat(self) -> bool:
        """True when a width or precision must be applied to the output."""
        return bool(self.print_fmt)

    def write(self, thread) -> str:
        """Return the raw text of this spec for the thread's current event."""
        if not self.conversion:
            return self.text
        return _WRITERS[self.conversion](self, thread)

    def render(self, thread) -> str:
        """Return the text of this spec with width and precision applied."""
        raw = self.write(thread)
        if not self.reformat:
            return raw
        return adjust(raw, self.left_adjust, self.left_fill_zeros,
                      self.min_width, self.max_width)


def adjust(text: str, left_adjust: bool, zero_fill: bool,
           min_width: int, max_width: int) -> str:
    """Cut *text* to *max_width* (0 means no limit) and pad it to *min_width*."""
    if max_width and len(text) > max_width:
        text = text[:max_width]
    if len(text) < min_width:
        if left_adjust:
            return text.ljust(min_width)
        return text.rjust(min_width, "0" if zero_fill else " ")
    return text


def hex_dump(data) -> str:
    """Format *data* as a header line followed by rows of 16 bytes."""
    if data is None:
        return "buf=(null)"
    data = bytes(data)
    parts = [HEX_HEAD]
    row = 0
    while True:
        chunk = data[row * 16:row * 16 + 16]
        pad = 16 - len(chunk)
        hexes = "".join(f"{byte:02x} " for byte in chunk) + "   " * pad
        chars = "".join(chr(byte) if 32 <= byte <= 126 else "." for byte in chunk)
        chars += " " * pad
        parts.append(f"\n{row + 1:010d}   {hexes}  {chars}")
        if row * 16 + 16 >= len(data):
            break
        row += 1
    return "".join(parts)


def _parse_print_fmt(print_fmt: str) -> tuple[bool, bool, int, int]:
    body = print_fmt
    left = body.startswith("-")
    if left:
        body = body[1:]
    zero = not left and body.startswith("0")
    match = _INTEGER.match(body)
    min_width = int(match.group()) if match else 0
    max_width = 0
    dot = body.find(".")
    if dot >= 0:
        match = _INTEGER.match(body, dot + 1)
        max_width = int(match.group()) if match else 0
    return left, zero, max(0, min_width), max(0, max_width)


def parse_spec(pattern: str, start: int, cache_counter: list) -> tuple[Spec, int]:
    """Parse the spec of *pattern* beginning at *start*.

    Returns the spec and the index where the next one begins. Specs that
    print a time are appended to *cache_counter*; its length is the number
    of time caches an event needs.
    """
    if start >= len(pattern):
        raise SpecError("no spec at end of pattern")

    if pattern[start] != "%":
        end = pattern.find("%", start)
        if end < 0:
            end = len(pattern)
        return Spec(text=pattern[start:end]), end

    fields: dict = {}
    match = _PRINT_FMT.match(pattern, start + 1)
    if match:
        print_fmt = match.group()
        left, zero, min_width, max_width = _parse_print_fmt(print_fmt)
        fields.update(print_fmt=print_fmt, left_adjust=left, left_fill_zeros=zero,
                      min_width=min_width, max_width=max_width)
        pos = match.end()
    else:
        pos = start + 1

    char = pattern[pos:pos + 1]
    timed = False

    if char in ("d", "g"):
        if pattern[pos + 1:pos + 2] != "(":
            time_fmt = DEFAULT_TIME_FMT
            pos += 1
        elif pattern.startswith("()", pos + 1):
            time_fmt = DEFAULT_TIME_FMT
            pos += 3
        else:
            close = pattern.find(")", pos + 2)
            if close < 0:
                raise SpecError(f"in string[{pattern[start:]}] can't find match ')'")
            time_fmt = pattern[pos + 2:close]
            pos = close + 1
        fields["time_fmt"] = time_fmt
        conversion = char
        timed = True
    elif char == "M":
        close = pattern.find(")", pos + 2) if pattern.startswith("M(", pos) else -1
        if close < 0:
            raise SpecError(f"in string[{pattern[start:]}] can't find match ')'")
        fields["mdc_key"] = pattern[pos + 2:close]
        conversion = "M"
        pos = close + 1
    elif pattern.startswith("ms", pos) or pattern.startswith("us", pos):
        conversion = pattern[pos:pos + 2]
        pos += 2
    elif char and char in _SINGLE:
        conversion = char
        pos += 1
        if char in ("D", "G"):
            fields["time_fmt"] = DEFAULT_TIME_FMT
            timed = True
    else:
        raise SpecError(f"str[{pattern[start:]}] in wrong format, p[{char}]")

    spec = Spec(text=pattern[start:pos], conversion=conversion, **fields)
    if timed:
        spec.time_cache_index = len(cache_counter)
        cache_counter.append(spec)
    debug("spec[%s] conversion[%s] time_fmt[%s] print_fmt[%s]",
          spec.text, spec.conversion, spec.time_fmt, spec.print_fmt)
    return spec, pos


def parse_pattern(pattern: str, cache_counter: list) -> list[Spec]:
    """Split *pattern* into its specs, in order."""
    specs = []
    position = 0
    while position < len(pattern):
        spec, position = parse_spec(pattern, position, cache_counter)
        specs.append(spec)
    return specs


def _ensure_time(event) -> None:
    if not event.sec:
        now = time.time_ns()
        event.sec = now // 1_000_000_000
        event.usec = now // 1000 % 1_000_000


def _write_time(spec: Spec, thread, utc: bool) -> str:
    event = thread.event
    _ensure_time(event)
    sec = event.sec
    caches = event.time_caches
    cache = caches[spec.time_cache_index] if 0 <= spec.time_cache_index < len(caches) else None
    if cache is not None and cache.sec == sec:
        return cache.text
    moment = time.gmtime(sec) if utc else time.localtime(sec)
    text = time.strftime(spec.time_fmt, moment)
    if cache is not None:
        cache.sec = sec
        cache.text = text
    return text


def _write_local_time(spec: Spec, thread) -> str:
    return _write_time(spec, thread, utc=False)


def _write_utc_time(spec: Spec, thread) -> str:
    return _write_time(spec, thread, utc=True)


def _write_ms(spec: Spec, thread) -> str:
    _ensure_time(thread.event)
    return f"{thread.event.usec // 1000:03d}"


def _write_us(spec: Spec, thread) -> str:
    _ensure_time(thread.event)
    return f"{thread.event.usec:06d}"


def _write_mdc(spec: Spec, thread) -> str:
    value = thread.mdc.get(spec.mdc_key)
    if value is None:
        error("mdc key[%s] not found", spec.mdc_key)
        return ""
    return value


def _write_srcfile(spec: Spec, thread) -> str:
    file = thread.event.file
    return "(file=null)" if file is None else file


def _write_srcfile_neat(spec: Spec, thread) -> str:
    file = thread.event.file
    if file is None:
        return "(file=null)"
    return file.rsplit("/", 1)[-1]


def _write_srcfunc(spec: Spec, thread) -> str:
    func = thread.event.func
    return "(func=null)" if func is None else func


def _write_usrmsg(spec: Spec, thread) -> str:
    event = thread.event
    if event.kind == FMT:
        if event.fmt is None:
            return "format=(null)"
        args = event.args
        if args is None:
            args = ()
        elif not isinstance(args, Mapping):
            args = tuple(args)
        try:
            return event.fmt % args
        except (TypeError, ValueError, KeyError) as exc:
            raise SpecError(f"cannot format message [{event.fmt}]: {exc}") from exc
    if event.kind == HEX:
        return hex_dump(event.data)
    return ""


_WRITERS: dict[str, Callable[[Spec, object], str]] = {
    "d": _write_local_time,
    "D": _write_local_time,
    "g": _write_utc_time,
    "G": _write_utc_time,
    "ms": _write_ms,
    "us": _write_us,
    "M": _write_mdc,
    "c": lambda spec, thread: thread.event.category,
    "F": _write_srcfile,
    "f": _write_srcfile_neat,
    "H": lambda spec, thread: thread.event.host_name,
    "k": lambda spec, thread: thread.event.ktid_str,
    "L": lambda spec, thread: str(thread.event.line),
    "m": _write_usrmsg,
    "n": lambda spec, thread: NEWLINE,
    "r": lambda spec, thread: "\r",
    "p": lambda spec, thread: str(thread.event.pid),
    "U": _write_srcfunc,
    "v": lambda spec, thread: thread.event.level_name.lower(),
    "V": lambda spec, thread: thread.event.level_name.upper(),
    "t": lambda spec, thread: thread.event.tid_hex_str,
    "T": lambda spec, thread: thread.event.tid_str,
    "%": lambda spec, thread: "%",
}