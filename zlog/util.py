"""Byte-size parsing and environment substitution for configuration values."""

from __future__ import annotations

import os
import re

from zlog.profile import error

_LEADING_INT = re.compile(r"[+-]?\d+")
_WIDTH_CHARS = re.compile(r"[.0-9-]*")
_POWERS = {"k": 1, "m": 2, "g": 3}


def parse_byte_size(text: str) -> int:
    """Parse a size such as ``10MB``, ``5k`` or ``1 GB`` into a byte count.

    A trailing ``B`` selects powers of 1024, otherwise powers of 1000.
    Non-positive or unparsable values give 0; an unknown suffix is ignored.
    """
    compact = "".join(text.split())
    match = _LEADING_INT.match(compact)
    if not match:
        return 0
    value = int(match.group())
    if value <= 0:
        return 0

    if compact[-1] in "Bb":
        suffix = compact[-2]
        base = 1024
    else:
        suffix = compact[-1]
        base = 1000

    power = _POWERS.get(suffix.lower())
    if power is not None:
        value *= base**power
    elif not suffix.isdigit():
        error("Wrong suffix parsing size in bytes for string [%s], ignoring suffix", compact)
    return value


def replace_env(text: str, max_size: int) -> str:
    """Replace every ``%E(NAME)`` in *text* with the value of that variable.

    An optional width and precision may stand between ``%`` and ``E``, as in
    ``%-10.5E(HOME)``. Other ``%`` sequences are left alone. An unset variable
    renders as ``(null)``. Raises ValueError when a ``)`` is missing or the
    result would not fit in *max_size* (including a terminator).
    """
    result = text
    position = 0
    while True:
        start = result.find("%", position)
        if start < 0:
            return result

        width = _WIDTH_CHARS.match(result, start + 1)
        spec = width.group()
        cursor = width.end()
        rest = result[cursor:]

        if not rest:
            raise ValueError(f"in string[{result[start:]}] can't find match )")
        if not rest.startswith("E("):
            position = cursor
            continue
        close = rest.find(")", 2)
        if close == 2:
            position = cursor
            continue
        if close < 0:
            raise ValueError(f"in string[{result[start:]}] can't find match )")

        key = rest[2:close]
        value = os.environ.get(key)
        if value is None:
            value = "(null)"
        try:
            rendered = ("%" + spec + "s") % value
        except (ValueError, TypeError) as exc:
            raise ValueError(f"bad width [{spec}] for env [{key}]") from exc

        end = cursor + close + 1
        replaced = result[:start] + rendered + result[end:]
        if len(replaced) > max_size - 1:
            raise ValueError(f"replace env_value[{rendered}] cause overlap")
        result = replaced
        position = start + len(rendered)