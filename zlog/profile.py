"""Internal diagnostics written to files named by environment variables."""

from __future__ import annotations

import inspect
import os
import time
from enum import IntEnum


class ProfileFlag(IntEnum):
    """Severity of an internal diagnostic."""

    DEBUG = 0
    WARN = 1
    ERROR = 2


_LABELS = {
    ProfileFlag.DEBUG: "DEBUG",
    ProfileFlag.WARN: "WARN ",
    ProfileFlag.ERROR: "ERROR",
}

_ENV_NAMES = {
    ProfileFlag.DEBUG: "ZLOG_PROFILE_DEBUG",
    ProfileFlag.WARN: "ZLOG_PROFILE_ERROR",
    ProfileFlag.ERROR: "ZLOG_PROFILE_ERROR",
}


def _caller() -> tuple[str, int]:
    frame = inspect.currentframe()
    try:
        while frame is not None and frame.f_code.co_filename == __file__:
            frame = frame.f_back
        if frame is None:
            return "?", 0
        return frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame


def profile(flag, message: str, *args) -> bool:
    """Append a diagnostic line to the file configured for *flag*.

    Debug lines go to ``$ZLOG_PROFILE_DEBUG``, warnings and errors to
    ``$ZLOG_PROFILE_ERROR``. Returns True when a line was written.
    """
    flag = ProfileFlag(flag)
    path = os.environ.get(_ENV_NAMES[flag])
    if path is None:
        return False
    text = message % args if args else message
    filename, line = _caller()
    stamp = time.strftime("%m-%d %H:%M:%S")
    record = f"{stamp} {_LABELS[flag]} ({os.getpid()}:{filename}:{line}) {text}\n"
    try:
        with open(path, "a", encoding="utf-8") as stream:
            stream.write(record)
    except OSError:
        return False
    return True


def debug(message: str, *args) -> bool:
    """Write a debug diagnostic."""
    return profile(ProfileFlag.DEBUG, message, *args)


def warn(message: str, *args) -> bool:
    """Write a warning diagnostic."""
    return profile(ProfileFlag.WARN, message, *args)


def error(message: str, *args) -> bool:
    """Write an error diagnostic."""
    return profile(ProfileFlag.ERROR, message, *args)