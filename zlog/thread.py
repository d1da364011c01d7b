"""Per-thread logging state: the current event, MDC and buffer limits."""

from __future__ import annotations

import os
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

PATH_MAX_LEN = 1024
PATH_BUF_SIZE = PATH_MAX_LEN + 1
TRUNCATION_MARK = "...\n"

FMT = "fmt"
HEX = "hex"


@dataclass
class _TimeCache:
    sec: Optional[int] = None
    text: str = ""


class Event:
    """One log event plus the per-thread facts formatters may print."""

    def __init__(self, time_cache_count: int = 0) -> None:
        self.time_caches = [_TimeCache() for _ in range(time_cache_count)]
        self.category = ""
        self.file: Optional[str] = None
        self.func: Optional[str] = None
        self.line = 0
        self.level = 0
        self.level_name = ""
        self.kind: Optional[str] = None
        self.fmt: Optional[str] = None
        self.args: Any = ()
        self.data: Optional[bytes] = None
        self.sec = 0
        self.usec = 0
        self.pid = os.getpid()
        self.tid = threading.get_ident()
        self.tid_str = str(self.tid)
        self.tid_hex_str = format(self.tid, "x")
        self.ktid_str = str(threading.get_native_id())
        self.host_name = socket.gethostname()

    def _fill(self, category, file, func, line, level, level_name) -> None:
        self.category = category
        self.file = file
        self.func = func
        self.line = line
        self.level = level
        self.level_name = level_name
        self.pid = os.getpid()
        now = time.time_ns()
        self.sec = now // 1_000_000_000
        self.usec = now // 1000 % 1_000_000

    def set_fmt(self, category, file, func, line, level, level_name, fmt, args) -> None:
        """Describe a printf-style message event."""
        self._fill(category, file, func, line, level, level_name)
        self.kind = FMT
        self.fmt = fmt
        self.args = args
        self.data = None

    def set_hex(self, category, file, func, line, level, level_name, data) -> None:
        """Describe a hex-dump event for *data*."""
        self._fill(category, file, func, line, level, level_name)
        self.kind = HEX
        self.fmt = None
        self.args = ()
        self.data = None if data is None else bytes(data)


class LogThread:
    """State kept for each thread that logs."""

    def __init__(self, init_version: int, buf_size_min: int, buf_size_max: int,
                 time_cache_count: int) -> None:
        self.init_version = init_version
        self.mdc: dict[str, str] = {}
        self.event = Event(time_cache_count)
        self.buf_size_min = buf_size_min
        self.buf_size_max = buf_size_max

    def rebuild_msg_buf(self, buf_size_min: int, buf_size_max: int) -> bool:
        """Adopt new message buffer limits; return False if they are unchanged."""
        if (self.buf_size_min, self.buf_size_max) == (buf_size_min, buf_size_max):
            return False
        self.buf_size_min = buf_size_min
        self.buf_size_max = buf_size_max
        return True

    def rebuild_event(self, time_cache_count: int) -> None:
        """Replace the event with a fresh one, keeping the MDC."""
        self.event = Event(time_cache_count)