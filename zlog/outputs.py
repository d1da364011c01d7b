"""Destinations a rule can write formatted messages to."""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from zlog.profile import debug, error, warn

try:
    import syslog as _syslog
except ImportError:  # not available on every platform
    _syslog = None


def _syslog_const(name: str, default: int) -> int:
    return getattr(_syslog, name, default)


LOG_DEBUG = _syslog_const("LOG_DEBUG", 7)
LOG_USER = _syslog_const("LOG_USER", 8)
LOG_AUTHPRIV = _syslog_const("LOG_AUTHPRIV", 80)

_FACILITIES = {
    "LOG_LOCAL0": _syslog_const("LOG_LOCAL0", 128),
    "LOG_LOCAL1": _syslog_const("LOG_LOCAL1", 136),
    "LOG_LOCAL2": _syslog_const("LOG_LOCAL2", 144),
    "LOG_LOCAL3": _syslog_const("LOG_LOCAL3", 152),
    "LOG_LOCAL4": _syslog_const("LOG_LOCAL4", 160),
    "LOG_LOCAL5": _syslog_const("LOG_LOCAL5", 168),
    "LOG_LOCAL6": _syslog_const("LOG_LOCAL6", 176),
    "LOG_LOCAL7": _syslog_const("LOG_LOCAL7", 184),
    "LOG_USER": LOG_USER,
    "LOG_AUTHPRIV": LOG_AUTHPRIV,
    "LOG_CRON": _syslog_const("LOG_CRON", 72),
    "LOG_DAEMON": _syslog_const("LOG_DAEMON", 24),
    "LOG_FTP": _syslog_const("LOG_FTP", 88),
    "LOG_KERN": _syslog_const("LOG_KERN", 0),
    "LOG_LPR": _syslog_const("LOG_LPR", 48),
    "LOG_MAIL": _syslog_const("LOG_MAIL", 16),
    "LOG_NEWS": _syslog_const("LOG_NEWS", 56),
    "LOG_SYSLOG": _syslog_const("LOG_SYSLOG", 40),
}

_APPEND_FLAGS = os.O_WRONLY | os.O_APPEND | os.O_CREAT
_SYNC_FLAG = getattr(os, "O_SYNC", 0)

Rotater = Callable[[str, int, str, int, int], None]


class OutputError(OSError):
    """A message could not be delivered to its destination."""


@dataclass(frozen=True)
class RecordMessage:
    """What a user-defined record function receives."""

    buf: str
    path: str

    @property
    def len(self) -> int:
        """Length of the message text."""
        return len(self.buf)


def syslog_facility(name: Optional[str]) -> int:
    """Return the syslog facility named *name*, compared case-insensitively.

    Unknown names fall back to ``LOG_AUTHPRIV``; a missing name is an error.
    """
    if name is None:
        error("syslog facility is missing")
        raise OutputError("syslog facility is missing")
    return _FACILITIES.get(name.strip().upper(), LOG_AUTHPRIV)


def _render(specs: Sequence, thread) -> str:
    return "".join(spec.render(thread) for spec in specs)


class _Output:
    def write(self, message: str, thread) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release what the output holds."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class _FileOutput(_Output):
    def __init__(self, perms: int, sync: bool, fsync_period: int,
                 archive_max_size: int, archive_max_count: int,
                 archive_path: str, archive_specs: Optional[Sequence],
                 rotater: Optional[Rotater]) -> None:
        self.perms = perms
        self.flags = _APPEND_FLAGS | (_SYNC_FLAG if sync else 0)
        # a synchronous file is flushed by every write already
        self.fsync_period = 0 if sync else fsync_period
        self.fsync_count = 0
        self.archive_max_size = archive_max_size
        self.archive_max_count = archive_max_count
        self.archive_path = archive_path
        self.archive_specs = list(archive_specs) if archive_specs else None
        self.rotater = rotater

    @property
    def rotating(self) -> bool:
        """True when the file is rotated once it grows past its size limit."""
        return self.archive_max_size > 0

    def _open(self, path: str) -> int:
        try:
            return os.open(path, self.flags, self.perms)
        except OSError as exc:
            error("open file[%s] fail, errno[%d]", path, exc.errno or 0)
            raise OutputError(f"open file[{path}] fail: {exc}") from exc

    def _count_fsync(self, fd: int) -> None:
        if not self.fsync_period:
            return
        self.fsync_count += 1
        if self.fsync_count >= self.fsync_period:
            self.fsync_count = 0
            try:
                os.fsync(fd)
            except OSError as exc:
                error("fsync[%d] fail, errno[%d]", fd, exc.errno or 0)

    def _append_once(self, path: str, data: bytes) -> None:
        fd = self._open(path)
        try:
            try:
                os.write(fd, data)
            except OSError as exc:
                error("write fail, errno[%d]", exc.errno or 0)
                raise OutputError(f"write to [{path}] fail: {exc}") from exc
            self._count_fsync(fd)
        finally:
            try:
                os.close(fd)
            except OSError as exc:
                error("close fail, maybe cause by write, errno[%d]", exc.errno or 0)
                raise OutputError(f"close [{path}] fail: {exc}") from exc

    def _archive_path(self, thread) -> str:
        if not self.archive_specs:
            return self.archive_path
        return _render(self.archive_specs, thread)

    def _maybe_rotate(self, path: str, length: int, thread) -> None:
        if length > self.archive_max_size:
            debug("one msg's len[%d] > archive_max_size[%d], no rotate",
                  length, self.archive_max_size)
            return
        try:
            size = os.stat(path).st_size
        except OSError as exc:
            warn("stat [%s] fail, errno[%d], maybe in rotating", path, exc.errno or 0)
            return
        if size + length < self.archive_max_size:
            return
        if self.rotater is None:
            debug("no rotater for [%s], no rotate", path)
            return
        try:
            self.rotater(path, length, self._archive_path(thread),
                         self.archive_max_size, self.archive_max_count)
        except Exception as exc:
            error("rotate [%s] fail", path)
            raise OutputError(f"rotate [{path}] fail: {exc}") from exc


class StaticFileOutput(_FileOutput):
    """A file whose path is fixed when the rule is read.

    Without rotation the file stays open and is reopened when it is removed
    or replaced; with rotation it is opened for each message.
    """

    def __init__(self, path: str, perms: int = 0o600, sync: bool = False,
                 fsync_period: int = 0, archive_max_size: int = 0,
                 archive_max_count: int = 0, archive_path: str = "",
                 archive_specs: Optional[Sequence] = None,
                 rotater: Optional[Rotater] = None) -> None:
        super().__init__(perms, sync, fsync_period, archive_max_size,
                         archive_max_count, archive_path, archive_specs, rotater)
        self.path = path
        self._fd: Optional[int] = self._open(path)
        try:
            info = os.fstat(self._fd)
        except OSError as exc:
            os.close(self._fd)
            self._fd = None
            raise OutputError(f"stat [{path}] fail: {exc}") from exc
        self._identity = (info.st_dev, info.st_ino)
        if self.rotating:
            os.close(self._fd)
            self._fd = None

    def write(self, message: str, thread) -> None:
        """Append *message* to the file, rotating it when it grows too big."""
        data = message.encode("utf-8")
        if self.rotating:
            self._append_once(self.path, data)
            self._maybe_rotate(self.path, len(data), thread)
            return

        try:
            info = os.stat(self.path)
            reload = (info.st_dev, info.st_ino) != self._identity or self._fd is None
        except FileNotFoundError:
            info = None
            reload = True
        except OSError as exc:
            error("stat fail on [%s], errno[%d]", self.path, exc.errno or 0)
            raise OutputError(f"stat [{self.path}] fail: {exc}") from exc

        if reload:
            if self._fd is not None:
                os.close(self._fd)
                self._fd = None
            self._fd = self._open(self.path)
            if info is None:
                try:
                    info = os.stat(self.path)
                except OSError as exc:
                    raise OutputError(f"stat new file [{self.path}] fail: {exc}") from exc
            self._identity = (info.st_dev, info.st_ino)

        try:
            os.write(self._fd, data)
        except OSError as exc:
            error("write fail, errno[%d]", exc.errno or 0)
            raise OutputError(f"write to [{self.path}] fail: {exc}") from exc
        self._count_fsync(self._fd)

    def close(self) -> None:
        """Close the file if it is held open."""
        if self._fd is not None:
            fd, self._fd = self._fd, None
            try:
                os.close(fd)
            except OSError as exc:
                error("close fail, maybe cause by write, errno[%d]", exc.errno or 0)


class DynamicFileOutput(_FileOutput):
    """A file whose path is rendered from specs for every message."""

    def __init__(self, specs: Sequence, perms: int = 0o600, sync: bool = False,
                 fsync_period: int = 0, archive_max_size: int = 0,
                 archive_max_count: int = 0, archive_path: str = "",
                 archive_specs: Optional[Sequence] = None,
                 rotater: Optional[Rotater] = None) -> None:
        super().__init__(perms, sync, fsync_period, archive_max_size,
                         archive_max_count, archive_path, archive_specs, rotater)
        self.specs = list(specs)

    def path(self, thread) -> str:
        """Return the file path for the thread's current event."""
        return _render(self.specs, thread)

    def write(self, message: str, thread) -> None:
        """Append *message* to the rendered path, rotating when configured."""
        path = self.path(thread)
        data = message.encode("utf-8")
        self._append_once(path, data)
        if self.rotating:
            self._maybe_rotate(path, len(data), thread)

    def close(self) -> None:
        """Nothing is held open between messages."""


class PipeOutput(_Output):
    """The standard input of a shell command started with the rule."""

    def __init__(self, command: str) -> None:
        self.command = command
        try:
            self._process = subprocess.Popen(command, shell=True, stdin=subprocess.PIPE)
        except OSError as exc:
            error("popen fail, errno[%d]", exc.errno or 0)
            raise OutputError(f"cannot start [{command}]: {exc}") from exc

    def write(self, message: str, thread) -> None:
        """Send *message* to the command."""
        stdin = self._process.stdin
        if stdin is None or stdin.closed:
            raise OutputError(f"pipe to [{self.command}] is closed")
        try:
            stdin.write(message.encode("utf-8"))
            stdin.flush()
        except OSError as exc:
            error("write fail, errno[%d]", exc.errno or 0)
            raise OutputError(f"write to [{self.command}] fail: {exc}") from exc

    def close(self) -> None:
        """Close the pipe and wait for the command to finish."""
        stdin = self._process.stdin
        if stdin is not None and not stdin.closed:
            try:
                stdin.close()
            except OSError as exc:
                error("pclose fail, errno[%d]", exc.errno or 0)
        self._process.wait()


class SyslogOutput(_Output):
    """The system log, under a facility and a priority taken from the level."""

    def __init__(self, facility: int, priorities: Optional[Mapping[int, int]] = None,
                 send: Optional[Callable[[int, str], None]] = None) -> None:
        self.facility = facility
        self.priorities = dict(priorities or {})
        if send is None:
            if _syslog is None:
                raise OutputError("syslog is not available on this platform")
            _syslog.openlog(logoption=_syslog.LOG_NDELAY | _syslog.LOG_NOWAIT
                            | _syslog.LOG_PID, facility=LOG_USER)
            send = _syslog.syslog
        self._send = send

    def write(self, message: str, thread) -> None:
        """Send *message* with the priority of the event's level."""
        priority = self.priorities.get(thread.event.level, LOG_DEBUG)
        self._send(self.facility | priority, message)

    def close(self) -> None:
        """The system log connection is shared and left open."""


class StreamOutput(_Output):
    """Standard output or standard error."""

    def __init__(self, target: str) -> None:
        if target not in ("stdout", "stderr"):
            raise ValueError(f"stream must be stdout or stderr, not [{target}]")
        self.target = target

    def write(self, message: str, thread) -> None:
        """Write *message* to the stream and flush it."""
        stream = sys.stdout if self.target == "stdout" else sys.stderr
        try:
            stream.write(message)
            stream.flush()
        except OSError as exc:
            error("write fail, errno[%d]", exc.errno or 0)
            raise OutputError(f"write to {self.target} fail: {exc}") from exc

    def close(self) -> None:
        """The standard streams are never closed."""


class RecordOutput(_Output):
    """A user-defined function registered under a record name."""

    def __init__(self, name: str, path: str = "", specs: Optional[Sequence] = None) -> None:
        self.name = name
        self.path = path
        self.specs = list(specs) if specs else None
        self.record_func: Optional[Callable[[RecordMessage], object]] = None

    @property
    def dynamic(self) -> bool:
        """True when the record path is rendered for each message."""
        return self.specs is not None

    def write(self, message: str, thread) -> None:
        """Pass *message* and its path to the record function."""
        if self.record_func is None:
            error("user defined record funcion for [%s] not set, no output", self.name)
            raise OutputError(f"record function for [{self.name}] not set")
        path = _render(self.specs, thread) if self.specs else self.path
        if self.record_func(RecordMessage(buf=message, path=path)):
            error("record [%s] fail", self.name)
            raise OutputError(f"record [{self.name}] fail")

    def close(self) -> None:
        """Nothing is held by a record output."""