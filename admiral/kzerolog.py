"""Human friendly console log sink with verbosity filtering and caller tracking."""

from __future__ import annotations

import argparse
import inspect
import os
import sys
from datetime import datetime
from typing import Any, Callable, TextIO

from admiral import logger as _logger_module
from admiral.logger import DEBUG, FATAL_KEY, TRACE, WARNING_KEY, LogSink, set_default_sink

MAX_LEN_LOGGER = 20
MAX_LEN_CALLER = 25


def _normalise(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


_SKIPPED_FILES = frozenset(_normalise(path) for path in (__file__, _logger_module.__file__))


def truncate(value: Any, max_len: int) -> str:
    """Render ``value`` in exactly ``max_len`` columns, keeping its tail when too long."""
    text = f"{value}"
    if len(text) > max_len:
        text = ".." + text[len(text) - max_len + 2:]
    return text.ljust(max_len)


def _pop_marker(args: tuple, key: str) -> tuple[bool, tuple]:
    for pos, candidate in enumerate(args[0::2]):
        if isinstance(candidate, str) and candidate == key:
            start = pos * 2
            return True, args[:start] + args[start + 2:]
    return False, args


def _timestamp(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.astimezone()
    text = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}"
    offset = now.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _caller() -> str:
    frame = inspect.currentframe()
    try:
        while frame is not None and _normalise(frame.f_code.co_filename) in _SKIPPED_FILES:
            frame = frame.f_back
        if frame is None:
            return ""
        return f"{frame.f_code.co_filename}:{frame.f_lineno}"
    finally:
        del frame


class ConsoleSink(LogSink):
    """Writes one line per entry: time, level, caller, logger name, message and fields."""

    def __init__(self, stream: TextIO | None = None, max_verbosity: int = 0, prefix: str = "",
                 values: tuple = (), clock: Callable[[], datetime] | None = None) -> None:
        self._stream = stream
        self._max_verbosity = max_verbosity
        self._prefix = prefix
        self._values = tuple(values)
        self._clock = clock if clock is not None else datetime.now

    @property
    def prefix(self) -> str:
        return self._prefix

    def _write(self, level_name: str, msg: str, args: tuple, err: BaseException | None = None) -> None:
        fields = [] if err is None else [f"error={err}"]
        pairs = list(zip(self._values[0::2], self._values[1::2]))
        pairs += zip(args[0::2], args[1::2])
        fields += [f"{key}={value}" for key, value in sorted(pairs, key=lambda kv: str(kv[0]))]

        message = truncate(self._prefix, MAX_LEN_LOGGER) + " " + msg
        line = (f"{_timestamp(self._clock())} {level_name} "
                f"{truncate(_caller(), MAX_LEN_CALLER)} > {message}")
        if fields:
            line += " " + " ".join(fields)

        stream = self._stream if self._stream is not None else sys.stderr
        print(line, file=stream)

    def info(self, level, msg, *args):
        if level > self._max_verbosity:
            return
        warn, args = _pop_marker(args, WARNING_KEY)
        if warn:
            name = "WRN"
        elif level >= TRACE:
            name = "TRC"
        elif level >= DEBUG:
            name = "DBG"
        else:
            name = "INF"
        self._write(name, msg, args)

    def error(self, err, msg, *args):
        fatal, args = _pop_marker(args, FATAL_KEY)
        self._write("FTL" if fatal else "ERR", msg, args, err)

    def enabled(self, level):
        return level <= self._max_verbosity

    def with_name(self, name):
        prefix = f"{self._prefix}/{name}" if self._prefix else name
        return ConsoleSink(self._stream, self._max_verbosity, prefix, self._values, self._clock)

    def with_values(self, *args):
        return ConsoleSink(self._stream, self._max_verbosity, self._prefix,
                           self._values + args, self._clock)


def add_flags(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    """Register the logging command line options on ``parser`` (a new one if None)."""
    if parser is None:
        parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-v", dest="v", type=int, default=0,
                        help="number for the log level verbosity (higher is more verbose)")
    parser.add_argument("--alsologtostderr", action="store_true",
                        help="unused - backwards compatibility")
    return parser


def init_k8s_logging(verbosity: int = 0, stream: TextIO | None = None) -> ConsoleSink:
    """Install a console sink as the default log sink and return it."""
    sink = ConsoleSink(stream=stream, max_verbosity=verbosity)
    set_default_sink(sink)
    return sink