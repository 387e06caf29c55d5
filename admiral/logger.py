"""Structured logging front end with verbosity levels and warning/fatal markers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from itertools import zip_longest
from typing import Any

DEBUG = 2
"""Often occurring events that help when debugging errors."""
LIBDEBUG = 3
"""Like DEBUG, but for internal libraries."""
TRACE = 4
"""Very frequent or very verbose output such as function entry and exit."""
LIBTRACE = 5
"""Like TRACE, but for internal libraries."""

WARNING_KEY = "WARNING"
FATAL_KEY = "FATAL"
FATAL_EXIT_CODE = 255


def _format(fmt: str, args: tuple) -> str:
    return fmt % args if args else fmt


def _split_marker(args: tuple, key: str) -> tuple[bool, tuple]:
    """Remove the first key/value pair whose key is ``key``; report whether it was present."""
    for pos, candidate in enumerate(args[0::2]):
        if candidate == key:
            start = pos * 2
            return True, args[:start] + args[start + 2:]
    return False, args


def _render_pairs(args: tuple) -> str:
    return " ".join(
        f"{key}={value}"
        for key, value in zip_longest(args[0::2], args[1::2], fillvalue="<no-value>")
    )


class LogSink(ABC):
    """Back end that receives log entries from a Logger."""

    @abstractmethod
    def info(self, level: int, msg: str, *args: Any) -> None:
        """Log a non-error message at the given verbosity with key/value pairs."""

    @abstractmethod
    def error(self, err: BaseException | None, msg: str, *args: Any) -> None:
        """Log an error message with key/value pairs."""

    @abstractmethod
    def enabled(self, level: int) -> bool:
        """Whether messages at the given verbosity are emitted."""

    @abstractmethod
    def with_name(self, name: str) -> "LogSink":
        """A sink whose entries carry an extra name element."""

    @abstractmethod
    def with_values(self, *args: Any) -> "LogSink":
        """A sink that attaches the given key/value pairs to every entry."""


class StdlibSink(LogSink):
    """Sink writing to the standard library ``logging`` module."""

    def __init__(self, logger: logging.Logger | None = None, max_verbosity: int = 0,
                 values: tuple = ()) -> None:
        self._logger = logger if logger is not None else logging.getLogger("admiral")
        self._max_verbosity = max_verbosity
        self._values = tuple(values)

    def _text(self, msg: str, args: tuple) -> str:
        pairs = _render_pairs(self._values + tuple(args))
        return f"{msg} {pairs}" if pairs else msg

    def info(self, level, msg, *args):
        warn, args = _split_marker(args, WARNING_KEY)
        if warn:
            py_level = logging.WARNING
        elif level >= DEBUG:
            py_level = logging.DEBUG
        else:
            py_level = logging.INFO
        self._logger.log(py_level, "%s", self._text(msg, args))

    def error(self, err, msg, *args):
        fatal, args = _split_marker(args, FATAL_KEY)
        if err is not None:
            args = args + ("error", err)
        self._logger.log(logging.CRITICAL if fatal else logging.ERROR, "%s", self._text(msg, args))

    def enabled(self, level):
        return level <= self._max_verbosity

    def with_name(self, name):
        return StdlibSink(self._logger.getChild(name), self._max_verbosity, self._values)

    def with_values(self, *args):
        return StdlibSink(self._logger, self._max_verbosity, self._values + args)


@dataclass
class _DefaultState:
    sink: LogSink


_state = _DefaultState(StdlibSink())


class _DefaultSink(LogSink):
    """Resolves the process-wide default sink each time it is used."""

    def __init__(self, names: tuple = (), values: tuple = ()) -> None:
        self._names = names
        self._values = values

    def _resolve(self) -> LogSink:
        sink = _state.sink
        for name in self._names:
            sink = sink.with_name(name)
        return sink.with_values(*self._values) if self._values else sink

    def info(self, level, msg, *args):
        self._resolve().info(level, msg, *args)

    def error(self, err, msg, *args):
        self._resolve().error(err, msg, *args)

    def enabled(self, level):
        return self._resolve().enabled(level)

    def with_name(self, name):
        return _DefaultSink(self._names + (name,), self._values)

    def with_values(self, *args):
        return _DefaultSink(self._names, self._values + args)


@dataclass(frozen=True)
class Logger:
    """Leveled logger with printf-style helpers, warnings and fatal exits."""

    sink: LogSink
    level: int = 0

    def info(self, msg: str, *args: Any) -> None:
        if self.sink.enabled(self.level):
            self.sink.info(self.level, msg, *args)

    def infof(self, fmt: str, *args: Any) -> None:
        self.info(_format(fmt, args))

    def error(self, err: BaseException | None, msg: str, *args: Any) -> None:
        self.sink.error(err, msg, *args)

    def errorf(self, err: BaseException | None, fmt: str, *args: Any) -> None:
        self.error(err, _format(fmt, args))

    def warning(self, msg: str, *args: Any) -> None:
        self.info(msg, *args, WARNING_KEY, "true")

    def warningf(self, fmt: str, *args: Any) -> None:
        self.info(_format(fmt, args), WARNING_KEY, "true")

    def fatal(self, msg: str, *args: Any) -> None:
        """Log the message as fatal and exit the process."""
        self.sink.error(None, msg, *args, FATAL_KEY, "true")
        raise SystemExit(FATAL_EXIT_CODE)

    def fatalf(self, fmt: str, *args: Any) -> None:
        self.fatal(_format(fmt, args))

    def fatal_on_error(self, err: BaseException | None, msg: str, *args: Any) -> None:
        """Log and exit if ``err`` is set; do nothing otherwise."""
        if err is None:
            return
        self.sink.error(err, msg, *args, FATAL_KEY, "true")
        raise SystemExit(FATAL_EXIT_CODE)

    def fatalf_on_error(self, err: BaseException | None, fmt: str, *args: Any) -> None:
        if err is None:
            return
        self.fatal_on_error(err, _format(fmt, args))

    def v(self, level: int) -> "Logger":
        """A logger whose verbosity is raised by ``level``."""
        return replace(self, level=self.level + level)

    def with_name(self, name: str) -> "Logger":
        return replace(self, sink=self.sink.with_name(name))


def set_default_sink(sink: LogSink) -> LogSink:
    """Install the sink used by loggers from :func:`get_logger`; return the previous one."""
    previous = _state.sink
    _state.sink = sink
    return previous


def get_logger(name: str | None = None) -> Logger:
    """A logger writing to the default sink, optionally named."""
    sink: LogSink = _DefaultSink()
    if name:
        sink = sink.with_name(name)
    return Logger(sink)