"""Progress reporting for operations: logging, stdout, silent and tracking reporters."""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO


def _format(message: str, args: tuple) -> str:
    return message % args if args else message


class _WrappedError(Exception):
    """An error annotated with a message; the original is its ``__cause__``."""


class Basic(ABC):
    """Receives the progress of operations."""

    @abstractmethod
    def start(self, message: str, *args: Any) -> None:
        """An operation is starting; any operation in progress ends."""

    @abstractmethod
    def success(self, message: str, *args: Any) -> None:
        """The last operation succeeded."""

    @abstractmethod
    def failure(self, message: str, *args: Any) -> None:
        """The last operation failed."""

    @abstractmethod
    def end(self) -> None:
        """End the current operation."""

    @abstractmethod
    def warning(self, message: str, *args: Any) -> None:
        """A warning for the last operation."""


class Adapter(Basic):
    """Full reporter built on a :class:`Basic` one, adding :meth:`error`."""

    def __init__(self, basic: Basic) -> None:
        self._basic = basic

    def start(self, message, *args):
        self._basic.start(message, *args)

    def success(self, message, *args):
        self._basic.success(message, *args)

    def failure(self, message, *args):
        self._basic.failure(message, *args)

    def end(self):
        self._basic.end()

    def warning(self, message, *args):
        self._basic.warning(message, *args)

    def error(self, err: BaseException | None, message: str, *args: Any) -> BaseException | None:
        """Wrap ``err`` with the message, report it as a failure, end the operation and return it.

        Returns None, reporting nothing, when ``err`` is None.
        """
        if err is None:
            return None
        if message:
            wrapped = _WrappedError(f"{_format(message, args)}: {err}")
            wrapped.__cause__ = err
            err = wrapped
        text = str(err)
        self._basic.failure(text[:1].upper() + text[1:])
        self._basic.end()
        return err


class LoggingBasic(Basic):
    """Reports through the standard ``logging`` module."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger if logger is not None else logging.getLogger("admiral.reporter")

    def start(self, message, *args):
        self._logger.info("%s", _format(message, args))

    def success(self, message, *args):
        self._logger.info("%s", _format(message, args))

    def failure(self, message, *args):
        self._logger.error("%s", _format(message, args))

    def end(self):
        pass

    def warning(self, message, *args):
        self._logger.warning("%s", _format(message, args))


class SilentBasic(Basic):
    """Discards every report."""

    def start(self, message, *args):
        pass

    def success(self, message, *args):
        pass

    def failure(self, message, *args):
        pass

    def end(self):
        pass

    def warning(self, message, *args):
        pass


class StdoutBasic(Basic):
    """Prints reports, one per line, to standard output or a given stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _print(self, text: str) -> None:
        print(text, file=self._stream if self._stream is not None else sys.stdout)

    def start(self, message, *args):
        self.success(message, *args)

    def success(self, message, *args):
        self._print(_format(message, args))

    def failure(self, message, *args):
        self._print("ERROR: " + _format(message, args))

    def end(self):
        pass

    def warning(self, message, *args):
        self._print("WARNING: " + _format(message, args))


def klog() -> Adapter:
    return Adapter(LoggingBasic())


def silent() -> Adapter:
    return Adapter(SilentBasic())


def stdout() -> Adapter:
    return Adapter(StdoutBasic())


class Tracker(Adapter):
    """Reporter that remembers whether the current operation had warnings or failures."""

    def __init__(self, reporter: Adapter) -> None:
        super().__init__(reporter)
        self._reporter = reporter
        self._has_failures = False
        self._has_warnings = False

    def start(self, message, *args):
        self._has_warnings = False
        self._has_failures = False
        self._reporter.start(message, *args)

    def success(self, message, *args):
        self._reporter.success(message, *args)

    def failure(self, message, *args):
        self._has_failures = True
        self._reporter.failure(message, *args)

    def end(self):
        self._reporter.end()

    def warning(self, message, *args):
        self._has_warnings = True
        self._reporter.warning(message, *args)

    def error(self, err, message, *args):
        return self._reporter.error(err, message, *args)

    def has_warnings(self) -> bool:
        return self._has_warnings

    def has_failures(self) -> bool:
        return self._has_failures