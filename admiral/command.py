"""Command execution abstraction with a recording executor for tests."""

from __future__ import annotations

import io
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

AWAIT_TIMEOUT = 1.0
CONSISTENTLY_DURATION = 0.1
POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class CommandSpec:
    """A command: its path and full argument list, the command name first."""

    path: str
    args: tuple[str, ...]


@dataclass
class _CommandOutput:
    path_matcher: Any
    expected_args: tuple[str, ...]
    output: str
    err: BaseException | None


def _path_matches(path: str, matcher: Any) -> bool:
    if matcher is None:
        return True
    if isinstance(matcher, re.Pattern):
        return matcher.search(path) is not None
    if callable(matcher):
        return bool(matcher(path))
    return matcher == path


def _matches(spec: CommandSpec, path_matcher: Any, args: tuple[str, ...]) -> bool:
    return _path_matches(spec.path, path_matcher) and set(args) <= set(spec.args)


class FakeCommand:
    """A command that records itself with its executor instead of running."""

    def __init__(self, spec: CommandSpec, executor: "Executor") -> None:
        self.spec = spec
        self._executor = executor
        self.returncode = 0

    def run(self) -> None:
        self.start()

    def start(self) -> None:
        with self._executor._lock:
            self._executor._commands.append(self.spec)

    def wait(self) -> int:
        """A fake command finishes at once, always successfully."""
        return self.returncode

    def stdout_pipe(self) -> io.BytesIO:
        """A readable stream holding the first configured output that matches."""
        with self._executor._lock:
            for entry in self._executor._outputs:
                if _matches(self.spec, entry.path_matcher, entry.expected_args):
                    return io.BytesIO(entry.output.encode())
        return io.BytesIO()

    def output(self) -> bytes:
        """Record the command and consume the first matching configured output.

        Raises the configured error, if any.
        """
        with self._executor._lock:
            self._executor._commands.append(self.spec)
            for entry in self._executor._outputs:
                if _matches(self.spec, entry.path_matcher, entry.expected_args):
                    self._executor._outputs.remove(entry)
                    if entry.err is not None:
                        raise entry.err
                    return entry.output.encode()
        return b""

    def combined_output(self) -> bytes:
        return self.output()


class Executor:
    """Creates fake commands and keeps the record of those that were run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._commands: list[CommandSpec] = []
        self._outputs: list[_CommandOutput] = []

    def new_command(self, path: str, *args: str) -> FakeCommand:
        return FakeCommand(CommandSpec(path, (path, *args)), self)

    def commands(self) -> list[CommandSpec]:
        with self._lock:
            return list(self._commands)

    def clear(self) -> None:
        with self._lock:
            self._commands.clear()

    def _find(self, path_matcher: Any, args: tuple[str, ...]) -> CommandSpec | None:
        with self._lock:
            return next((c for c in self._commands if _matches(c, path_matcher, args)), None)

    def await_command(self, path_matcher: Any, *args: str) -> CommandSpec:
        """Wait until a matching command was run; raise AssertionError on timeout."""
        deadline = time.monotonic() + AWAIT_TIMEOUT
        while True:
            found = self._find(path_matcher, args)
            if found is not None:
                return found
            if time.monotonic() >= deadline:
                raise AssertionError(
                    f"Command with args {list(args)} not found. Actual: {self.commands()}")
            time.sleep(POLL_INTERVAL)

    def ensure_no_command(self, path_matcher: Any, *args: str) -> None:
        """Check for a short while that no matching command is run."""
        deadline = time.monotonic() + CONSISTENTLY_DURATION
        while True:
            if self._find(path_matcher, args) is not None:
                raise AssertionError(f"Found unexpected command with args {list(args)}")
            if time.monotonic() >= deadline:
                return
            time.sleep(POLL_INTERVAL)

    def setup_command_stdout(self, output: str, path_matcher: Any, *args: str) -> None:
        self.setup_command_output_with_error(output, None, path_matcher, *args)

    def setup_command_output_with_error(self, output: str, err: BaseException | None,
                                        path_matcher: Any, *args: str) -> None:
        """Configure the output, and optional error, of matching commands; newest wins."""
        with self._lock:
            self._outputs.insert(0, _CommandOutput(path_matcher, tuple(args), output, err))


PathMatcher = Callable[[str], bool] | re.Pattern | str | None