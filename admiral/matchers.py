"""Assertion matchers for errors."""

from __future__ import annotations

from typing import Any


class ContainErrorSubstring:
    """Matches an error whose message contains the expected error's message."""

    def __init__(self, expected: BaseException) -> None:
        self.expected = expected

    def match(self, actual: Any) -> bool:
        if not isinstance(actual, BaseException):
            raise TypeError(f"containErrorSubstring matcher requires an error.  Got:\n{actual!r}")
        return str(self.expected) in str(actual)

    def _message(self, actual: Any, relation: str) -> str:
        return f"Expected\n    {actual!r}\n{relation}\n    {str(self.expected)!r}"

    def failure_message(self, actual: Any) -> str:
        return self._message(actual, "to contain substring")

    def negated_failure_message(self, actual: Any) -> str:
        return self._message(actual, "not to contain substring")


def contain_error_substring(expected: BaseException) -> ContainErrorSubstring:
    return ContainErrorSubstring(expected)