"""Client wrapper that lets tests intercept requests per verb and resource."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable

from admiral.fake.client import Fake

Reaction = Callable[[Any], bool]


class VerbType(IntEnum):
    GET = 0
    LIST = 1
    CREATE = 2
    UPDATE = 3
    DELETE = 4


def _meta(obj: dict) -> dict:
    return obj.get("metadata") or {}


class ReactingClient:
    """Wraps a fake client; a registered reaction may handle or fail a request first.

    A reaction receives the request's payload (the name for get, the namespace for
    list, the object otherwise).  It raises to fail the request, returns True to
    handle it without reaching the client, or False to let the client handle it.
    """

    def __init__(self, client: Fake | None = None) -> None:
        self.client = client if client is not None else Fake()
        self._reactors: dict[VerbType, dict[Any, Reaction]] = {verb: {} for verb in VerbType}

    def add_reactor(self, verb: VerbType, obj_type: Any, reaction: Reaction) -> "ReactingClient":
        """Register ``reaction`` for ``verb`` on the resource named ``obj_type``."""
        self._reactors[VerbType(verb)][obj_type] = reaction
        return self

    def _react(self, verb: VerbType, resource: str, payload: Any,
               fallback: Callable[[], Any]) -> Any:
        reaction = self._reactors[verb].get(resource)
        if reaction is not None and reaction(payload):
            return None
        return fallback()

    def get(self, resource: str, namespace: str, name: str) -> Any:
        return self._react(VerbType.GET, resource, name,
                           lambda: self.client.resource(resource, namespace).get(name))

    def list(self, resource: str, namespace: str = "") -> Any:
        return self._react(VerbType.LIST, resource, namespace,
                           lambda: self.client.resource(resource, namespace).list())

    def create(self, resource: str, obj: dict) -> Any:
        namespace = _meta(obj).get("namespace", "")
        return self._react(VerbType.CREATE, resource, obj,
                           lambda: self.client.resource(resource, namespace).create(obj))

    def update(self, resource: str, obj: dict) -> Any:
        namespace = _meta(obj).get("namespace", "")
        return self._react(VerbType.UPDATE, resource, obj,
                           lambda: self.client.resource(resource, namespace).update(obj))

    def delete(self, resource: str, obj: dict) -> Any:
        meta = _meta(obj)
        return self._react(
            VerbType.DELETE, resource, obj,
            lambda: self.client.resource(resource, meta.get("namespace", "")).delete(
                meta.get("name", "")))


class _FailingReaction:
    """A reaction that records each payload it sees and fails the request."""

    def __init__(self, err: BaseException) -> None:
        self.err = err
        self.calls: list[Any] = []

    def __call__(self, obj: Any) -> bool:
        self.calls.append(obj)
        raise self.err


def failing_reaction(err: BaseException | None = None) -> Reaction:
    """A reaction that always raises ``err`` (a generic error if None)."""
    return _FailingReaction(err if err is not None else RuntimeError("mock error"))