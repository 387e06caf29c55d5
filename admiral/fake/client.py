"""In-memory fake API client whose behaviour is built from a chain of reactors.

Objects are plain dictionaries shaped like API resources, with a ``metadata``
mapping holding ``name``, ``namespace``, ``labels`` and the like.  Every request
becomes an :class:`Action` that is offered to the reactors of a :class:`Fake`
in order; the first reactor that handles it decides the result.  The last
reactor of a new fake is an object store that keeps the objects.
"""

from __future__ import annotations

import copy
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence, Union

Reaction = Callable[["Action"], "tuple[bool, Any]"]


def _qualified(resource: str, name: str) -> str:
    return f'{resource} "{name}"'.lstrip()


class ApiError(Exception):
    """An error as the API server would report it."""

    reason = "Unknown"
    code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ApiError):
    reason = "NotFound"
    code = 404

    def __init__(self, resource: str = "", name: str = "") -> None:
        super().__init__(f"{_qualified(resource, name)} not found")
        self.resource = resource
        self.name = name


class AlreadyExistsError(ApiError):
    reason = "AlreadyExists"
    code = 409

    def __init__(self, resource: str = "", name: str = "") -> None:
        super().__init__(f"{_qualified(resource, name)} already exists")
        self.resource = resource
        self.name = name


class ConflictError(ApiError):
    reason = "Conflict"
    code = 409

    def __init__(self, resource: str = "", name: str = "", cause: Any = "") -> None:
        super().__init__(f"Operation cannot be fulfilled on {_qualified(resource, name)}: {cause}")
        self.resource = resource
        self.name = name


class InvalidError(ApiError):
    reason = "Invalid"
    code = 422

    def __init__(self, kind: str = "", name: str = "", cause: Any = "") -> None:
        super().__init__(f"{_qualified(kind, name)} is invalid: {cause}")
        self.kind = kind
        self.name = name


class BadRequestError(ApiError):
    reason = "BadRequest"
    code = 400


class ServiceUnavailableError(ApiError):
    reason = "ServiceUnavailable"
    code = 503


@dataclass
class Action:
    """A request made of the fake client."""

    verb: str
    resource: str
    namespace: str = ""
    name: str = ""
    obj: Any = None
    label_selector: str = ""
    field_selector: str = ""
    resource_version: str | None = None

    def matches(self, verb: str, resource: str) -> bool:
        """Whether this action has the given verb and resource; "*" matches any."""
        return verb in ("*", self.verb) and resource in ("*", self.resource)


@dataclass(frozen=True)
class _Reactor:
    verb: str
    resource: str
    reaction: Reaction

    def handles(self, action: Action) -> bool:
        return action.matches(self.verb, self.resource)

    def react(self, action: Action) -> tuple[bool, Any]:
        return self.reaction(action)


def invoke_reactors(action: Action, reactors: Iterable[_Reactor]) -> Any:
    """Offer the action to the reactors in order and return the first handled result."""
    for reactor in reactors:
        if not reactor.handles(action):
            continue
        handled, obj = reactor.react(action)
        if handled:
            return obj
    raise RuntimeError("action not handled")


@dataclass(frozen=True)
class _Requirement:
    key: str
    operator: str
    values: tuple[str, ...] = ()

    def matches(self, values: Mapping[str, Any]) -> bool:
        present = self.key in values
        actual = values.get(self.key)
        if self.operator == "=":
            return present and actual == self.values[0]
        if self.operator == "!=":
            return actual != self.values[0]
        if self.operator == "in":
            return present and actual in self.values
        if self.operator == "notin":
            return not present or actual not in self.values
        if self.operator == "exists":
            return present
        return not present


_KEY = r"[^\s!=(),]+"
_EQUALITY = re.compile(rf"^\s*(?P<key>{_KEY})\s*(?P<op>==|=|!=)\s*(?P<value>[^\s,()]*)\s*$")
_SET = re.compile(rf"^\s*(?P<key>{_KEY})\s+(?P<op>in|notin)\s*\((?P<values>[^()]*)\)\s*$")
_EXISTS = re.compile(rf"^\s*(?P<neg>!?)\s*(?P<key>{_KEY})\s*$")
_TERM_SPLIT = re.compile(r",(?![^()]*\))")

Selector = Union[str, Sequence[_Requirement], None]


def parse_selector(text: str | None) -> tuple[_Requirement, ...]:
    """Parse a label or field selector such as ``a=b,c!=d,e in (f,g),!h``."""
    if not text or not text.strip():
        return ()
    requirements = []
    for term in _TERM_SPLIT.split(text):
        if m := _SET.match(term):
            values = tuple(v.strip() for v in m["values"].split(",") if v.strip())
            requirements.append(_Requirement(m["key"], m["op"], values))
        elif m := _EQUALITY.match(term):
            op = "=" if m["op"] == "==" else m["op"]
            requirements.append(_Requirement(m["key"], op, (m["value"],)))
        elif m := _EXISTS.match(term):
            requirements.append(_Requirement(m["key"], "!" if m["neg"] else "exists"))
        else:
            raise ValueError(f"invalid selector term {term!r} in {text!r}")
    return tuple(requirements)


def selector_matches(selector: Selector, values: Mapping[str, Any]) -> bool:
    """Whether the values satisfy every requirement of the selector; empty matches all."""
    requirements = parse_selector(selector) if isinstance(selector, str) or selector is None \
        else selector
    return all(req.matches(values) for req in requirements)


def _metadata(obj: dict) -> dict:
    return obj.setdefault("metadata", {})


class _ObjectTracker:
    """The store at the end of a fake's reaction chain."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[tuple[str, str, str], dict] = {}

    def react(self, action: Action) -> tuple[bool, Any]:
        handler = {
            "get": self._get,
            "create": self._create,
            "update": self._update,
            "delete": self._delete,
            "list": self._list,
        }.get(action.verb)
        if handler is None:
            return False, None
        with self._lock:
            return True, handler(action)

    def _get(self, action: Action) -> dict:
        key = (action.resource, action.namespace, action.name)
        if key not in self._objects:
            raise NotFoundError(action.resource, action.name)
        return copy.deepcopy(self._objects[key])

    @staticmethod
    def _prepare(action: Action) -> tuple[str, str, str]:
        meta = _metadata(action.obj)
        if not meta.get("namespace"):
            meta["namespace"] = action.namespace
        if meta["namespace"] != action.namespace:
            raise BadRequestError("request namespace does not match object namespace")
        return action.resource, action.namespace, meta.get("name", "")

    def _create(self, action: Action) -> dict:
        key = self._prepare(action)
        if key in self._objects:
            raise AlreadyExistsError(action.resource, key[2])
        self._objects[key] = copy.deepcopy(action.obj)
        return copy.deepcopy(action.obj)

    def _update(self, action: Action) -> dict:
        key = self._prepare(action)
        if key not in self._objects:
            raise NotFoundError(action.resource, key[2])
        self._objects[key] = copy.deepcopy(action.obj)
        return copy.deepcopy(action.obj)

    def _delete(self, action: Action) -> None:
        key = (action.resource, action.namespace, action.name)
        if self._objects.pop(key, None) is None:
            raise NotFoundError(action.resource, action.name)
        return None

    def _list(self, action: Action) -> dict:
        items = [
            copy.deepcopy(obj)
            for (resource, namespace, _), obj in sorted(self._objects.items())
            if resource == action.resource and (not action.namespace or namespace == action.namespace)
        ]
        return {"apiVersion": "v1", "kind": "List", "items": items}


class Fake:
    """Dispatches actions through a chain of reactors and records them."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.tracker = _ObjectTracker()
        self.reaction_chain: list[_Reactor] = [_Reactor("*", "*", self.tracker.react)]
        self._actions: list[Action] = []

    def prepend_reactor(self, verb: str, resource: str, reaction: Reaction) -> None:
        """Put a reaction at the front of the chain."""
        with self.lock:
            self.reaction_chain = [_Reactor(verb, resource, reaction), *self.reaction_chain]

    def add_reactor(self, verb: str, resource: str, reaction: Reaction) -> None:
        """Put a reaction at the end of the chain."""
        with self.lock:
            self.reaction_chain = [*self.reaction_chain, _Reactor(verb, resource, reaction)]

    def invoke(self, action: Action) -> Any:
        """Record the action and return what the first reactor handling it gives."""
        with self.lock:
            self._actions.append(copy.deepcopy(action))
            chain = list(self.reaction_chain)
        for reactor in chain:
            if not reactor.handles(action):
                continue
            handled, obj = reactor.react(action)
            if handled:
                return obj
        return None

    def clear_actions(self) -> None:
        with self.lock:
            self._actions.clear()

    def actions_for(self, resource: str, *verbs: str) -> list[Action]:
        """Recorded actions on the resource, limited to the given verbs if any."""
        with self.lock:
            return [a for a in self._actions
                    if a.resource == resource and (not verbs or a.verb in verbs)]

    def resource(self, resource: str, namespace: str = "") -> "ResourceClient":
        return ResourceClient(self, resource, namespace)


class ResourceClient:
    """Client for one resource type in one namespace ("" for all or cluster scope)."""

    def __init__(self, fake: Fake, resource: str, namespace: str = "") -> None:
        self._fake = fake
        self.resource = resource
        self.namespace = namespace

    def _action(self, verb: str, **kwargs: Any) -> Action:
        return Action(verb, self.resource, self.namespace, **kwargs)

    def get(self, name: str) -> Any:
        return self._fake.invoke(self._action("get", name=name))

    def create(self, obj: dict) -> Any:
        return self._fake.invoke(self._action("create", obj=copy.deepcopy(obj)))

    def update(self, obj: dict) -> Any:
        return self._fake.invoke(self._action("update", obj=copy.deepcopy(obj)))

    def delete(self, name: str, resource_version: str | None = None) -> None:
        """Delete by name; a resource version, if given, must match the stored one."""
        self._fake.invoke(self._action("delete", name=name, resource_version=resource_version))

    def list(self, label_selector: str = "", field_selector: str = "") -> list[dict]:
        """The objects of this resource, filtered by the label selector."""
        result = self._fake.invoke(self._action(
            "list", label_selector=label_selector, field_selector=field_selector))
        items = (result or {}).get("items", [])
        requirements = parse_selector(label_selector)
        return [item for item in items
                if selector_matches(requirements, item.get("metadata", {}).get("labels") or {})]

    def delete_collection(self, label_selector: str = "", field_selector: str = "") -> None:
        self._fake.invoke(self._action(
            "delete-collection", label_selector=label_selector, field_selector=field_selector))