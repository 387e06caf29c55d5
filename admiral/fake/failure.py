"""Reactors that inject failures and conflicts, and verify namespaces, for a fake client."""

from __future__ import annotations

import threading
from typing import Any

from admiral.fake.client import Action, ConflictError, Fake, invoke_reactors
from admiral.fake.reactors import DeleteCollectionReactor

_CONFLICT_RESOURCE_VERSION = "100"


def conflict_on_update_reactor(fake: Fake, resource: str) -> None:
    """Fail the first update of each object of ``resource`` with a conflict.

    After a conflict the next get of that object reports a fixed resource version;
    an update carrying that version then goes through.
    """
    with fake.lock:
        reactors = list(fake.reaction_chain)
        lock = threading.Lock()
        conflicted: set[str] = set()

        def on_get(action: Action) -> tuple[bool, Any]:
            obj = invoke_reactors(action, reactors)
            if obj is not None:
                meta = obj.setdefault("metadata", {})
                with lock:
                    seen = meta.get("name", "") in conflicted
                if seen:
                    meta["resourceVersion"] = _CONFLICT_RESOURCE_VERSION
            return True, obj

        def on_update(action: Action) -> tuple[bool, Any]:
            meta = (action.obj or {}).get("metadata", {})
            name = meta.get("name", "")
            with lock:
                if name not in conflicted:
                    conflicted.add(name)
                    raise ConflictError("", "", "fake conflict")
                if meta.get("resourceVersion") != _CONFLICT_RESOURCE_VERSION:
                    raise ConflictError("", "", "fake conflict")
                conflicted.discard(name)
            return False, None

        fake.prepend_reactor("update", resource, on_update)
        fake.prepend_reactor("get", resource, on_get)


class FailOnActionReactor:
    """Switch controlling a reaction installed by :func:`fail_on_action`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failing = True

    def fail(self, value: bool) -> None:
        """Turn failing on or off."""
        with self._lock:
            self._failing = value

    def _should_fail(self, auto_reset: bool) -> bool:
        with self._lock:
            failing = self._failing
            if failing and auto_reset:
                self._failing = False
            return failing


def fail_on_action(fake: Fake, resource: str, verb: str,
                   custom_err: BaseException | None = None,
                   auto_reset: bool = False) -> FailOnActionReactor:
    """Make ``verb`` on ``resource`` raise ``custom_err`` (a generic error if None).

    With ``auto_reset`` only the next such action fails.
    """
    switch = FailOnActionReactor()
    err = custom_err if custom_err is not None else RuntimeError("fake error")

    def react(action: Action) -> tuple[bool, Any]:
        if switch._should_fail(auto_reset):
            raise err
        return False, None

    with fake.lock:
        fake.prepend_reactor(verb, resource, react)
    return switch


class FailingReactor:
    """Reactor raising configured errors for get, create, update, delete and list."""

    _VERBS = ("get", "create", "update", "delete", "list")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: dict[str, BaseException | None] = dict.fromkeys(self._VERBS)
        self._reset_on_failure = False

    def react(self, action: Action) -> tuple[bool, Any]:
        with self._lock:
            err = self._errors.get(action.verb)
            if err is None:
                return False, None
            if self._reset_on_failure:
                self._errors[action.verb] = None
        raise err

    def _set(self, verb: str, err: BaseException | None) -> None:
        with self._lock:
            self._errors[verb] = err

    def set_reset_on_failure(self, value: bool) -> None:
        with self._lock:
            self._reset_on_failure = value

    def set_fail_on_create(self, err: BaseException | None) -> None:
        self._set("create", err)

    def set_fail_on_update(self, err: BaseException | None) -> None:
        self._set("update", err)

    def set_fail_on_delete(self, err: BaseException | None) -> None:
        self._set("delete", err)

    def set_fail_on_get(self, err: BaseException | None) -> None:
        self._set("get", err)

    def set_fail_on_list(self, err: BaseException | None) -> None:
        self._set("list", err)


def new_failing_reactor(fake: Fake, resource: str = "*") -> FailingReactor:
    """Install a :class:`FailingReactor` for ``resource`` ("*" for all)."""
    reactor = FailingReactor()
    with fake.lock:
        fake.prepend_reactor("*", resource, reactor.react)
    return reactor


def add_verify_namespace_reactor(fake: Fake, *resources: str) -> None:
    """Require namespaced requests on ``resources`` to name an existing namespace.

    Deleting a namespace also deletes the objects it holds of every resource seen.
    """
    with fake.lock:
        reactors = list(fake.reaction_chain)
        seen_lock = threading.Lock()
        seen: dict[str, None] = {}

        def verify(action: Action) -> tuple[bool, Any]:
            with seen_lock:
                seen[action.resource] = None
            if action.namespace:
                invoke_reactors(Action("get", "namespaces", "", name=action.namespace), reactors)
            return False, None

        for res in resources:
            fake.prepend_reactor("*", res, verify)

        delete_collection = DeleteCollectionReactor(reactors)

        def on_namespace_delete(action: Action) -> tuple[bool, Any]:
            name = action.name
            with seen_lock:
                kinds = list(seen)
            for kind in kinds:
                try:
                    delete_collection.react(Action("delete-collection", kind, name))
                except Exception as exc:
                    raise RuntimeError(
                        f"VerifyNamespaceReactor: error deleting {kind!r} resources in "
                        f"namespace {name!r}: {exc}") from exc
            return False, None

        fake.prepend_reactor("delete", "namespaces", on_namespace_delete)