"""Reactors that make a fake client behave like a real API server."""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from admiral.fake.client import (
    Action,
    BadRequestError,
    ConflictError,
    Fake,
    InvalidError,
    invoke_reactors,
    selector_matches,
)

_ALPHANUMS = "bcdfghjklmnpqrstvwxz2456789"
_NAME_REQUIRED = "metadata.name: Required value: name is required"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _random_suffix(length: int = 5) -> str:
    return "".join(secrets.choice(_ALPHANUMS) for _ in range(length))


def _metadata(obj: dict) -> dict:
    return obj.setdefault("metadata", {})


def _field_set(meta: dict) -> dict:
    return {"metadata.namespace": meta.get("namespace", ""), "metadata.name": meta.get("name", "")}


def add_basic_reactors(fake: Fake) -> None:
    """Add reactors mimicking real create, update, delete, list and delete-collection."""
    add_create_reactor(fake)
    add_update_reactor(fake)
    add_delete_reactor(fake)
    add_filtering_list_reactor(fake)
    add_delete_collection_reactor(fake)


def add_create_reactor(fake: Fake) -> None:
    """Handle generateName, name validation, resource version, timestamps and UID on create."""
    with fake.lock:
        reactors = list(fake.reaction_chain)

        def react(action: Action) -> tuple[bool, Any]:
            target = action.obj
            meta = _metadata(target)
            if not meta.get("name") and meta.get("generateName"):
                meta["name"] = meta["generateName"] + _random_suffix()
            if not meta.get("name"):
                raise InvalidError(target.get("kind", ""), "", _NAME_REQUIRED)
            if meta.get("resourceVersion"):
                raise BadRequestError("resourceVersion can not be set for Create requests")

            meta["resourceVersion"] = "1"
            meta["creationTimestamp"] = _now()
            meta.pop("deletionTimestamp", None)
            meta["uid"] = str(uuid.uuid4())
            return True, invoke_reactors(action, reactors)

        fake.prepend_reactor("create", "*", react)


def add_update_reactor(fake: Fake) -> None:
    """Check and bump the resource version on update; delete once finalizers are gone."""
    with fake.lock:
        reactors = list(fake.reaction_chain)

        def react(action: Action) -> tuple[bool, Any]:
            target = action.obj
            meta = _metadata(target)
            name = meta.get("name", "")
            if not name:
                raise InvalidError(target.get("kind", ""), "", _NAME_REQUIRED)

            existing = invoke_reactors(
                Action("get", action.resource, action.namespace, name=name), reactors)
            existing_version = _metadata(existing).get("resourceVersion", "")
            target_version = meta.get("resourceVersion", "")
            if existing_version != target_version:
                raise ConflictError("", name, f'resource version "{target_version}" does not '
                                              f'match expected "{existing_version}"')

            meta["resourceVersion"] = str(int(existing_version) + 1)
            obj = invoke_reactors(action, reactors)

            if meta.get("deletionTimestamp") and not meta.get("finalizers"):
                invoke_reactors(Action("delete", action.resource, action.namespace, name=name),
                                reactors)
            return True, obj

        fake.prepend_reactor("update", "*", react)


def add_delete_reactor(fake: Fake) -> None:
    """Honour resource version preconditions and finalizers on delete."""
    with fake.lock:
        reactors = list(fake.reaction_chain)

        def react(action: Action) -> tuple[bool, Any]:
            existing = invoke_reactors(
                Action("get", action.resource, action.namespace, name=action.name), reactors)
            meta = _metadata(existing)

            if action.resource_version is not None:
                current = meta.get("resourceVersion", "")
                if current != action.resource_version:
                    raise ConflictError(
                        action.resource, action.name,
                        f"the ResourceVersion in the precondition ({action.resource_version}) does "
                        f"not match the ResourceVersion in record ({current}). "
                        "The object might have been modified")

            if meta.get("finalizers"):
                if meta.get("deletionTimestamp"):
                    return True, existing
                meta["deletionTimestamp"] = _now()
                return True, invoke_reactors(
                    Action("update", action.resource, action.namespace, obj=existing), reactors)

            return True, invoke_reactors(action, reactors)

        fake.prepend_reactor("delete", "*", react)


def add_filtering_list_reactor(fake: Fake) -> None:
    """Apply field selectors on metadata.name and metadata.namespace to list results."""
    with fake.lock:
        reactors = list(fake.reaction_chain)

        def react(action: Action) -> tuple[bool, Any]:
            if action.verb != "list":
                return False, None
            result = invoke_reactors(action, reactors)
            if result is None or "items" not in result:
                raise ValueError(f"list result for {action.resource!r} has no items")
            result["items"] = [
                item for item in result["items"]
                if selector_matches(action.field_selector, _field_set(item.get("metadata", {})))
            ]
            return True, result

        fake.prepend_reactor("list", "*", react)


class DeleteCollectionReactor:
    """Deletes, one by one, the listed objects matching a delete-collection request."""

    def __init__(self, reactors: Iterable[Any]) -> None:
        self._reactors = list(reactors)

    def react(self, action: Action) -> tuple[bool, Any]:
        if action.verb != "delete-collection":
            return False, None

        listed = invoke_reactors(
            Action("list", action.resource, action.namespace,
                   label_selector=action.label_selector, field_selector=action.field_selector),
            self._reactors)
        if listed is None or "items" not in listed:
            raise ValueError(f"list result for {action.resource!r} has no items")

        for item in listed["items"]:
            meta = item.get("metadata", {})
            if (selector_matches(action.label_selector, meta.get("labels") or {})
                    and selector_matches(action.field_selector, _field_set(meta))):
                invoke_reactors(
                    Action("delete", action.resource, meta.get("namespace", ""),
                           name=meta.get("name", "")),
                    self._reactors)
        return True, None


def add_delete_collection_reactor(fake: Fake) -> None:
    with fake.lock:
        reactor = DeleteCollectionReactor(fake.reaction_chain)
        fake.prepend_reactor("delete-collection", "*", reactor.react)