from datetime import datetime, timedelta, timezone

import pytest

from admiral.fake.client import (
    Action,
    BadRequestError,
    ConflictError,
    Fake,
    InvalidError,
    NotFoundError,
)
from admiral.fake.reactors import (
    DeleteCollectionReactor,
    add_basic_reactors,
    add_create_reactor,
)

TEST_NAMESPACE = "test-ns"


@pytest.fixture
def fake():
    f = Fake()
    add_basic_reactors(f)
    return f


@pytest.fixture
def pods(fake):
    return fake.resource("pods", TEST_NAMESPACE)


@pytest.fixture
def pod():
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "generateName": "pod-",
            "labels": {"app": "test"},
            "annotations": {"foo": "bar"},
        },
        "spec": {"containers": [{"image": "image1", "name": "server1"}]},
    }


def create_success(pods, obj):
    created = pods.create(obj)
    actual = pods.get(created["metadata"]["name"])
    assert actual == created
    return actual


def prepare_update(created):
    created["metadata"]["namespace"] = ""
    created["spec"] = {"containers": [{"image": "image2", "name": "server2"}]}
    return created


def update_success(pods, obj):
    updated = pods.update(obj)
    actual = pods.get(updated["metadata"]["name"])
    assert actual == updated
    return actual


# Create


def test_create_sets_name_from_generate_name(pods, pod):
    actual = create_success(pods, pod)
    assert actual["metadata"]["name"].startswith("pod-")


def test_create_sets_resource_version(pods, pod):
    assert create_success(pods, pod)["metadata"]["resourceVersion"] == "1"


def test_create_sets_uid(pods, pod):
    first = create_success(pods, pod)
    second = create_success(pods, pod)
    assert first["metadata"]["uid"]
    assert first["metadata"]["uid"] != second["metadata"]["uid"]


def test_create_sets_creation_timestamp(pods, pod):
    now = datetime.now(timezone.utc)
    actual = create_success(pods, pod)
    stamp = datetime.strptime(actual["metadata"]["creationTimestamp"], "%Y-%m-%dT%H:%M:%SZ")
    assert stamp.replace(tzinfo=timezone.utc) > now - timedelta(seconds=5)


def test_create_without_name_fails(pods, pod):
    pod["metadata"]["generateName"] = ""
    with pytest.raises(InvalidError):
        pods.create(pod)


def test_create_with_resource_version_fails(pods, pod):
    pod["metadata"]["resourceVersion"] = "2"
    with pytest.raises(BadRequestError):
        pods.create(pod)


def test_create_clears_deletion_timestamp():
    fake = Fake()
    add_create_reactor(fake)
    obj = {"metadata": {"name": "a", "deletionTimestamp": "2024-01-01T00:00:00Z"}}
    created = fake.resource("pods", TEST_NAMESPACE).create(obj)
    assert "deletionTimestamp" not in created["metadata"]


# Update


def test_update_updates_resource(pods, pod):
    target = prepare_update(create_success(pods, pod))
    actual = update_success(pods, target)
    assert actual["spec"] == target["spec"]
    assert actual["metadata"]["resourceVersion"] > target["metadata"]["resourceVersion"]


def test_update_without_name_is_invalid(pods, pod):
    target = prepare_update(create_success(pods, pod))
    target["metadata"]["name"] = ""
    with pytest.raises(InvalidError):
        pods.update(target)


def test_update_with_mismatched_resource_version_conflicts(pods, pod):
    target = prepare_update(create_success(pods, pod))
    target["metadata"]["resourceVersion"] = "111"
    with pytest.raises(ConflictError):
        pods.update(target)


def test_update_deletes_when_deleting_and_finalizers_empty(pods, pod):
    pod["metadata"]["finalizers"] = ["some-finalizer"]
    target = prepare_update(create_success(pods, pod))
    target["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    target = update_success(pods, target)

    target["metadata"].pop("finalizers")
    pods.update(target)

    with pytest.raises(NotFoundError):
        pods.get(target["metadata"]["name"])


# Delete


def test_delete_removes_resource(pods, pod):
    created = create_success(pods, pod)
    pods.delete(created["metadata"]["name"])
    with pytest.raises(NotFoundError):
        pods.get(created["metadata"]["name"])


def test_delete_with_matching_resource_version(pods, pod):
    created = create_success(pods, pod)
    pods.delete(created["metadata"]["name"], resource_version=created["metadata"]["resourceVersion"])
    with pytest.raises(NotFoundError):
        pods.get(created["metadata"]["name"])


def test_delete_with_mismatched_resource_version_conflicts(pods, pod):
    created = create_success(pods, pod)
    with pytest.raises(ConflictError):
        pods.delete(created["metadata"]["name"], resource_version="111")


def test_delete_with_finalizers_sets_deletion_timestamp(pods, pod):
    pod["metadata"]["finalizers"] = ["some-finalizer"]
    name = create_success(pods, pod)["metadata"]["name"]

    pods.delete(name)
    actual = pods.get(name)
    assert actual["metadata"].get("deletionTimestamp")

    pods.delete(name)
    unchanged = pods.get(name)
    assert unchanged["metadata"]["resourceVersion"] == actual["metadata"]["resourceVersion"]


# List


def test_list_with_field_selector(pods, pod):
    created = create_success(pods, pod)
    create_success(pods, {"metadata": {"name": "other-pod"}})
    items = pods.list(field_selector="metadata.name=" + created["metadata"]["name"])
    assert len(items) == 1
    assert items[0]["metadata"]["name"] == created["metadata"]["name"]


# DeleteCollection


def test_delete_collection_deletes_matching(pods, pod):
    created = create_success(pods, pod)
    other = create_success(pods, {"metadata": {"name": "other-pod"}})

    pods.delete_collection(label_selector="app=test")

    with pytest.raises(NotFoundError):
        pods.get(created["metadata"]["name"])
    assert pods.get("other-pod") == other


def test_delete_collection_reactor_ignores_other_verbs(fake):
    reactor = DeleteCollectionReactor(fake.reaction_chain)
    assert reactor.react(Action("get", "pods", TEST_NAMESPACE, name="x")) == (False, None)