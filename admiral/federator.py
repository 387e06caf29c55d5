"""Distribution of resources to federated clusters, plus a recording fake."""

from __future__ import annotations

import copy
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

CLUSTER_ID_LABEL_KEY = "submariner-io/clusterID"
"""Label holding the ID of the cluster a federated resource came from."""

_QUEUE_CAPACITY = 100


class Federator(ABC):
    """Distributes resources to, and deletes them from, federated clusters."""

    @abstractmethod
    def distribute(self, obj: Any) -> None:
        """Distribute the resource to all federated clusters; raise if the request fails."""

    @abstractmethod
    def delete(self, obj: Any) -> None:
        """Stop distributing the resource and delete it everywhere; raise if the request fails."""


class NoopFederator(Federator):
    """Federator that does nothing."""

    def distribute(self, obj):
        return None

    def delete(self, obj):
        return None


def _await_received(channel: queue.Queue, expected: Any, timeout: float, what: str) -> Any:
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise AssertionError(f"{what} was not called")
        try:
            item = channel.get(timeout=remaining)
        except queue.Empty:
            raise AssertionError(f"{what} was not called") from None
        if item == expected:
            return item


def _ensure_nothing_received(channel: queue.Queue, timeout: float, what: str) -> None:
    try:
        item = channel.get(timeout=timeout)
    except queue.Empty:
        return
    raise AssertionError(f"{what} was unexpectedly called with {item!r}")


class FakeFederator(Federator):
    """Federator for tests that records calls and can be told to fail."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._distributed: queue.Queue = queue.Queue(maxsize=_QUEUE_CAPACITY)
        self._deleted: queue.Queue = queue.Queue(maxsize=_QUEUE_CAPACITY)
        self._delegator: Federator | None = None
        self._fail_on_distribute: BaseException | None = None
        self._fail_on_delete: BaseException | None = None
        self.reset_on_failure = True

    def set_delegator(self, delegator: Federator | None) -> None:
        with self._lock:
            self._delegator = delegator

    def fail_on_distribute(self, err: BaseException | None) -> None:
        with self._lock:
            self._fail_on_distribute = err

    def fail_on_delete(self, err: BaseException | None) -> None:
        with self._lock:
            self._fail_on_delete = err

    def distribute(self, obj):
        with self._lock:
            err = self._fail_on_distribute
            if err is not None:
                if self.reset_on_failure:
                    self._fail_on_distribute = None
                raise err
            if self._delegator is not None:
                self._delegator.distribute(obj)
            self._distributed.put(copy.deepcopy(obj))

    def delete(self, obj):
        with self._lock:
            err = self._fail_on_delete
            if err is not None:
                if self.reset_on_failure:
                    self._fail_on_delete = None
                raise err
            if self._delegator is not None:
                self._delegator.delete(obj)
            self._deleted.put(copy.deepcopy(obj))

    def verify_distribute(self, expected: Any, timeout: float = 5.0) -> Any:
        """Wait for a distribution equal to ``expected`` and return it."""
        return _await_received(self._distributed, expected, timeout, "Distribute")

    def verify_no_distribute(self, timeout: float = 0.3) -> None:
        _ensure_nothing_received(self._distributed, timeout, "Distribute")

    def verify_delete(self, expected: Any, timeout: float = 5.0) -> Any:
        """Wait for a deletion equal to ``expected`` and return it."""
        return _await_received(self._deleted, expected, timeout, "Delete")

    def verify_no_delete(self, timeout: float = 0.3) -> None:
        _ensure_nothing_received(self._deleted, timeout, "Delete")