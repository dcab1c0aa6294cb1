from __future__ import annotations

import copy
from threading import Lock
from typing import Any, Protocol

from .api_models import ManagedResource, ResourceID


class StoreError(Exception):
    """Any failure talking to the backing store."""


class NotFound(StoreError):
    pass


class Conflict(StoreError):
    """The write carried a stale resource version."""


class DeploymentStore(Protocol):
    def get(self, rid: ResourceID) -> ManagedResource: ...

    def update(self, resource: ManagedResource) -> ManagedResource: ...


class InMemoryStore:
    """Versioned, optimistically-concurrent store kept in a dict.

    Behaves like the API server for the two calls the reconciler makes:
    every write bumps the version and a write carrying any other version
    than the current one is rejected with Conflict.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._objects: dict[ResourceID, dict[str, Any]] = {}
        self._version = 0
        self.writes = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def put(self, manifest: dict[str, Any]) -> ManagedResource:
        """Create or overwrite without a version check, like an external actor would."""
        with self._lock:
            m = copy.deepcopy(manifest)
            meta = m.setdefault("metadata", {})
            meta.setdefault("namespace", "default")
            meta["resourceVersion"] = self._next_version()
            self._objects[ResourceID(meta["namespace"], meta["name"])] = m
            return ManagedResource.from_manifest(m)

    def delete(self, rid: ResourceID) -> None:
        with self._lock:
            if self._objects.pop(rid, None) is None:
                raise NotFound(f"deployment {rid} not found")

    def get(self, rid: ResourceID) -> ManagedResource:
        with self._lock:
            m = self._objects.get(rid)
            if m is None:
                raise NotFound(f"deployment {rid} not found")
            return ManagedResource.from_manifest(m)

    def update(self, resource: ManagedResource) -> ManagedResource:
        with self._lock:
            rid = resource.id
            current = self._objects.get(rid)
            if current is None:
                raise NotFound(f"deployment {rid} not found")
            if current["metadata"].get("resourceVersion") != resource.resource_version:
                raise Conflict(
                    f"deployment {rid} was modified: have version {resource.resource_version}, "
                    f"store has {current['metadata'].get('resourceVersion')}"
                )
            m = resource.to_manifest()
            m["metadata"]["resourceVersion"] = self._next_version()
            self._objects[rid] = m
            self.writes += 1
            return ManagedResource.from_manifest(m)
