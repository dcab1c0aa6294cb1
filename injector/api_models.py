from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ResourceID:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class Outcome(str, Enum):
    SUCCESS = "success"
    NOOP = "noop"  # nothing to write
    RETRY = "retry"  # ask the dispatcher to re-deliver the id
    FATAL = "fatal"


class ContainerSpec(BaseModel):
    # Fields we do not model (ports, env, resources...) must survive a write-back.
    model_config = ConfigDict(extra="allow")

    name: str
    image: str | None = None
    command: list[str] | None = None
    args: list[str] | None = None

    def to_manifest(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ManagedResource(BaseModel):
    """A Deployment as read from the store.

    Only the pieces the injector reasons about are modelled; the complete
    manifest is kept in ``manifest`` and written back with just the pod
    template's container list replaced.
    """

    namespace: str
    name: str
    resource_version: str | None = None
    containers: list[ContainerSpec] = Field(default_factory=list)
    manifest: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def id(self) -> ResourceID:
        return ResourceID(self.namespace, self.name)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> "ManagedResource":
        meta = manifest.get("metadata") or {}
        pod_spec = ((manifest.get("spec") or {}).get("template") or {}).get("spec") or {}
        return cls(
            namespace=meta.get("namespace") or "default",
            name=meta["name"],
            resource_version=meta.get("resourceVersion"),
            containers=[ContainerSpec(**c) for c in pod_spec.get("containers") or []],
            manifest=copy.deepcopy(manifest),
        )

    def to_manifest(self) -> dict[str, Any]:
        out = copy.deepcopy(self.manifest)
        meta = out.setdefault("metadata", {})
        meta["name"] = self.name
        meta["namespace"] = self.namespace
        if self.resource_version is not None:
            meta["resourceVersion"] = self.resource_version
        else:
            meta.pop("resourceVersion", None)
        pod_spec = out.setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {})
        pod_spec["containers"] = [c.to_manifest() for c in self.containers]
        return out


class ReconcileResponse(BaseModel):
    resource: str
    outcome: Outcome


class ResourceStatus(BaseModel):
    resource: str
    outcome: Outcome
    detail: str = ""
    updated_at: str
