from __future__ import annotations

from typing import Any, Iterator

from kubernetes import client, config, watch
from kubernetes.client import ApiException, AppsV1Api

from .api_models import ManagedResource, ResourceID
from .db import log_event
from .store import Conflict, NotFound, StoreError


def load_kube_client() -> AppsV1Api:
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        try:
            config.load_kube_config()
        except config.ConfigException as e:
            raise RuntimeError(f"Failed to load Kubernetes configuration: {e}") from e
    return client.AppsV1Api()


def _translate(exc: ApiException, rid: ResourceID) -> StoreError:
    if exc.status == 404:
        return NotFound(f"deployment {rid} not found")
    if exc.status == 409:
        return Conflict(f"deployment {rid} was modified concurrently")
    return StoreError(f"Kubernetes API error for deployment {rid}: {exc.status} {exc.reason}")


class KubeDeploymentStore:
    """DeploymentStore backed by the apps/v1 API.

    ``replace`` sends the manifest including metadata.resourceVersion, so the
    API server rejects the write with 409 if the Deployment moved on.
    """

    def __init__(self, apps_api: AppsV1Api):
        self.apps_api = apps_api

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.apps_api.api_client.sanitize_for_serialization(obj)

    def get(self, rid: ResourceID) -> ManagedResource:
        try:
            dep = self.apps_api.read_namespaced_deployment(name=rid.name, namespace=rid.namespace)
        except ApiException as exc:
            raise _translate(exc, rid) from exc
        return ManagedResource.from_manifest(self._to_dict(dep))

    def update(self, resource: ManagedResource) -> ManagedResource:
        rid = resource.id
        try:
            dep = self.apps_api.replace_namespaced_deployment(
                name=rid.name, namespace=rid.namespace, body=resource.to_manifest()
            )
        except ApiException as exc:
            raise _translate(exc, rid) from exc
        return ManagedResource.from_manifest(self._to_dict(dep))


def watch_deployments(apps_api: AppsV1Api, namespace: str = "", timeout_s: int = 300) -> Iterator[ResourceID]:
    """Yield the id of every Deployment that is added, modified or deleted.

    The stream restarts when the server closes it. A 410 Gone drops the
    resourceVersion so the next stream starts from a fresh list.
    """
    resource_version: str | None = None
    while True:
        w = watch.Watch()
        if namespace:
            list_fn, kwargs = apps_api.list_namespaced_deployment, {"namespace": namespace}
        else:
            list_fn, kwargs = apps_api.list_deployment_for_all_namespaces, {}
        if resource_version:
            kwargs["resource_version"] = resource_version
        try:
            for event in w.stream(list_fn, timeout_seconds=timeout_s, **kwargs):
                obj = event.get("object")
                meta = getattr(obj, "metadata", None)
                if meta is None or not meta.name:
                    continue
                if meta.resource_version:
                    resource_version = meta.resource_version
                yield ResourceID(meta.namespace or "default", meta.name)
        except ApiException as exc:
            if exc.status != 410:
                raise
            log_event("WARN", "Watch resource version expired, re-listing")
            resource_version = None
        finally:
            w.stop()
