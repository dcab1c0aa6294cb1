from __future__ import annotations

from . import db
from .api_models import ContainerSpec, ManagedResource, Outcome, ResourceID
from .policy import SidecarPolicy, matches
from .store import Conflict, DeploymentStore, NotFound


class Reconciler:
    """Makes sure a Deployment's pod template carries the sidecar.

    Each call re-reads the Deployment and makes a single attempt. Nothing is
    kept between calls; convergence after a lost race comes from the
    dispatcher re-delivering the id (``Outcome.RETRY``), not from a loop here.
    Store errors other than not-found/conflict propagate to the caller.
    """

    def __init__(self, store: DeploymentStore, policy: SidecarPolicy | None = None):
        self.store = store
        self.policy = policy or SidecarPolicy()

    def reconcile(self, rid: ResourceID) -> Outcome:
        try:
            resource = self.store.get(rid)
        except NotFound:
            # Deleted between trigger and processing. The sidecar went with it.
            return Outcome.NOOP

        sidecar = self.policy.sidecar_for(resource)
        if any(matches(c, sidecar) for c in resource.containers):
            return Outcome.NOOP

        desired = self.with_sidecar(resource, sidecar)
        try:
            self.store.update(desired)
        except (Conflict, NotFound) as e:
            # Updated or deleted since we read it; the next delivery starts over.
            db.log_event("INFO", f"Requeueing: {e}", namespace=rid.namespace, name=rid.name)
            return Outcome.RETRY

        db.log_event(
            "INFO",
            f"Injected sidecar {sidecar.name} ({sidecar.image})",
            namespace=rid.namespace,
            name=rid.name,
        )
        return Outcome.SUCCESS

    @staticmethod
    def with_sidecar(resource: ManagedResource, sidecar: ContainerSpec) -> ManagedResource:
        """Return a copy of *resource* with *sidecar* appended after the existing containers."""
        return resource.model_copy(update={"containers": [*resource.containers, sidecar]})
