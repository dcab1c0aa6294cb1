from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query

from injector import db
from injector.api_models import Outcome, ReconcileResponse, ResourceID, ResourceStatus
from injector.controller import Controller, EventSource
from injector.kube_ops import KubeDeploymentStore, load_kube_client, watch_deployments
from injector.policy import SidecarPolicy
from injector.reconciler import Reconciler
from injector.runtime import RuntimeState
from injector.settings import settings
from injector.store import DeploymentStore, StoreError

app = FastAPI(title="Sidecar Injector")

runtime = RuntimeState()
controller: Controller | None = None


def build_store() -> DeploymentStore:
    return KubeDeploymentStore(load_kube_client())


def build_source(store: DeploymentStore) -> EventSource | None:
    if not settings.enable_watch or not isinstance(store, KubeDeploymentStore):
        return None
    return lambda: watch_deployments(store.apps_api, settings.namespace, settings.watch_timeout_s)


def _controller() -> Controller:
    if controller is None:
        raise HTTPException(status_code=503, detail="Controller not started")
    return controller


@app.on_event("startup")
def startup() -> None:
    global controller
    db.init_db()
    store = build_store()
    reconciler = Reconciler(store, SidecarPolicy.from_settings())
    controller = Controller(reconciler, runtime, source=build_source(store))
    controller.start()


@app.on_event("shutdown")
def shutdown() -> None:
    if controller is not None:
        controller.stop()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/events")
def events(limit: int = Query(100, ge=1, le=1000)) -> list[dict]:
    return db.latest_events(limit)


@app.get("/status", response_model=list[ResourceStatus])
def status() -> list[ResourceStatus]:
    return [
        ResourceStatus(resource=str(rid), outcome=st.outcome, detail=st.detail, updated_at=st.updated_at)
        for rid, st in sorted(runtime.snapshot().items(), key=lambda kv: str(kv[0]))
    ]


@app.post("/reconcile/{namespace}/{name}", response_model=ReconcileResponse)
def reconcile(namespace: str, name: str) -> ReconcileResponse:
    ctl = _controller()
    rid = ResourceID(namespace, name)
    try:
        outcome = ctl.reconciler.reconcile(rid)
    except StoreError as e:
        db.log_event("ERROR", f"Reconcile failed: {e}", namespace=namespace, name=name)
        runtime.record(rid, Outcome.FATAL, str(e))
        raise HTTPException(status_code=502, detail=str(e)) from e
    runtime.record(rid, outcome)
    if outcome is Outcome.RETRY:
        ctl.enqueue(rid)
    return ReconcileResponse(resource=str(rid), outcome=outcome)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
