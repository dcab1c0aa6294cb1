from itertools import islice
from types import SimpleNamespace

import pytest
from kubernetes import config
from kubernetes.client import ApiException

from injector import kube_ops
from injector.api_models import ResourceID
from injector.kube_ops import KubeDeploymentStore, load_kube_client, watch_deployments
from injector.store import Conflict, NotFound, StoreError

RID = ResourceID("default", "web")


class FakeAppsApi:
    def __init__(self, manifest=None, read_error=None, replace_error=None):
        self.manifest = manifest
        self.read_error = read_error
        self.replace_error = replace_error
        self.replaced = []

    def read_namespaced_deployment(self, name, namespace):
        if self.read_error:
            raise self.read_error
        return self.manifest

    def replace_namespaced_deployment(self, name, namespace, body):
        if self.replace_error:
            raise self.replace_error
        self.replaced.append((namespace, name, body))
        out = dict(body)
        out["metadata"] = dict(body["metadata"], resourceVersion="8")
        return out

    def list_namespaced_deployment(self, **kwargs):
        raise AssertionError("only called through watch.stream")

    def list_deployment_for_all_namespaces(self, **kwargs):
        raise AssertionError("only called through watch.stream")


def test_get_reads_deployment(make_deployment):
    manifest = make_deployment("web", [{"name": "app", "image": "app-image"}])
    manifest["metadata"]["resourceVersion"] = "7"

    resource = KubeDeploymentStore(FakeAppsApi(manifest)).get(RID)

    assert resource.resource_version == "7"
    assert [c.name for c in resource.containers] == ["app"]


def test_update_sends_resource_version(make_deployment):
    manifest = make_deployment("web", [])
    manifest["metadata"]["resourceVersion"] = "7"
    api = FakeAppsApi(manifest)
    s = KubeDeploymentStore(api)

    written = s.update(s.get(RID))

    (namespace, name, body), = api.replaced
    assert (namespace, name) == ("default", "web")
    assert body["metadata"]["resourceVersion"] == "7"
    assert written.resource_version == "8"


@pytest.mark.parametrize(
    "status,expected",
    [(404, NotFound), (409, Conflict), (500, StoreError), (403, StoreError)],
)
def test_api_errors_are_translated(make_deployment, status, expected):
    err = ApiException(status=status, reason="boom")
    s = KubeDeploymentStore(FakeAppsApi(make_deployment("web", []), read_error=err, replace_error=err))

    with pytest.raises(expected) as exc_info:
        s.get(RID)
    assert type(exc_info.value) is expected
    assert exc_info.value.__cause__ is err

    resource = KubeDeploymentStore(FakeAppsApi(make_deployment("web", []))).get(RID)
    with pytest.raises(expected):
        s.update(resource)


def test_load_kube_client_fails_without_config(monkeypatch):
    def _no_config(*args, **kwargs):
        raise config.ConfigException("no config")

    monkeypatch.setattr(config, "load_incluster_config", _no_config)
    monkeypatch.setattr(config, "load_kube_config", _no_config)

    with pytest.raises(RuntimeError, match="Failed to load Kubernetes configuration"):
        load_kube_client()


def _event(kind, namespace, name, rv):
    meta = SimpleNamespace(namespace=namespace, name=name, resource_version=rv)
    return {"type": kind, "object": SimpleNamespace(metadata=meta)}


class FakeWatch:
    """Replays one scripted stream per Watch instance."""

    scripts: list = []
    calls: list = []

    def stream(self, fn, **kwargs):
        FakeWatch.calls.append((fn.__name__, kwargs))
        script = FakeWatch.scripts.pop(0)
        if isinstance(script, Exception):
            raise script
        yield from script

    def stop(self):
        pass


@pytest.fixture
def fake_watch(monkeypatch):
    FakeWatch.scripts = []
    FakeWatch.calls = []
    monkeypatch.setattr(kube_ops.watch, "Watch", FakeWatch)
    return FakeWatch


def test_watch_yields_ids_for_every_event_type(fake_watch):
    fake_watch.scripts = [
        [
            _event("ADDED", "default", "web", "10"),
            _event("MODIFIED", "apps", "api", "11"),
            _event("DELETED", "default", "web", "12"),
        ]
    ]

    ids = list(islice(watch_deployments(FakeAppsApi(), "", timeout_s=5), 3))

    assert ids == [ResourceID("default", "web"), ResourceID("apps", "api"), ResourceID("default", "web")]
    assert fake_watch.calls[0] == ("list_deployment_for_all_namespaces", {"timeout_seconds": 5})


def test_watch_resumes_from_last_version_and_relists_on_gone(fake_watch):
    fake_watch.scripts = [
        [_event("ADDED", "team", "web", "10")],
        ApiException(status=410, reason="Gone"),
        [_event("ADDED", "team", "api", "20")],
    ]

    ids = list(islice(watch_deployments(FakeAppsApi(), "team", timeout_s=5), 2))

    assert ids == [ResourceID("team", "web"), ResourceID("team", "api")]
    assert fake_watch.calls[0] == ("list_namespaced_deployment", {"namespace": "team", "timeout_seconds": 5})
    assert fake_watch.calls[1][1]["resource_version"] == "10"
    assert "resource_version" not in fake_watch.calls[2][1]


def test_watch_propagates_other_api_errors(fake_watch):
    fake_watch.scripts = [ApiException(status=403, reason="Forbidden")]

    with pytest.raises(ApiException):
        next(watch_deployments(FakeAppsApi(), "team"))
