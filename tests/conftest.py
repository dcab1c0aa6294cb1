import os
import sys

import pytest

# Ensure project root is importable (so `import main` works reliably across environments)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from injector import db  # noqa: E402
from injector.settings import Settings  # noqa: E402
from injector.store import InMemoryStore  # noqa: E402


@pytest.fixture(autouse=True)
def event_journal(tmp_path, monkeypatch):
    """Point the sqlite event journal at an isolated file for every test."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    db.init_db()
    return db


def deployment(name, containers, namespace="default"):
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace, "labels": {"app": name}},
        "spec": {
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {"labels": {"app": name}},
                "spec": {"containers": containers, "restartPolicy": "Always"},
            },
        },
    }


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_deployment():
    return deployment
