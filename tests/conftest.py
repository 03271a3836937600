import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from stagewise.api.main import app
from stagewise.core.config import reset_settings
from stagewise.core.manifest.loader import load_manifest
from stagewise.core.observability.metrics import reset_metrics

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Make runtime behave deterministically in tests
    os.environ.setdefault("STAGEWISE_ENV", "dev")
    os.environ.pop("STAGEWISE_CONFIG_FILE", None)
    os.environ.pop("STAGEWISE_RETENTION_DAYS", None)


@pytest.fixture(autouse=True)
def _fresh_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEWISE_WORKSPACE", str(tmp_path / "workspace"))
    reset_settings()
    reset_metrics()
    yield
    reset_settings()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def manifest_path() -> Path:
    return FIXTURES / "sales_manifest.yaml"


@pytest.fixture()
def manifest(manifest_path):
    return load_manifest(manifest_path)


@pytest.fixture()
def manifest_yaml(manifest_path) -> str:
    return manifest_path.read_text(encoding="utf-8")


@pytest.fixture()
def convention_doc() -> str:
    return (FIXTURES / "convention.md").read_text(encoding="utf-8")
