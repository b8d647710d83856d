import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Repo root holds the top-level packages (auth, core, media, ...).
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from core.settings import get_settings  # noqa: E402
from media.registry import InMemoryHandleRegistry  # noqa: E402
from providers.factory import Providers  # noqa: E402

TEST_SECRET = "test-secret-value"


class FakeStorage:
    """
    Dict-backed StorageProvider. Set fail_puts to simulate a broken backend.
    """

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.deleted: List[str] = []
        self.fail_puts = False

    def put_object(self, key: str, data: bytes, content_type="application/octet-stream", metadata=None):
        if self.fail_puts:
            raise ConnectionError("object store unreachable")
        self.data[key] = data
        self.content_types[key] = content_type

    def put_stream(self, key: str, stream, length=-1, content_type="application/octet-stream", metadata=None):
        if self.fail_puts:
            raise ConnectionError("object store unreachable")
        chunks = []
        while True:
            chunk = stream.read(4)
            if not chunk:
                break
            chunks.append(chunk)
        self.data[key] = b"".join(chunks)
        self.content_types[key] = content_type

    def delete_object(self, key: str) -> None:
        self.deleted.append(key)
        self.data.pop(key, None)

    def ping(self) -> None:
        if self.fail_puts:
            raise ConnectionError("object store unreachable")


@pytest.fixture(autouse=True)
def auth_env(monkeypatch):
    """
    Pin the JWT secret and reset cached settings around every test.
    """
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.delenv("AUTH_DEMO_PASSWORD", raising=False)
    monkeypatch.delenv("AUTH_TOKEN_TTL_SECONDS", raising=False)
    monkeypatch.delenv("MEDIA_OWNER_SCOPED", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def registry():
    return InMemoryHandleRegistry()


def make_providers(storage, registry, media_overrides: Optional[Dict[str, Any]] = None) -> Providers:
    settings = get_settings()
    if media_overrides:
        settings = replace(settings, media=replace(settings.media, **media_overrides))
    return Providers(settings=settings, storage=storage, registry=registry)


@pytest.fixture
def make_client(fake_storage, registry):
    """
    Build a TestClient whose app.state.providers uses the fake storage.
    """
    from fastapi.testclient import TestClient

    from main import app

    clients = []

    def _make(**media_overrides):
        app.state.providers = make_providers(fake_storage, registry, media_overrides)
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make

    for c in clients:
        c.close()
    if hasattr(app.state, "providers"):
        del app.state.providers


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def token(client):
    resp = client.post("/auth/login", json={"username": "testuser", "password": "demo123"})
    assert resp.status_code == 200
    return resp.json()["token"]
