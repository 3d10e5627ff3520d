import pytest
from fastapi.testclient import TestClient

from tick8.core.config import get_settings
from tick8.core.deps import reset_services
from tick8.main import create_app
from tick8.models.vocab import VocabItem
from tick8.services.courses import CourseService
from tick8.services.repository import UserRepository
from tick8.services.snapshots import SnapshotManager
from tick8.services.storage import LocalStorageBackend

USER = "alice@example.com"


def make_item(item_id, filled=0, state="tick", **extra):
    """
    Item dont les `filled` premières cases valent `state`.
    """
    states = [state] * filled + ["none"] * (8 - filled)
    return VocabItem(id=str(item_id), word=f"word{item_id}", answer=f"answer{item_id}", states=states, **extra)


@pytest.fixture
def backend(tmp_path):
    return LocalStorageBackend(base_path=str(tmp_path / "storage"))


@pytest.fixture
def repo(backend):
    return UserRepository(backend)


@pytest.fixture
def snapshots(repo):
    return SnapshotManager(repo)


@pytest.fixture
def courses(repo):
    return CourseService(repo)


@pytest.fixture
def test_client(tmp_path, monkeypatch):
    """
    TestClient avec un STORAGE_PATH temporaire (isolé) et des singletons neufs.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "TICK8 API (tests)")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    # IMPORTANT: vider le cache des settings pour prendre en compte les env
    get_settings.cache_clear()
    reset_services()

    client = TestClient(create_app())
    yield client

    get_settings.cache_clear()
    reset_services()
