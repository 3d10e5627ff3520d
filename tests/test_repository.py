import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import create_autospec

import pytest

from conftest import USER, make_item
from tick8.core.errors import InvalidInput, NotFound, StorageFailure
from tick8.models.course import Course
from tick8.models.maintenance import MaintenanceState
from tick8.models.vocab import VOCAB_FORMAT, VOCAB_VERSION, State
from tick8.services.repository import UserRepository
from tick8.services.storage import LocalStorageBackend, StorageBackend

NS = "users/alice@example.com"


def _seed_defaults(backend, prefix=""):
    base = f"{prefix}/" if prefix else ""
    backend.write(
        f"{base}courses.json",
        json.dumps([{"filename": "German.json", "name": "German", "pageSize": 4, "order": 0}]).encode(),
    )
    backend.write(f"{base}German.json", json.dumps([{"id": "1", "word": "Hund", "answer": "dog"}]).encode())


# ---------- initialisation ----------

def test_first_access_without_defaults_creates_empty_index(repo, backend):
    assert repo.load_course_index(USER) == []
    assert json.loads(backend.read(f"{NS}/courses.json")) == []


def test_first_access_copies_default_courses(repo, backend):
    _seed_defaults(backend)
    courses = repo.load_course_index(USER)
    assert [c.filename for c in courses] == ["German.json"]
    doc = repo.load_vocab(USER, "German.json")
    assert doc.content[0].word == "Hund"


def test_defaults_under_custom_path(backend):
    _seed_defaults(backend, prefix="defaults")
    repo = UserRepository(backend, defaults_path="defaults")
    assert [c.name for c in repo.load_course_index(USER)] == ["German"]


def test_existing_user_is_not_reinitialized(repo, backend):
    _seed_defaults(backend)
    repo.save_course_index(USER, [])
    # nouvelle instance : l'index existe déjà, pas de nouvelle copie
    fresh = UserRepository(backend)
    assert fresh.load_course_index(USER) == []


class CountingBackend(LocalStorageBackend):
    """
    Compte les copies du cours par défaut et ralentit `exists`
    pour élargir la fenêtre de course.
    """

    def __init__(self, base_path):
        super().__init__(base_path)
        self.copies = 0
        self._count_lock = threading.Lock()

    def exists(self, path):
        time.sleep(0.005)
        return super().exists(path)

    def write(self, path, data):
        if path.endswith(f"{NS}/German.json"):
            with self._count_lock:
                self.copies += 1
        super().write(path, data)


def test_concurrent_first_access_initializes_once(tmp_path):
    backend = CountingBackend(str(tmp_path / "storage"))
    _seed_defaults(backend)
    repo = UserRepository(backend)

    n = 16
    barrier = threading.Barrier(n)

    def first_access(_):
        barrier.wait()
        return repo.ensure_user(USER)

    with ThreadPoolExecutor(max_workers=n) as pool:
        results = list(pool.map(first_access, range(n)))

    assert results == [NS] * n
    assert backend.copies == 1
    assert repo._initializing == {}


class FlakyBackend(LocalStorageBackend):
    def __init__(self, base_path):
        super().__init__(base_path)
        self.failures = 1

    def write(self, path, data):
        if self.failures:
            self.failures -= 1
            raise StorageFailure("panne simulée")
        super().write(path, data)


def test_failed_initialization_does_not_wedge_registry(tmp_path):
    backend = FlakyBackend(str(tmp_path / "storage"))
    repo = UserRepository(backend)

    with pytest.raises(StorageFailure):
        repo.ensure_user(USER)
    assert repo._initializing == {}

    # nouvelle tentative OK
    assert repo.ensure_user(USER) == NS
    assert repo.load_course_index(USER) == []


def test_registries_are_per_instance(backend):
    a = UserRepository(backend)
    b = UserRepository(backend)
    assert a._initializing is not b._initializing
    assert a._lock is not b._lock


# ---------- vocabulaire ----------

def test_load_missing_vocab_is_not_found(repo):
    with pytest.raises(NotFound):
        repo.load_vocab(USER, "Missing.json")


def test_save_then_load_vocab(repo, backend):
    items = [make_item(1, filled=2), make_item(2)]
    repo.save_vocab(USER, "French.json", items, metadata={"name": "French"})

    raw = json.loads(backend.read(f"{NS}/French.json"))
    assert raw["format"] == VOCAB_FORMAT
    assert raw["version"] == VOCAB_VERSION
    assert raw["metadata"] == {"name": "French"}

    doc = repo.load_vocab(USER, "French.json")
    assert doc.content == items


def test_legacy_array_is_read_and_padded(repo, backend):
    repo.ensure_user(USER)
    backend.write(
        f"{NS}/Old.json",
        json.dumps([{"id": 7, "word": "a", "answer": "b", "states": ["tick", "cross"], "hint": "x"}]).encode(),
    )
    doc = repo.load_vocab(USER, "Old.json")
    item = doc.content[0]
    assert item.id == "7"
    assert item.states == [State.tick, State.cross] + [State.none] * 6
    # clé inconnue conservée
    assert item.model_dump()["hint"] == "x"

    # la lecture ne réécrit pas le fichier ; l'écriture suivante passe au format canonique
    assert isinstance(json.loads(backend.read(f"{NS}/Old.json")), list)
    repo.save_vocab(USER, "Old.json", doc.content, metadata=doc.metadata)
    raw = json.loads(backend.read(f"{NS}/Old.json"))
    assert raw["format"] == VOCAB_FORMAT
    assert raw["content"][0]["hint"] == "x"


def test_unversioned_wrapper_is_read(repo, backend):
    repo.ensure_user(USER)
    backend.write(
        f"{NS}/Wrapped.json",
        json.dumps({"metadata": {"source": "import"}, "content": [{"id": "1", "word": "a", "answer": "b"}]}).encode(),
    )
    doc = repo.load_vocab(USER, "Wrapped.json")
    assert doc.metadata == {"source": "import"}
    assert len(doc.content) == 1


def test_corrupt_vocab_is_storage_failure(repo, backend):
    repo.ensure_user(USER)
    backend.write(f"{NS}/Bad.json", b"{not json")
    with pytest.raises(StorageFailure):
        repo.load_vocab(USER, "Bad.json")
    backend.write(f"{NS}/Bad.json", json.dumps({"format": "other", "content": []}).encode())
    with pytest.raises(StorageFailure):
        repo.load_vocab(USER, "Bad.json")


def test_delete_vocab_is_idempotent(repo):
    repo.save_vocab(USER, "Tmp.json", [make_item(1)])
    repo.delete_vocab(USER, "Tmp.json")
    repo.delete_vocab(USER, "Tmp.json")
    assert repo.vocab_exists(USER, "Tmp.json") is False


@pytest.mark.parametrize("bad", ["../x.json", "x.txt", "a b.json", "courses.json", ""])
def test_invalid_filename_rejected_before_storage_call(bad):
    backend = create_autospec(StorageBackend, instance=True)
    repo = UserRepository(backend)

    with pytest.raises(InvalidInput):
        repo.load_vocab(USER, bad)
    with pytest.raises(InvalidInput):
        repo.save_vocab(USER, bad, [make_item(1)])
    with pytest.raises(InvalidInput):
        repo.delete_vocab(USER, bad)

    assert backend.method_calls == []


# ---------- index & état ----------

def test_course_index_round_trip(repo):
    courses = [
        Course(filename="A.json", name="A", pageSize=10, order=1),
        Course(filename="B.json", name="B", order=0),
    ]
    repo.save_course_index(USER, courses)
    assert repo.load_course_index(USER) == courses


def test_maintenance_state_defaults_and_round_trip(repo):
    assert repo.load_maintenance_state(USER) == MaintenanceState()
    repo.save_maintenance_state(USER, MaintenanceState(lastDecay="2024-05-01", lastAutoSnapshotWeek=2830))
    state = repo.load_maintenance_state(USER)
    assert state.lastDecay == "2024-05-01"
    assert state.lastAutoSnapshotWeek == 2830


def test_users_are_isolated(repo):
    repo.save_vocab(USER, "Mine.json", [make_item(1)])
    assert repo.vocab_exists("bob@example.com", "Mine.json") is False


def test_non_positive_page_size_in_stored_index_reads_as_default(repo, backend):
    repo.ensure_user(USER)
    backend.write(
        f"{NS}/courses.json",
        json.dumps([
            {"filename": "German.json", "name": "German", "pageSize": 0},
            {"filename": "French.json", "name": "French", "pageSize": -4},
        ]).encode(),
    )
    courses = repo.load_course_index(USER)
    assert [c.pageSize for c in courses] == [None, None]
