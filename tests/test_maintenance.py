from datetime import date

import pytest

import tick8.services.maintenance as maintenance_module
from conftest import USER, make_item
from tick8.core.errors import StorageFailure
from tick8.models.course import Course
from tick8.services.decay import filled_count
from tick8.services.maintenance import MaintenanceScheduler
from tick8.utils.time_utils import MILLIS_PER_WEEK

WEEK_START = 2830 * MILLIS_PER_WEEK


@pytest.fixture
def scheduler(repo, snapshots):
    return MaintenanceScheduler(repo, snapshots, default_page_size=2)


@pytest.fixture
def decay_calls(monkeypatch):
    calls = []
    real = maintenance_module.apply_decay

    def counting(items, page_size):
        calls.append(page_size)
        return real(items, page_size)

    monkeypatch.setattr(maintenance_module, "apply_decay", counting)
    return calls


def _seed(repo):
    repo.save_vocab(USER, "A.json", [make_item(1, 4), make_item(2, 0)])
    repo.save_vocab(USER, "B.json", [make_item(1, 2), make_item(2, 2)])
    repo.save_course_index(USER, [
        Course(filename="A.json", name="A", order=0),
        Course(filename="B.json", name="B", pageSize=5, order=1),
    ])


# ---------- decay quotidien ----------

def test_decay_runs_once_per_day(scheduler, repo, decay_calls):
    _seed(repo)
    today = date(2024, 5, 1)

    first = scheduler.run_decay(USER, today=today)
    assert first.run is True
    assert first.coursesModified == 1
    assert first.message == "Daily decay applied to 1 course(s)"
    assert decay_calls == [2, 5]

    second = scheduler.run_decay(USER, today=today)
    assert second.run is False
    assert second.message == "Already run today"
    assert decay_calls == [2, 5]

    assert [filled_count(it) for it in repo.load_vocab(USER, "A.json").content] == [2, 2]
    assert repo.load_maintenance_state(USER).lastDecay == "2024-05-01"


def test_decay_runs_again_next_day(scheduler, repo, decay_calls):
    _seed(repo)
    scheduler.run_decay(USER, today=date(2024, 5, 1))
    result = scheduler.run_decay(USER, today=date(2024, 5, 2))
    assert result.run is True
    # déjà équilibré
    assert result.coursesModified == 0
    assert len(decay_calls) == 4


def test_decay_skips_missing_course_file(scheduler, repo):
    repo.save_vocab(USER, "A.json", [make_item(1, 4), make_item(2, 0)])
    repo.save_course_index(USER, [
        Course(filename="Ghost.json", name="Ghost"),
        Course(filename="A.json", name="A"),
    ])
    result = scheduler.run_decay(USER, today=date(2024, 5, 1))
    assert result.run is True
    assert result.coursesModified == 1


def test_decay_keeps_file_metadata(scheduler, repo):
    repo.save_vocab(USER, "A.json", [make_item(1, 4), make_item(2, 0)], metadata={"name": "A"})
    repo.save_course_index(USER, [Course(filename="A.json", name="A")])
    scheduler.run_decay(USER, today=date(2024, 5, 1))
    assert repo.load_vocab(USER, "A.json").metadata == {"name": "A"}


# ---------- auto-snapshot hebdomadaire ----------

def test_auto_snapshot_once_per_week(scheduler, repo, snapshots):
    _seed(repo)

    first = scheduler.check_auto_snapshot(USER, now_ms=WEEK_START + 1000)
    assert first.created is True
    assert first.snapshot.note == "Auto-weekly backup"

    again = scheduler.check_auto_snapshot(USER, now_ms=WEEK_START + MILLIS_PER_WEEK - 1)
    assert again.created is False
    assert again.error is None

    next_week = scheduler.check_auto_snapshot(USER, now_ms=WEEK_START + MILLIS_PER_WEEK)
    assert next_week.created is True

    assert len(snapshots.list(USER)) == 2
    assert repo.load_maintenance_state(USER).lastAutoSnapshotWeek == 2831


def test_auto_snapshot_does_not_clobber_decay_state(scheduler, repo):
    scheduler.run_decay(USER, today=date(2024, 5, 1))
    scheduler.check_auto_snapshot(USER, now_ms=WEEK_START)
    state = repo.load_maintenance_state(USER)
    assert state.lastDecay == "2024-05-01"
    assert state.lastAutoSnapshotWeek == 2830


def test_auto_snapshot_failure_is_reported_not_raised(scheduler, repo, monkeypatch):
    def boom(user_id, note=""):
        raise StorageFailure("bucket indisponible")

    monkeypatch.setattr(scheduler.snapshots, "create", boom)

    result = scheduler.check_auto_snapshot(USER, now_ms=WEEK_START)
    assert result.created is False
    assert "bucket indisponible" in result.error
    # semaine non marquée : nouvelle tentative au prochain appel
    assert repo.load_maintenance_state(USER).lastAutoSnapshotWeek is None


def test_decay_uses_default_page_size_for_zero_in_index(scheduler, repo, backend, decay_calls):
    repo.save_vocab(USER, "A.json", [make_item(1, 4), make_item(2, 0)])
    repo.ensure_user(USER)
    backend.write(
        "users/alice@example.com/courses.json",
        b'[{"filename": "A.json", "name": "A", "pageSize": 0}]',
    )
    result = scheduler.run_decay(USER, today=date(2024, 5, 1))
    assert result.run is True
    assert decay_calls == [2]
