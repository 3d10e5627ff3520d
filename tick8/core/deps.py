from functools import lru_cache

from tick8.core.config import get_settings
from tick8.services.courses import CourseService
from tick8.services.generator import VocabGenerator
from tick8.services.maintenance import MaintenanceScheduler
from tick8.services.repository import UserRepository
from tick8.services.snapshots import SnapshotManager
from tick8.services.storage import StorageBackend, build_backend


@lru_cache
def get_backend() -> StorageBackend:
    """
    Backend choisi une fois par process (STORAGE_BACKEND).
    """
    return build_backend(get_settings())


@lru_cache
def get_repository() -> UserRepository:
    settings = get_settings()
    return UserRepository(get_backend(), defaults_path=settings.DEFAULTS_PATH)


@lru_cache
def get_snapshot_manager() -> SnapshotManager:
    return SnapshotManager(get_repository(), max_note_length=get_settings().MAX_NOTE_LENGTH)


@lru_cache
def get_scheduler() -> MaintenanceScheduler:
    settings = get_settings()
    return MaintenanceScheduler(
        get_repository(),
        get_snapshot_manager(),
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        auto_snapshot_note=settings.AUTO_SNAPSHOT_NOTE,
    )


@lru_cache
def get_course_service() -> CourseService:
    settings = get_settings()
    return CourseService(
        get_repository(),
        max_page_size=settings.MAX_PAGE_SIZE,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
    )


@lru_cache
def get_generator() -> VocabGenerator:
    settings = get_settings()
    return VocabGenerator(api_key=settings.OPENAI_API_KEY, model=settings.GENERATOR_MODEL)


def reset_services() -> None:
    """
    Vide les singletons (tests, rechargement de config).
    """
    for provider in (get_backend, get_repository, get_snapshot_manager,
                     get_scheduler, get_course_service, get_generator):
        provider.cache_clear()
