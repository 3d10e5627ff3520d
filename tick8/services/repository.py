import json
import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from tick8.core.errors import InvalidInput, NotFound, StorageFailure
from tick8.models.course import Course
from tick8.models.maintenance import MaintenanceState
from tick8.models.vocab import VocabDocument, VocabItem
from tick8.services.namespace import (
    COURSE_INDEX_FILE,
    SNAPSHOTS_DIR,
    STATE_FILE,
    USERS_DIR,
    sanitize_user_id,
    validate_course_filename,
)
from tick8.services.storage import StorageBackend, join_key, normalize_key

logger = logging.getLogger(__name__)


def dump_json(payload: Any) -> bytes:
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def load_json(raw: bytes, path: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise StorageFailure(f"JSON illisible: {path}: {e}") from e


class UserRepository:
    """
    Données d'un utilisateur sous `users/{namespace}/` :
    index des cours, fichiers de vocabulaire, état de maintenance.

    Le premier accès d'un utilisateur déclenche une initialisation
    (copie du jeu de cours par défaut). Elle ne s'exécute qu'une fois,
    même en cas d'accès concurrents : les appelants suivants attendent
    le même Future.
    """

    def __init__(self, backend: StorageBackend, defaults_path: str = ""):
        self.backend = backend
        self.defaults_path = normalize_key(defaults_path)
        self._lock = threading.Lock()
        self._initializing: Dict[str, Future] = {}
        self._ready: Set[str] = set()

    # ---------- chemins ----------

    def user_dir(self, user_id: str) -> str:
        return join_key(USERS_DIR, sanitize_user_id(user_id))

    def snapshots_dir(self, user_id: str) -> str:
        return join_key(self.user_dir(user_id), SNAPSHOTS_DIR)

    def _vocab_path(self, user_id: str, filename: str) -> str:
        return join_key(self.user_dir(user_id), filename)

    # ---------- initialisation ----------

    def ensure_user(self, user_id: str) -> str:
        """
        Garantit que l'espace de l'utilisateur existe. Renvoie son répertoire.
        """
        namespace = sanitize_user_id(user_id)
        user_dir = join_key(USERS_DIR, namespace)

        with self._lock:
            if namespace in self._ready:
                return user_dir
            future = self._initializing.get(namespace)
            owner = future is None
            if owner:
                future = Future()
                self._initializing[namespace] = future

        if not owner:
            # propage l'exception de l'initialisation en cours, le cas échéant
            future.result()
            return user_dir

        try:
            if not self.backend.exists(join_key(user_dir, COURSE_INDEX_FILE)):
                self._initialize(user_dir)
        except BaseException as e:
            future.set_exception(e)
            with self._lock:
                self._initializing.pop(namespace, None)
            raise

        future.set_result(user_dir)
        with self._lock:
            self._ready.add(namespace)
            self._initializing.pop(namespace, None)
        return user_dir

    def _initialize(self, user_dir: str) -> None:
        self.backend.ensure_dir(user_dir)

        courses: List[Course] = []
        defaults_index = join_key(self.defaults_path, COURSE_INDEX_FILE)
        if self.backend.exists(defaults_index):
            courses = self._parse_courses(load_json(self.backend.read(defaults_index), defaults_index), defaults_index)
            for course in courses:
                src = join_key(self.defaults_path, course.filename)
                if not self.backend.exists(src):
                    logger.warning("Cours par défaut sans fichier: %s", src)
                    continue
                self.backend.write(join_key(user_dir, course.filename), self.backend.read(src))
            logger.info("Espace %s initialisé avec %d cours par défaut", user_dir, len(courses))
        else:
            logger.info("Espace %s initialisé (aucun cours par défaut)", user_dir)

        # l'index en dernier : une initialisation interrompue sera rejouée
        self.backend.write(join_key(user_dir, COURSE_INDEX_FILE), dump_json(self._dump_courses(courses)))

    # ---------- index des cours ----------

    @staticmethod
    def _parse_courses(raw: Any, path: str) -> List[Course]:
        if not isinstance(raw, list):
            raise StorageFailure(f"Index de cours invalide (tableau attendu): {path}")
        try:
            courses = [Course.model_validate(c) for c in raw]
        except ValidationError as e:
            raise StorageFailure(f"Index de cours invalide: {path}: {e}") from e
        for course in courses:
            try:
                validate_course_filename(course.filename)
            except InvalidInput as e:
                raise StorageFailure(f"Index de cours invalide: {path}: {e.message}") from e
        return courses

    @staticmethod
    def _dump_courses(courses: List[Course]) -> list:
        return [c.model_dump(mode="json", exclude_none=True) for c in courses]

    def load_course_index(self, user_id: str) -> List[Course]:
        user_dir = self.ensure_user(user_id)
        path = join_key(user_dir, COURSE_INDEX_FILE)
        if not self.backend.exists(path):
            return []
        return self._parse_courses(load_json(self.backend.read(path), path), path)

    def save_course_index(self, user_id: str, courses: List[Course]) -> None:
        for course in courses:
            validate_course_filename(course.filename)
        user_dir = self.ensure_user(user_id)
        self.backend.write(join_key(user_dir, COURSE_INDEX_FILE), dump_json(self._dump_courses(courses)))

    # ---------- vocabulaire ----------

    def vocab_exists(self, user_id: str, filename: str) -> bool:
        validate_course_filename(filename)
        self.ensure_user(user_id)
        return self.backend.exists(self._vocab_path(user_id, filename))

    def load_vocab(self, user_id: str, filename: str) -> VocabDocument:
        validate_course_filename(filename)
        self.ensure_user(user_id)
        path = self._vocab_path(user_id, filename)
        if not self.backend.exists(path):
            raise NotFound("Fichier introuvable")
        try:
            return VocabDocument.from_raw(load_json(self.backend.read(path), path))
        except ValueError as e:
            raise StorageFailure(f"Fichier de vocabulaire corrompu: {path}: {e}") from e

    def save_vocab(
        self,
        user_id: str,
        filename: str,
        items: List[VocabItem],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> VocabDocument:
        """
        Écrit toujours la forme canonique (document versionné).
        """
        validate_course_filename(filename)
        self.ensure_user(user_id)
        doc = VocabDocument(metadata=metadata or {}, content=list(items))
        self.backend.write(self._vocab_path(user_id, filename), dump_json(doc.model_dump(mode="json")))
        return doc

    def delete_vocab(self, user_id: str, filename: str) -> None:
        validate_course_filename(filename)
        self.ensure_user(user_id)
        self.backend.delete(self._vocab_path(user_id, filename))

    # ---------- état de maintenance ----------

    def load_maintenance_state(self, user_id: str) -> MaintenanceState:
        user_dir = self.ensure_user(user_id)
        path = join_key(user_dir, STATE_FILE)
        if not self.backend.exists(path):
            return MaintenanceState()
        raw = load_json(self.backend.read(path), path)
        try:
            return MaintenanceState.model_validate(raw)
        except ValidationError as e:
            raise StorageFailure(f"État de maintenance invalide: {path}: {e}") from e

    def save_maintenance_state(self, user_id: str, state: MaintenanceState) -> None:
        user_dir = self.ensure_user(user_id)
        self.backend.write(join_key(user_dir, STATE_FILE), dump_json(state.model_dump(mode="json")))
