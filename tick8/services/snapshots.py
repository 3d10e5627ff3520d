import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from pydantic import ValidationError

from tick8.core.errors import NotFound, StorageFailure, Tick8Error
from tick8.models.snapshot import DeleteResult, RestoreResult, Snapshot, SnapshotInfo
from tick8.models.vocab import VocabDocument
from tick8.services.namespace import validate_snapshot_id
from tick8.services.repository import UserRepository, dump_json, load_json
from tick8.services.storage import join_key
from tick8.utils.time_utils import epoch_millis, iso_date, utcnow

logger = logging.getLogger(__name__)

_PREFIX = "snapshot-"
_SUFFIX = ".json"


class SnapshotManager:
    """
    Sauvegardes ponctuelles (index des cours + tout le vocabulaire) d'un utilisateur,
    un objet par snapshot sous `users/{u}/snapshots/`.

    La restauration n'est PAS transactionnelle entre fichiers : interrompue
    en cours de route, une partie des fichiers reflète le snapshot, l'autre non.
    """

    def __init__(self, repo: UserRepository, max_note_length: int = 500,
                 clock: Callable[[], datetime] = utcnow):
        self.repo = repo
        self.backend = repo.backend
        self.max_note_length = max_note_length
        self._clock = clock

    def _path(self, user_id: str, snapshot_id: str) -> str:
        return join_key(self.repo.snapshots_dir(user_id), f"{_PREFIX}{snapshot_id}{_SUFFIX}")

    # ---------- public API ----------

    def create(self, user_id: str, note: str = "") -> SnapshotInfo:
        self.repo.ensure_user(user_id)
        self.backend.ensure_dir(self.repo.snapshots_dir(user_id))

        clean_note = str(note or "")[: self.max_note_length]

        now = self._clock()
        snapshot_id = f"{iso_date(now)}-{epoch_millis(now)}"
        # deux créations dans la même milliseconde
        while self.backend.exists(self._path(user_id, snapshot_id)):
            now = now + timedelta(milliseconds=1)
            snapshot_id = f"{iso_date(now)}-{epoch_millis(now)}"

        courses = self.repo.load_course_index(user_id)
        vocab_files: Dict[str, VocabDocument] = {}
        for course in courses:
            try:
                vocab_files[course.filename] = self.repo.load_vocab(user_id, course.filename)
            except NotFound:
                logger.warning("Snapshot %s: %s introuvable, ignoré", snapshot_id, course.filename)

        snapshot = Snapshot(
            id=snapshot_id,
            date=iso_date(now),
            createdAt=now,
            note=clean_note,
            courses=courses,
            vocabFiles=vocab_files,
        )
        self.backend.write(
            self._path(user_id, snapshot_id),
            dump_json(snapshot.model_dump(mode="json")),
        )
        logger.info("Snapshot %s créé (%d cours)", snapshot_id, len(courses))
        return snapshot.info()

    def list(self, user_id: str) -> List[SnapshotInfo]:
        snapshots_dir = self.repo.snapshots_dir(user_id)
        infos: List[SnapshotInfo] = []
        for name in self.backend.list(snapshots_dir):
            if not (name.startswith(_PREFIX) and name.endswith(_SUFFIX)):
                continue
            path = join_key(snapshots_dir, name)
            try:
                raw = load_json(self.backend.read(path), path)
                infos.append(SnapshotInfo.model_validate(raw))
            except (Tick8Error, ValidationError) as e:
                logger.warning("Snapshot illisible %s: %s", name, e)

        infos.sort(key=lambda s: s.createdAt, reverse=True)
        return infos

    def get(self, user_id: str, snapshot_id: str) -> Snapshot:
        validate_snapshot_id(snapshot_id)
        path = self._path(user_id, snapshot_id)
        if not self.backend.exists(path):
            raise NotFound("Snapshot introuvable")
        try:
            return Snapshot.model_validate(load_json(self.backend.read(path), path))
        except ValidationError as e:
            raise StorageFailure(f"Snapshot corrompu {path}: {e}") from e

    def restore(self, user_id: str, snapshot_id: str) -> RestoreResult:
        snapshot = self.get(user_id, snapshot_id)

        written = 0
        try:
            for filename, doc in snapshot.vocabFiles.items():
                self.repo.save_vocab(user_id, filename, doc.content, metadata=doc.metadata)
                written += 1
            # l'index en dernier : il ne référence que des fichiers déjà écrits
            self.repo.save_course_index(user_id, snapshot.courses)
        except Tick8Error:
            logger.error(
                "Restauration %s interrompue après %d/%d fichiers : état partiel",
                snapshot_id, written, len(snapshot.vocabFiles),
            )
            raise

        logger.info("Snapshot %s restauré (%d fichiers)", snapshot_id, written)
        return RestoreResult(snapshotId=snapshot_id, filesRestored=written)

    def delete(self, user_id: str, snapshot_id: str) -> DeleteResult:
        validate_snapshot_id(snapshot_id)
        path = self._path(user_id, snapshot_id)
        if not self.backend.exists(path):
            raise NotFound("Snapshot introuvable")
        self.backend.delete(path)
        return DeleteResult(snapshotId=snapshot_id)
