import logging
from typing import Optional

from tick8.core.errors import Tick8Error
from tick8.models.maintenance import AutoSnapshotResult, DecayRunResult
from tick8.services.decay import apply_decay
from tick8.services.repository import UserRepository
from tick8.services.snapshots import SnapshotManager
from tick8.utils.time_utils import epoch_millis, iso_date, utcnow, week_number

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """
    Deux verrous par utilisateur, persistés dans server_state.json :
    - decay : au plus une fois par jour calendaire ;
    - auto-snapshot : au plus une fois par semaine (floor(epochMillis / semaine)).
    Pas de timer : déclenché par les requêtes.
    """

    def __init__(self, repo: UserRepository, snapshots: SnapshotManager,
                 default_page_size: int = 15, auto_snapshot_note: str = "Auto-weekly backup"):
        self.repo = repo
        self.snapshots = snapshots
        self.default_page_size = default_page_size
        self.auto_snapshot_note = auto_snapshot_note

    def run_decay(self, user_id: str, today=None) -> DecayRunResult:
        today_iso = iso_date(today if today is not None else utcnow())

        state = self.repo.load_maintenance_state(user_id)
        if state.lastDecay == today_iso:
            return DecayRunResult(run=False, message="Already run today")

        modified_count = 0
        for course in self.repo.load_course_index(user_id):
            try:
                doc = self.repo.load_vocab(user_id, course.filename)
                result = apply_decay(doc.content, course.pageSize or self.default_page_size)
                if result.modified:
                    logger.info("Decay: cours %s modifié (%s)", course.name, course.filename)
                    self.repo.save_vocab(user_id, course.filename, result.items, metadata=doc.metadata)
                    modified_count += 1
            except Tick8Error as e:
                # un cours illisible ne bloque pas les autres
                logger.error("Decay impossible pour le cours %s: %s", course.filename, e)

        state.lastDecay = today_iso
        self.repo.save_maintenance_state(user_id, state)

        return DecayRunResult(
            run=True,
            coursesModified=modified_count,
            message=f"Daily decay applied to {modified_count} course(s)",
        )

    def check_auto_snapshot(self, user_id: str, now_ms: Optional[int] = None) -> AutoSnapshotResult:
        """
        Ne lève jamais : l'échec est loggé et renvoyé dans le résultat.
        """
        try:
            week = week_number(now_ms if now_ms is not None else epoch_millis(utcnow()))
            state = self.repo.load_maintenance_state(user_id)
            if state.lastAutoSnapshotWeek == week:
                return AutoSnapshotResult(created=False)

            info = self.snapshots.create(user_id, self.auto_snapshot_note)

            state = self.repo.load_maintenance_state(user_id)
            state.lastAutoSnapshotWeek = week
            self.repo.save_maintenance_state(user_id, state)

            logger.info("Auto-snapshot créé: %s", info.id)
            return AutoSnapshotResult(created=True, snapshot=info)
        except Exception as e:
            logger.exception("Erreur lors de l'auto-snapshot: %s", e)
            return AutoSnapshotResult(created=False, error=str(e))
