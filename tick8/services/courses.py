import logging
import math
from typing import Any, Dict, List, Optional

from tick8.core.errors import Conflict, InvalidInput, NotFound
from tick8.models.course import Course
from tick8.models.vocab import VocabItem, validate_states, validate_vocab_list
from tick8.services.decay import filled_count, last_filled_page
from tick8.services.namespace import course_filename_for, validate_course_filename
from tick8.services.repository import UserRepository
from tick8.utils.time_utils import iso_timestamp, utcnow

logger = logging.getLogger(__name__)


class CourseService:
    """
    Gestion des cours d'un utilisateur (index + fichiers de vocabulaire).
    Dernière écriture gagnante par fichier : une mise à jour d'item et un
    decay concurrents sur le même cours peuvent perdre l'une des deux écritures.
    """

    def __init__(self, repo: UserRepository, max_page_size: int = 100, default_page_size: int = 15):
        self.repo = repo
        self.max_page_size = max_page_size
        self.default_page_size = default_page_size

    # ---------- helpers ----------

    def _check_page_size(self, page_size: Any) -> int:
        try:
            value = int(page_size)
        except (TypeError, ValueError):
            value = 0
        if isinstance(page_size, bool) or value < 1 or value > self.max_page_size:
            raise InvalidInput(f"pageSize doit être compris entre 1 et {self.max_page_size}")
        return value

    @staticmethod
    def _clean_name(name: Any) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput("Nom de cours requis")
        return name.strip()

    @staticmethod
    def _name_taken(courses: List[Course], name: str, exclude: Optional[str] = None) -> bool:
        wanted = name.casefold()
        return any(c.name.casefold() == wanted and c.filename != exclude for c in courses)

    @staticmethod
    def _find(courses: List[Course], filename: str) -> int:
        for idx, c in enumerate(courses):
            if c.filename == filename:
                return idx
        raise NotFound("Cours introuvable")

    # ---------- cours ----------

    def list_courses(self, user_id: str) -> List[Course]:
        return sorted(self.repo.load_course_index(user_id), key=lambda c: c.order)

    def get_course(self, user_id: str, filename: str) -> Course:
        validate_course_filename(filename)
        courses = self.repo.load_course_index(user_id)
        return courses[self._find(courses, filename)]

    def create_course(self, user_id: str, name: str, content: Any, page_size: Any = None) -> Course:
        name = self._clean_name(name)
        items = validate_vocab_list(content)
        size = self._check_page_size(page_size) if page_size is not None else self.default_page_size

        courses = self.repo.load_course_index(user_id)
        if self._name_taken(courses, name):
            raise Conflict("Un cours porte déjà ce nom")

        filename = course_filename_for(name)
        while any(c.filename == filename for c in courses) or self.repo.vocab_exists(user_id, filename):
            filename = course_filename_for(name)

        course = Course(
            filename=filename,
            name=name,
            pageSize=size,
            order=max((c.order for c in courses), default=-1) + 1,
        )
        self.repo.save_vocab(user_id, filename, items, metadata={"name": name})
        courses.append(course)
        self.repo.save_course_index(user_id, courses)
        logger.info("Cours créé: %s (%d items)", filename, len(items))
        return course

    def update_course(self, user_id: str, filename: str, updates: Dict[str, Any]) -> Course:
        """
        Champs modifiables : name, pageSize, order (liste blanche).
        """
        validate_course_filename(filename)
        courses = self.repo.load_course_index(user_id)
        idx = self._find(courses, filename)
        patch: Dict[str, Any] = {}

        if updates.get("name") is not None:
            name = self._clean_name(updates["name"])
            if self._name_taken(courses, name, exclude=filename):
                raise Conflict("Un cours porte déjà ce nom")
            patch["name"] = name
        if updates.get("pageSize") is not None:
            patch["pageSize"] = self._check_page_size(updates["pageSize"])
        if updates.get("order") is not None:
            if isinstance(updates["order"], bool) or not isinstance(updates["order"], int):
                raise InvalidInput("order doit être un entier")
            patch["order"] = updates["order"]

        if patch:
            courses[idx] = courses[idx].model_copy(update=patch)
            self.repo.save_course_index(user_id, courses)
        return courses[idx]

    def reorder(self, user_id: str, filenames: List[str]) -> List[Course]:
        courses = self.repo.load_course_index(user_id)
        if sorted(filenames) != sorted(c.filename for c in courses):
            raise InvalidInput("L'ordre doit contenir exactement les cours existants")
        position = {name: i for i, name in enumerate(filenames)}
        courses = [c.model_copy(update={"order": position[c.filename]}) for c in courses]
        courses.sort(key=lambda c: c.order)
        self.repo.save_course_index(user_id, courses)
        return courses

    def delete_course(self, user_id: str, filename: str) -> Course:
        validate_course_filename(filename)
        courses = self.repo.load_course_index(user_id)
        course = courses.pop(self._find(courses, filename))
        # idempotent : fichier déjà absent = succès
        self.repo.delete_vocab(user_id, course.filename)
        self.repo.save_course_index(user_id, courses)
        logger.info("Cours supprimé: %s", filename)
        return course

    # ---------- contenu ----------

    def get_content(self, user_id: str, filename: str) -> List[VocabItem]:
        return self.repo.load_vocab(user_id, filename).content

    def get_page(self, user_id: str, filename: str, page: int, page_size: int) -> Dict[str, Any]:
        size = self._check_page_size(page_size)
        if page < 0:
            raise InvalidInput("page doit être >= 0")
        items = self.get_content(user_id, filename)
        total = len(items)
        return {
            "data": items[page * size:(page + 1) * size],
            "page": page,
            "pageSize": size,
            "total": total,
            "totalPages": math.ceil(total / size),
        }

    def get_last_filled_page(self, user_id: str, filename: str, page_size: int) -> Dict[str, Any]:
        size = self._check_page_size(page_size)
        items = self.get_content(user_id, filename)
        page = last_filled_page(items, size)
        last_index = next(
            (i for i in range(len(items) - 1, -1, -1) if filled_count(items[i]) > 0),
            -1,
        )
        return {
            "lastFilledPage": page,
            "lastFilledIndex": last_index,
            "totalItems": len(items),
            "pageSize": size,
        }

    def append_items(self, user_id: str, filename: str, content: Any) -> int:
        new_items = validate_vocab_list(content)
        doc = self.repo.load_vocab(user_id, filename)

        existing = {it.id for it in doc.content}
        for it in new_items:
            if it.id in existing:
                raise Conflict(f"Item déjà présent: {it.id}")
            existing.add(it.id)

        self.repo.save_vocab(user_id, filename, doc.content + new_items, metadata=doc.metadata)
        return len(doc.content) + len(new_items)

    def update_item_states(self, user_id: str, filename: str, item_id: str, states: Any) -> VocabItem:
        new_states = validate_states(states)
        doc = self.repo.load_vocab(user_id, filename)

        for idx, item in enumerate(doc.content):
            if item.id == str(item_id):
                updated = item.model_copy(update={"states": new_states, "lastUpdated": iso_timestamp(utcnow())})
                doc.content[idx] = updated
                self.repo.save_vocab(user_id, filename, doc.content, metadata=doc.metadata)
                return updated

        raise NotFound("Item introuvable")
