import re
import uuid

from tick8.core.errors import InvalidInput

FILENAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+\.json$")
SNAPSHOT_ID_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]+$")

COURSE_INDEX_FILE = "courses.json"
STATE_FILE = "server_state.json"
SNAPSHOTS_DIR = "snapshots"
USERS_DIR = "users"

# noms réservés dans l'espace utilisateur
RESERVED_FILENAMES = frozenset({COURSE_INDEX_FILE, STATE_FILE})


def sanitize_user_id(user_id: str) -> str:
    """
    Email/id utilisateur -> segment de chemin sûr.
    Minuscules, caractères hors [a-z0-9@._-] remplacés par "_".
    """
    if not user_id or not isinstance(user_id, str):
        raise InvalidInput("Identifiant utilisateur invalide")
    sanitized = re.sub(r"[^a-z0-9@._-]", "_", user_id.strip().lower())
    if not sanitized or sanitized in (".", "..") or ".." in sanitized:
        raise InvalidInput("Format d'identifiant utilisateur invalide")
    if "/" in sanitized or "\\" in sanitized:
        raise InvalidInput("Format d'identifiant utilisateur invalide")
    return sanitized


def validate_filename(name: str) -> str:
    if not name or not isinstance(name, str):
        raise InvalidInput("Nom de fichier invalide")
    if not FILENAME_PATTERN.fullmatch(name):
        raise InvalidInput(
            "Format de nom de fichier invalide : alphanumérique, tirets, "
            "underscores et extension .json uniquement."
        )
    return name


def validate_course_filename(name: str) -> str:
    validate_filename(name)
    if name.lower() in RESERVED_FILENAMES:
        raise InvalidInput(f"Nom de fichier réservé: {name}")
    return name


def validate_snapshot_id(snapshot_id: str) -> str:
    if not snapshot_id or not isinstance(snapshot_id, str):
        raise InvalidInput("Identifiant de snapshot invalide")
    if not SNAPSHOT_ID_PATTERN.fullmatch(snapshot_id):
        raise InvalidInput("Format d'identifiant de snapshot invalide")
    return snapshot_id


def slugify_course_name(name: str) -> str:
    slug = re.sub(r"\s+", "_", name.strip())
    slug = re.sub(r"[^a-zA-Z0-9_-]+", "", slug)
    return slug[:60] or "course"


def course_filename_for(name: str) -> str:
    """
    Nom de fichier d'un nouveau cours : slug du nom + suffixe d'unicité.
    """
    return validate_course_filename(f"{slugify_course_name(name)}-{uuid.uuid4().hex[:8]}.json")


def filename_from_course_id(course_id: str) -> str:
    """
    Les routes acceptent l'id du cours avec ou sans l'extension .json.
    """
    if not isinstance(course_id, str):
        raise InvalidInput("Identifiant de cours invalide")
    name = course_id if course_id.endswith(".json") else f"{course_id}.json"
    return validate_course_filename(name)
