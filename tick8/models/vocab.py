from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tick8.core.errors import InvalidInput

STATES_PER_ITEM = 8

VOCAB_FORMAT = "tick8.vocab"
VOCAB_VERSION = 2


class State(str, Enum):
    none = "none"
    tick = "tick"
    cross = "cross"
    boost = "boost"


def empty_states() -> List[State]:
    return [State.none] * STATES_PER_ITEM


class VocabItem(BaseModel):
    # clés inconnues conservées telles quelles (aucune perte de données)
    model_config = ConfigDict(extra="allow")

    id: str
    word: str
    answer: str
    states: List[State] = Field(default_factory=empty_states)
    lastUpdated: Optional[str] = None

    @field_validator("id", "word", "answer", mode="before")
    @classmethod
    def _scalar_to_str(cls, v):
        if isinstance(v, bool):
            raise ValueError("valeur booléenne refusée")
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("id", "word", "answer")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("champ obligatoire vide")
        return v

    @field_validator("states", mode="before")
    @classmethod
    def _states_default(cls, v):
        return [] if v is None else v

    @field_validator("states")
    @classmethod
    def _pad_states(cls, v: List[State]) -> List[State]:
        if len(v) > STATES_PER_ITEM:
            raise ValueError(f"au plus {STATES_PER_ITEM} états par item")
        return list(v) + [State.none] * (STATES_PER_ITEM - len(v))


class VocabDocument(BaseModel):
    """
    Forme canonique d'un fichier de vocabulaire sur le stockage.
    Lecture transparente des anciens formats via `from_raw`.
    """

    format: str = VOCAB_FORMAT
    version: int = VOCAB_VERSION
    metadata: Dict[str, Any] = Field(default_factory=dict)
    content: List[VocabItem] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "VocabDocument":
        """
        - tableau nu (ancien format) ;
        - {metadata, content} sans version ;
        - document versionné.
        Lève ValueError si la forme n'est pas reconnue.
        """
        if isinstance(raw, list):
            return cls(content=raw)
        if isinstance(raw, dict) and "content" in raw:
            fmt = raw.get("format", VOCAB_FORMAT)
            if fmt != VOCAB_FORMAT:
                raise ValueError(f"format de vocabulaire inconnu: {fmt!r}")
            version = raw.get("version", VOCAB_VERSION)
            if not isinstance(version, int) or version > VOCAB_VERSION:
                raise ValueError(f"version de vocabulaire non supportée: {version!r}")
            return cls(metadata=raw.get("metadata") or {}, content=raw["content"])
        raise ValueError("contenu de vocabulaire non reconnu")


def validate_vocab_list(raw: Any) -> List[VocabItem]:
    """
    Validation commune à toute écriture (API, import, générateur IA).
    """
    if not isinstance(raw, list):
        raise InvalidInput("Le contenu doit être un tableau")

    items: List[VocabItem] = []
    for i, entry in enumerate(raw):
        if isinstance(entry, VocabItem):
            items.append(entry)
            continue
        if not isinstance(entry, dict):
            raise InvalidInput(f"Item invalide à l'index {i} : doit être un objet")
        try:
            items.append(VocabItem.model_validate(entry))
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise InvalidInput(
                f"Item invalide à l'index {i} : id, word et answer requis ({fields})"
            ) from e
    return items


def validate_states(raw: Any) -> List[State]:
    if not isinstance(raw, list):
        raise InvalidInput("Les états doivent être un tableau")
    if len(raw) > STATES_PER_ITEM:
        raise InvalidInput(f"Au plus {STATES_PER_ITEM} états par item")
    try:
        states = [State(s) for s in raw]
    except ValueError as e:
        raise InvalidInput(f"État inconnu: {e}") from e
    return states + [State.none] * (STATES_PER_ITEM - len(states))
