from __future__ import annotations

from typing import List, NamedTuple, Sequence

from tick8.core.errors import InvalidInput
from tick8.models.vocab import State, VocabItem


class DecayResult(NamedTuple):
    items: List[VocabItem]
    modified: bool


def filled_count(item: VocabItem) -> int:
    return sum(1 for s in item.states if s != State.none)


def _check_page_size(page_size: int) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
        raise InvalidInput("pageSize doit être un entier >= 1")
    return page_size


def apply_decay(items: Sequence[VocabItem], page_size: int) -> DecayResult:
    """
    Rééquilibre chaque page : tous les items convergent vers la moyenne
    (arrondie à l'inférieur) du nombre d'états remplis de la page.

    - au-dessus de la moyenne : on efface les états les plus récents (fin du tableau) ;
    - en dessous : on ajoute des `boost` dans les premières cases vides.

    L'entrée n'est jamais modifiée. Une page déjà équilibrée reste identique,
    donc un second passage renvoie toujours modified=False.
    """
    _check_page_size(page_size)

    result = [item.model_copy(update={"states": list(item.states)}) for item in items]
    modified = False

    for start in range(0, len(result), page_size):
        page = result[start:start + page_size]
        avg = sum(filled_count(it) for it in page) // len(page)

        for item in page:
            current = filled_count(item)

            if current > avg:
                to_remove = current - avg
                for pos in range(len(item.states) - 1, -1, -1):
                    if to_remove == 0:
                        break
                    if item.states[pos] != State.none:
                        item.states[pos] = State.none
                        to_remove -= 1
                        modified = True

            elif current < avg:
                to_add = avg - current
                for pos in range(len(item.states)):
                    if to_add == 0:
                        break
                    if item.states[pos] == State.none:
                        item.states[pos] = State.boost
                        to_add -= 1
                        modified = True

    return DecayResult(items=result, modified=modified)


def last_filled_page(items: Sequence[VocabItem], page_size: int) -> int:
    """
    Page (0-based) du dernier item ayant au moins un état rempli ; 0 sinon.
    """
    _check_page_size(page_size)
    for idx in range(len(items) - 1, -1, -1):
        if filled_count(items[idx]) > 0:
            return idx // page_size
    return 0
