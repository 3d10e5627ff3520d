import random

import pytest

from conftest import make_item
from tick8.core.errors import InvalidInput
from tick8.models.vocab import State, VocabItem
from tick8.services.decay import apply_decay, filled_count, last_filled_page


def _counts(items):
    return [filled_count(it) for it in items]


def test_page_converges_to_floor_average():
    items = [make_item(1, 4), make_item(2, 4), make_item(3, 0), make_item(4, 0)]
    result = apply_decay(items, page_size=4)

    assert result.modified is True
    assert _counts(result.items) == [2, 2, 2, 2]
    # effacement depuis la fin, boost dans les premières cases vides
    assert result.items[0].states[:4] == [State.tick, State.tick, State.none, State.none]
    assert result.items[2].states[:3] == [State.boost, State.boost, State.none]


def test_balanced_page_is_untouched():
    items = [make_item(i, 2) for i in range(4)]
    result = apply_decay(items, page_size=4)
    assert result.modified is False
    assert result.items == items


def test_floor_average():
    # (3 + 0) // 2 == 1
    result = apply_decay([make_item(1, 3), make_item(2, 0)], page_size=2)
    assert _counts(result.items) == [1, 1]


def test_pages_are_independent():
    items = [make_item(1, 8), make_item(2, 8), make_item(3, 0), make_item(4, 2)]
    result = apply_decay(items, page_size=2)
    assert _counts(result.items) == [8, 8, 1, 1]


def test_short_last_page():
    items = [make_item(1, 2), make_item(2, 2), make_item(3, 6)]
    result = apply_decay(items, page_size=2)
    assert _counts(result.items) == [2, 2, 6]
    assert result.modified is False


def test_input_is_not_mutated():
    items = [make_item(1, 6), make_item(2, 0)]
    before = [it.model_copy(deep=True) for it in items]
    apply_decay(items, page_size=2)
    assert items == before


def test_extra_fields_survive_decay():
    item = make_item(1, 4, note="garder")
    result = apply_decay([item, make_item(2, 0)], page_size=2)
    assert result.items[0].model_dump()["note"] == "garder"


def test_decay_is_idempotent_on_random_data():
    rng = random.Random(8)
    choices = ["none", "tick", "cross", "boost"]
    for _ in range(50):
        items = [
            VocabItem(id=str(i), word="w", answer="a", states=[rng.choice(choices) for _ in range(8)])
            for i in range(rng.randint(1, 40))
        ]
        page_size = rng.randint(1, 12)
        first = apply_decay(items, page_size)
        second = apply_decay(first.items, page_size)
        assert second.modified is False
        assert second.items == first.items
        assert len(first.items) == len(items)


def test_empty_list():
    result = apply_decay([], page_size=15)
    assert result.items == []
    assert result.modified is False


@pytest.mark.parametrize("bad", [0, -1, 1.5, "15", True, None])
def test_invalid_page_size(bad):
    with pytest.raises(InvalidInput):
        apply_decay([make_item(1)], page_size=bad)


def test_last_filled_page():
    items = [make_item(i) for i in range(10)]
    assert last_filled_page(items, 3) == 0
    items[7] = make_item(7, 1)
    assert last_filled_page(items, 3) == 2
    items[9] = make_item(9, 1, state="cross")
    assert last_filled_page(items, 3) == 3
    assert last_filled_page([], 3) == 0
