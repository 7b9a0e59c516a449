from __future__ import annotations

import pytest

from rombuilder.errors import LookupMissingError, SchemaDefinitionError
from rombuilder.lookup import Lookup


def test_seeds_combine_sequences_strings_and_mappings() -> None:
    table = Lookup(["zero", "one"], {0x10: "sixteen"})
    assert table.label(1) == "one"
    assert table.raw("sixteen") == 0x10
    assert len(table) == 3
    assert list(table.labels()) == ["zero", "one", "sixteen"]

    glyphs = Lookup("ab")
    assert glyphs.raw("b") == 1


@pytest.mark.parametrize(
    "seeds, message",
    [
        ((["a"], {0: "b"}), "already maps 0x0"),
        ((["a", "b"], {5: "a"}), "already maps 'a'"),
    ],
)
def test_collisions_are_rejected(seeds: tuple, message: str) -> None:
    with pytest.raises(SchemaDefinitionError, match=message):
        Lookup(*seeds)


def test_strict_lookup_raises_on_unknown_entries() -> None:
    table = Lookup(["a"])
    assert table.strict
    with pytest.raises(LookupMissingError, match="0x9"):
        table.label(9)
    with pytest.raises(LookupMissingError, match="'zz'"):
        table.raw("zz")


def test_fallback_answers_unknown_entries() -> None:
    table = Lookup(["a"], fallback=(0xFF, "?"))
    assert not table.strict
    assert table.label(7) == "?"
    assert table.raw("missing") == 0xFF
    assert table.has_raw(0) and not table.has_raw(7)
