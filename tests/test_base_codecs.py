from __future__ import annotations

import pytest

from rombuilder.codecs import Empty, Pass, Placeholder, Rewind, UInt, peek
from rombuilder.errors import SchemaDefinitionError
from rombuilder.rom import WORD, HiRom


def test_empty_and_placeholder_occupy_no_bytes(rom: HiRom, ctx: Pass) -> None:
    for codec in (Empty(), Placeholder("unused")):
        assert codec.decode(rom, ctx) is None
        codec.encode(None, rom, ctx)
        assert codec.parse("anything", ctx) is None
    assert rom.offset() == 0xC00000
    assert Placeholder("unused").format(None, ctx) == "unused"
    assert Empty().format(None, ctx) is None


def test_rewind_rereads_previous_bytes(rom: HiRom, ctx: Pass) -> None:
    rom.buffer[:2] = bytes([0x34, 0x12])
    assert UInt().decode(rom, ctx) == 0x34
    assert Rewind(1, UInt(WORD)).decode(rom, ctx) == 0x1234
    assert rom.offset() == 0xC00002

    Rewind(2, UInt()).encode(0x99, rom, ctx)
    assert rom.buffer[0] == 0x99
    assert Rewind(1, UInt()).extension == "txt"


def test_peek_leaves_cursor_in_place(rom: HiRom, ctx: Pass) -> None:
    rom.buffer[0] = 7
    assert peek(UInt(), rom, ctx) == 7
    assert rom.offset() == 0xC00000


def test_pass_scratch_is_per_node_and_per_pass() -> None:
    node = UInt()
    first = Pass()
    first.scratch(node, list).append(1)
    assert first.scratch(node, list) == [1]
    assert first.scratch(UInt(), list) == []
    assert Pass().scratch(node, list) == []


def test_pass_defers_one_action_per_node() -> None:
    ctx = Pass()
    node = Empty()
    calls: list[str] = []
    ctx.defer(node, lambda: calls.append("first"))
    ctx.defer(node, lambda: calls.append("second"))
    ctx.flush()
    ctx.flush()
    assert calls == ["first"]


def test_pass_fetch_needs_a_schema() -> None:
    with pytest.raises(SchemaDefinitionError, match="no schema available"):
        Pass().fetch("names")
    with pytest.raises(SchemaDefinitionError, match="unknown reference state"):
        Pass(fetch=lambda name, state: None).fetch("names", "raw")
