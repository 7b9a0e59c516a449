from __future__ import annotations

import pytest

from rombuilder.codecs import Bool, Char, Enum, EnumWord, Fixed, Pass, UInt
from rombuilder.errors import LookupMissingError, SchemaDefinitionError, ValidationError
from rombuilder.rom import WORD, HiRom


def test_uint_decodes_and_encodes_at_cursor(rom: HiRom, ctx: Pass) -> None:
    rom.write_at(0xC00000, 0xBEEF, WORD)
    codec = UInt(WORD)
    rom.offset(0xC00000)
    assert codec.decode(rom, ctx) == 0xBEEF
    assert rom.offset() == 0xC00002

    codec.encode(0x1234, rom, ctx)
    assert rom.read_at(0xC00002, WORD) == 0x1234


@pytest.mark.parametrize(
    "radix, value, text",
    [(16, 255, "0xff"), (10, 255, "255"), (2, 5, "0b101"), (8, 8, "0o10")],
)
def test_uint_text_follows_radix(radix: int, value: int, text: str, ctx: Pass) -> None:
    codec = UInt(radix=radix)
    assert codec.format(value, ctx) == text
    assert codec.parse(text, ctx) == value


def test_uint_parse_accepts_bare_digits_and_ints(ctx: Pass) -> None:
    assert UInt(radix=16).parse("ff", ctx) == 255
    assert UInt().parse(12, ctx) == 12
    with pytest.raises(ValidationError):
        UInt().parse("0x100", ctx)
    with pytest.raises(SchemaDefinitionError):
        UInt(radix=3)


def test_fixed_checks_stored_value(rom: HiRom, ctx: Pass) -> None:
    codec = Fixed(0x42)
    rom.write_at(0xC00000, 0x42)
    assert codec.decode(rom, ctx) == 0x42
    assert codec.format(0x42, ctx) == "0x42"
    assert codec.parse("anything", ctx) == 0x42

    with pytest.raises(ValidationError, match="expected 0x42"):
        codec.decode(rom, ctx)
    with pytest.raises(ValidationError):
        codec.encode(0x41, rom, ctx)


def test_enum_translates_labels(rom: HiRom, ctx: Pass) -> None:
    codec = Enum(["fire", "ice", "bolt"])
    rom.write_at(0xC00000, 2)
    assert codec.format(codec.decode(rom, ctx), ctx) == "bolt"
    assert codec.parse("ice", ctx) == 1

    rom.write_at(0xC00001, 9)
    with pytest.raises(LookupMissingError, match="0x9"):
        codec.decode(rom, ctx)
    with pytest.raises(LookupMissingError):
        codec.encode(7, rom, ctx)


def test_enum_word_and_bool(rom: HiRom, ctx: Pass) -> None:
    word = EnumWord({0x1234: "boss"})
    rom.write_at(0xC00000, 0x1234, WORD)
    assert word.decode(rom, ctx) == 0x1234
    assert rom.offset() == 0xC00002

    flag = Bool()
    assert flag.format(1, ctx) == "true"
    assert flag.parse("false", ctx) == 0


def test_char_escapes_unmapped_bytes(ctx: Pass) -> None:
    codec = Char({0x20: "A", 0x21: "B"})
    assert codec.format(0x20, ctx) == "A"
    assert codec.format(0x7F, ctx) == "[0x7f]"
    assert codec.parse("[0x7f]", ctx) == 0x7F
    assert codec.parse("B", ctx) == 0x21
    with pytest.raises(LookupMissingError):
        codec.parse("C", ctx)
