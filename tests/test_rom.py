from __future__ import annotations

from pathlib import Path

import pytest

from rombuilder.errors import AddressingError, ValidationError
from rombuilder.rom import DWORD, LONG, WORD, HiRom, LoRom, Rom, check_width, open_rom


@pytest.mark.parametrize("address", [0xC00000, 0xC00001, 0xC0FFFF, 0xC12345, 0xEFFFFF])
def test_hirom_mapping_round_trips(address: int) -> None:
    rom = HiRom(bytes(0x10))
    assert rom.map_from(rom.map_to(address)) == address
    assert rom.map_to(address) == address - 0xC00000


@pytest.mark.parametrize("address", [0xC08000, 0xC08001, 0xC0FFFF, 0xC18123, 0xDFFFFF])
def test_lorom_mapping_round_trips(address: int) -> None:
    rom = LoRom(bytes(0x10))
    assert rom.map_from(rom.map_to(address)) == address


def test_lorom_packs_banks_in_32kb_steps() -> None:
    rom = LoRom(bytes(0x10))
    assert rom.map_to(0xC08000) == 0
    assert rom.map_to(0xC18000) == 0x8000
    assert rom.map_to(0x018000) == 0x8000
    assert rom.map_from(0x8000) == 0xC18000


@pytest.mark.parametrize(
    "rom_type, length, header",
    [
        (LoRom, 0x1001FF, 0),
        (LoRom, 0x100200, 0x200),
        (HiRom, 0x3001FF, 0),
        (HiRom, 0x300200, 0x200),
    ],
)
def test_header_size_follows_length_threshold(rom_type: type, length: int, header: int) -> None:
    rom = rom_type(bytes(length))
    assert rom.header_size == header
    assert rom.map_from(rom.map_to(0xC08000)) == 0xC08000
    assert rom.map_to(0xC08000) - header == rom_type(bytes(0x10)).map_to(0xC08000)


def test_read_and_write_are_little_endian(rom: HiRom) -> None:
    rom.offset(0xC00010)
    rom.write(0x123456, LONG)
    assert rom.buffer[0x10:0x13] == bytes([0x56, 0x34, 0x12])
    assert rom.offset() == 0xC00013

    assert rom.read_at(0xC00010, WORD) == 0x3456
    assert rom.offset() == 0xC00013
    rom.write_at(0xC00020, 0xDEADBEEF, DWORD)
    assert rom.read_at(0xC00020, DWORD) == 0xDEADBEEF


def test_write_rejects_values_wider_than_slot(rom: HiRom) -> None:
    with pytest.raises(ValidationError, match="does not fit"):
        rom.write(0x100)
    with pytest.raises(ValidationError):
        rom.write(-1)


def test_accesses_outside_image_raise(rom: HiRom) -> None:
    with pytest.raises(AddressingError, match="outside image"):
        rom.offset(0xC20000)
    rom.offset(0xC0FFFF)
    with pytest.raises(AddressingError, match="runs past end"):
        rom.read(WORD)


def test_jsr_and_rts_restore_the_cursor(rom: HiRom) -> None:
    rom.offset(0xC00100)
    rom.jsr(0xC00200)
    assert rom.offset() == 0xC00200
    assert rom.depth == 1
    rom.rts()
    assert rom.offset() == 0xC00100
    assert rom.depth == 0
    with pytest.raises(AddressingError, match="underflow"):
        rom.rts()


def test_jump_restores_cursor_after_errors(rom: HiRom) -> None:
    rom.offset(0xC00004)
    with pytest.raises(AddressingError):
        with rom.jump(0xC0FFFF):
            rom.read(DWORD)
    assert rom.offset() == 0xC00004
    assert rom.depth == 0


def test_failed_jsr_leaves_stack_untouched(rom: HiRom) -> None:
    with pytest.raises(AddressingError):
        rom.jsr(0xD00000)
    assert rom.depth == 0


def test_clone_is_independent(rom: HiRom) -> None:
    rom.offset(0xC00008)
    copy = rom.clone()
    copy.write_at(0xC00000, 0xAA)
    assert isinstance(copy, HiRom)
    assert rom.buffer[0] == 0
    assert copy.offset() == 0xC00000


def test_check_width_rejects_unknown_sizes() -> None:
    with pytest.raises(ValidationError):
        check_width(5)


def test_open_rom_selects_mapping(tmp_path: Path) -> None:
    image = tmp_path / "game.sfc"
    image.write_bytes(bytes(range(16)))

    loaded: Rom = open_rom(image, "LoROM")
    assert isinstance(loaded, LoRom)
    assert loaded.read_at(0xC08003) == 3

    with pytest.raises(AddressingError, match="unknown mapping"):
        open_rom(image, "exhirom")


def test_base_rom_needs_a_mapping() -> None:
    with pytest.raises(TypeError, match="abstract"):
        Rom(bytes(0x10))
