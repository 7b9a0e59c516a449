"""Internal header checksum of 3MB HiROM images."""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

from .errors import AddressingError, SchemaDefinitionError
from .rom import WORD, HiRom, Rom

LOGGER = logging.getLogger(__name__)

SINGLE_END = 0x200000
MIRRORED_END = 0x300000

CHECKSUM_ADDRESS = 0xC0FFDE
COMPLEMENT_ADDRESS = 0xC0FFDC


def compute_checksum(data: bytes | bytearray, exclude: Iterable[int] = ()) -> Tuple[int, int]:
    """Return ``(checksum, complement)`` for the image ``data``.

    The first 2MB are summed once and the following 1MB twice, as the
    hardware mirrors it. Offsets listed in ``exclude`` are skipped.
    """

    if len(data) < MIRRORED_END:
        raise AddressingError(
            f"checksum needs 0x{MIRRORED_END:x} bytes, image holds 0x{len(data):x}"
        )
    view = memoryview(bytes(data))
    total = sum(view[:SINGLE_END]) + 2 * sum(view[SINGLE_END:MIRRORED_END])
    for index in set(exclude):
        if 0 <= index < SINGLE_END:
            total -= data[index]
        elif SINGLE_END <= index < MIRRORED_END:
            total -= 2 * data[index]
    checksum = total & 0xFFFF
    return checksum, checksum ^ 0xFFFF


def _header_offsets(rom: Rom) -> list[int]:
    return [
        rom.map_to(address) + step
        for address in (COMPLEMENT_ADDRESS, CHECKSUM_ADDRESS)
        for step in range(WORD)
    ]


def _require_hirom(rom: Rom) -> None:
    if not isinstance(rom, HiRom):
        raise SchemaDefinitionError("checksums are only supported for HiROM images")


def apply_checksum(rom: Rom) -> Tuple[int, int]:
    """Store the checksum and its complement in the image header.

    The four header bytes are left out of the sum, so the result does not
    depend on whatever checksum the image already carries. A plain sum over
    every byte, header words included, would differ whenever the stored
    words are non-zero.
    """

    _require_hirom(rom)
    checksum, complement = compute_checksum(rom.buffer, exclude=_header_offsets(rom))
    rom.write_at(COMPLEMENT_ADDRESS, complement, WORD)
    rom.write_at(CHECKSUM_ADDRESS, checksum, WORD)
    LOGGER.info("Wrote checksum 0x%04x (complement 0x%04x)", checksum, complement)
    return checksum, complement


def verify_checksum(rom: Rom) -> bool:
    """Return whether the stored header words match the image contents."""

    _require_hirom(rom)
    expected = compute_checksum(rom.buffer, exclude=_header_offsets(rom))
    stored = (rom.read_at(CHECKSUM_ADDRESS, WORD), rom.read_at(COMPLEMENT_ADDRESS, WORD))
    return stored == expected


__all__ = [
    "CHECKSUM_ADDRESS",
    "COMPLEMENT_ADDRESS",
    "apply_checksum",
    "compute_checksum",
    "verify_checksum",
]
