"""8x8 planar tiles as used by the console's character graphics."""

from __future__ import annotations

from typing import Any, List, Sequence

from ..errors import ParseFormatError, SchemaDefinitionError, ValidationError
from ..rom import Rom
from ..values import Value
from .base import Codec, Pass
from .lists import GlyphMap

TILE_SIZE = 8
PIXELS = TILE_SIZE * TILE_SIZE

_HEX_GLYPHS = ".123456789abcdef"


def default_glyphs(bpp: int) -> List[str]:
    if bpp <= 4:
        return list(_HEX_GLYPHS[: 1 << bpp])
    return [f"{index:02x}" for index in range(1 << bpp)]


class Tile(Codec):
    """A tile of ``bpp`` bitplanes stored as interleaved plane pairs.

    Each pair holds eight rows of (low plane, high plane) bytes, leftmost pixel
    in the most significant bit.
    """

    def __init__(self, bpp: int = 4, glyphs: Sequence[str] | None = None):
        if bpp not in (2, 4, 8):
            raise SchemaDefinitionError(f"tiles need an even depth of 2, 4 or 8 bits, not {bpp}")
        self.bpp = bpp
        self.glyphs = GlyphMap(glyphs if glyphs is not None else default_glyphs(bpp))
        if len(self.glyphs.lookup) < 1 << bpp:
            raise SchemaDefinitionError(f"{bpp}bpp tiles need {1 << bpp} glyphs")

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        planes = [[0] * TILE_SIZE for _ in range(self.bpp)]
        for pair in range(0, self.bpp, 2):
            for row in range(TILE_SIZE):
                planes[pair][row] = rom.read()
                planes[pair + 1][row] = rom.read()

        pixels = [0] * PIXELS
        for plane, rows in enumerate(planes):
            for row, byte in enumerate(rows):
                for column in range(TILE_SIZE):
                    bit = (byte >> (7 - column)) & 1
                    pixels[row * TILE_SIZE + column] |= bit << plane
        return pixels

    def _check(self, pixels: Any) -> List[int]:
        if not isinstance(pixels, list) or len(pixels) != PIXELS:
            raise ValidationError(f"tiles hold exactly {PIXELS} pixels")
        limit = 1 << self.bpp
        for index, pixel in enumerate(pixels):
            if not isinstance(pixel, int) or not 0 <= pixel < limit:
                raise ValidationError(f"pixel {index} value {pixel!r} exceeds {self.bpp}bpp")
        return pixels

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        pixels = self._check(value)
        for pair in range(0, self.bpp, 2):
            for row in range(TILE_SIZE):
                line = pixels[row * TILE_SIZE : (row + 1) * TILE_SIZE]
                for plane in (pair, pair + 1):
                    byte = 0
                    for column, pixel in enumerate(line):
                        byte |= ((pixel >> plane) & 1) << (7 - column)
                    rom.write(byte)

    def parse(self, external: Any, ctx: Pass) -> Value:
        pixels = self.glyphs.read(external)
        if len(pixels) != PIXELS:
            raise ParseFormatError(f"tile expects {PIXELS} pixels, found {len(pixels)}")
        return self._check(pixels)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.glyphs.render(self._check(value), TILE_SIZE)


__all__ = ["PIXELS", "TILE_SIZE", "Tile", "default_glyphs"]
