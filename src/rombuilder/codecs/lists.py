"""Sequence codecs: counted or terminated lists and glyph grids."""

from __future__ import annotations

from typing import Any, Callable, List as ListType, Sequence, Union

from ..errors import LookupMissingError, ParseFormatError, SchemaDefinitionError, ValidationError, annotate
from ..lookup import Lookup
from ..rom import Rom
from ..values import Value
from .base import Codec, Pass
from .scalar import UInt

Size = Union[int, Callable[[ListType[Value]], bool]]


def _item(index: int) -> str:
    return f"[{index}]"


class List(Codec):
    """``size`` items of ``type``; ``size`` may be a predicate over items so far."""

    def __init__(self, size: Size, type: Codec):
        self.size = size
        self.type = type

    def ended(self, items: ListType[Value]) -> bool:
        if callable(self.size):
            return bool(self.size(items))
        return len(items) >= self.size

    def _require_list(self, value: Any) -> ListType[Any]:
        if not isinstance(value, list):
            raise ParseFormatError(f"list expects a list, found {type(value).__name__}")
        return value

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        items: ListType[Value] = []
        while not self.ended(items):
            with annotate(_item(len(items))):
                items.append(self.type.decode(rom, ctx))
        return items

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        items = self._require_list(value)
        if not callable(self.size) and len(items) != self.size:
            raise ValidationError(f"expected {self.size} items, found {len(items)}")
        for index, item in enumerate(items):
            with annotate(_item(index)):
                self.type.encode(item, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        parsed = []
        for index, item in enumerate(self._require_list(external)):
            with annotate(_item(index)):
                parsed.append(self.type.parse(item, ctx))
        return parsed

    def format(self, value: Value, ctx: Pass) -> Any:
        formatted = []
        for index, item in enumerate(self._require_list(value)):
            with annotate(_item(index)):
                formatted.append(self.type.format(item, ctx))
        return formatted

    def optimize(self, value: Value, ctx: Pass) -> Value:
        optimized = []
        for index, item in enumerate(self._require_list(value)):
            with annotate(_item(index)):
                optimized.append(self.type.optimize(item, ctx))
        return optimized


class GlyphMap:
    """Fixed-width glyphs standing for small integers in text dumps."""

    def __init__(self, glyphs: Sequence[str]):
        glyphs = list(glyphs)
        if not glyphs:
            raise SchemaDefinitionError("glyph map needs at least one glyph")
        size = len(glyphs[0])
        for glyph in glyphs:
            if len(glyph) != size or not glyph or any(char.isspace() for char in glyph):
                raise SchemaDefinitionError(
                    f"glyph {glyph!r} must be {size} non-blank character(s)"
                )
        self.size = size
        self.lookup = Lookup(glyphs)

    def render(self, values: Sequence[int], width: int) -> str:
        lines = []
        for start in range(0, len(values), width):
            row = values[start : start + width]
            lines.append("".join(self.lookup.label(value) for value in row))
        return "\n".join(lines)

    def read(self, text: str) -> ListType[int]:
        if not isinstance(text, str):
            raise ParseFormatError("glyph text must be a string")
        compact = "".join(text.split())
        if len(compact) % self.size:
            raise ParseFormatError(f"glyph text length is not a multiple of {self.size}")
        values = []
        for start in range(0, len(compact), self.size):
            glyph = compact[start : start + self.size]
            if not self.lookup.has_label(glyph):
                raise LookupMissingError(f"unknown glyph {glyph!r} at position {start}")
            values.append(self.lookup.raw(glyph))
        return values


class Grid(List):
    """``width`` x ``height`` cells rendered as rows of glyphs."""

    def __init__(self, width: int, height: int, glyphs: Sequence[str], cell: UInt | None = None):
        super().__init__(width * height, cell if cell is not None else UInt())
        self.width = width
        self.height = height
        self.glyphs = GlyphMap(glyphs)

    def parse(self, external: Any, ctx: Pass) -> Value:
        values = self.glyphs.read(external)
        if len(values) != self.size:
            raise ParseFormatError(f"grid expects {self.size} cells, found {len(values)}")
        return [self.type.check(value) for value in values]

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.glyphs.render(self._require_list(value), self.width)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return value


__all__ = ["GlyphMap", "Grid", "List"]
