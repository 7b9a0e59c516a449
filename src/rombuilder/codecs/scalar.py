"""Scalar codecs: plain integers, constants, enumerations and characters."""

from __future__ import annotations

import re
from typing import Any, Tuple

from ..errors import LookupMissingError, SchemaDefinitionError, ValidationError
from ..lookup import Lookup, Seed
from ..rom import BYTE, WORD, Rom, check_width
from ..values import Value, coerce_int
from .base import Codec, Pass

_PREFIXES = {2: "0b", 8: "0o", 10: "", 16: "0x"}
_FORMAT_SPECS = {2: "b", 8: "o", 10: "d", 16: "x"}

_CHAR_ESCAPE = re.compile(r"^\[0x([0-9a-fA-F]+)\]$")


class UInt(Codec):
    """Unsigned little-endian integer of ``width`` bytes."""

    def __init__(self, width: int = BYTE, radix: int = 16):
        if radix not in _PREFIXES:
            raise SchemaDefinitionError(f"unsupported radix {radix!r}")
        self.width = check_width(width)
        self.radix = radix

    def check(self, value: int) -> int:
        if not isinstance(value, int) or not 0 <= value < 1 << (8 * self.width):
            raise ValidationError(f"value {value!r} does not fit in {self.width} byte(s)")
        return value

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return self.check(rom.read(self.width))

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        rom.write(self.check(value), self.width)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.check(coerce_int(external, self.radix))

    def format(self, value: Value, ctx: Pass) -> Any:
        return f"{_PREFIXES[self.radix]}{value:{_FORMAT_SPECS[self.radix]}}"


class Fixed(UInt):
    """A constant such as a signature byte; anything else is rejected."""

    def __init__(self, value: int, width: int = BYTE):
        super().__init__(width)
        self.value = super().check(value)

    def check(self, value: int) -> int:
        if value != self.value:
            raise ValidationError(f"fixed value expected 0x{self.value:x}, found {value!r}")
        return value

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.value

    def format(self, value: Value, ctx: Pass) -> Any:
        return f"0x{self.value:x}"


class Enum(UInt):
    """One-byte value translated through a :class:`Lookup` table."""

    width_bytes = BYTE

    def __init__(self, *seeds: Seed, fallback: Tuple[int, str] | None = None):
        super().__init__(self.width_bytes)
        self.lookup = Lookup(*seeds, fallback=fallback)

    def check(self, value: int) -> int:
        super().check(value)
        if self.lookup.strict and not self.lookup.has_raw(value):
            raise LookupMissingError(f"lookup missing value 0x{value:x}")
        return value

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.lookup.raw(external)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.lookup.label(value)


class EnumWord(Enum):
    width_bytes = WORD


class Bool(Enum):
    def __init__(self) -> None:
        super().__init__(["false", "true"])


class Char(Enum):
    """Text character; bytes missing from the table round trip as ``[0x..]``."""

    def __init__(self, table: Seed):
        super().__init__(table)

    def check(self, value: int) -> int:
        return UInt.check(self, value)

    def parse(self, external: Any, ctx: Pass) -> Value:
        if self.lookup.has_label(external):
            return self.lookup.raw(external)
        match = _CHAR_ESCAPE.match(external) if isinstance(external, str) else None
        if match is None:
            raise LookupMissingError(f"lookup missing label {external!r}")
        return UInt.check(self, int(match.group(1), 16))

    def format(self, value: Value, ctx: Pass) -> Any:
        if self.lookup.has_raw(value):
            return self.lookup.label(value)
        return f"[0x{value:x}]"


__all__ = ["Bool", "Char", "Enum", "EnumWord", "Fixed", "UInt"]
