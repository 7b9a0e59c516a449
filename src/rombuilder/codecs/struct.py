"""Record codecs over named fields, and bit-packed scalars."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import (
    LookupMissingError,
    ParseFormatError,
    SchemaDefinitionError,
    UnhandledBitsError,
    ValidationError,
    annotate,
)
from ..rom import WORD, Rom
from ..values import Value, coerce_int
from .base import Codec, Pass
from .pointers import Pointed
from .scalar import UInt

Predicate = Callable[[Mapping[str, Value]], bool]


@dataclass(frozen=True)
class Field:
    """A named struct member, optionally present only when ``when`` holds.

    ``when`` receives the sibling values decoded or parsed so far.
    """

    name: str
    type: Codec
    when: Optional[Predicate] = None

    def present(self, siblings: Mapping[str, Value]) -> bool:
        return self.when is None or bool(self.when(siblings))


def _unique_names(names: Sequence[str], kind: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise SchemaDefinitionError(f"{kind} {name!r} declared more than once")
        seen.add(name)


def _require_mapping(value: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ParseFormatError(f"{kind} expects a mapping, found {type(value).__name__}")
    return value


class Struct(Codec):
    """Ordered named fields coded one after another."""

    def __init__(self, fields: Sequence[Field]):
        _unique_names([field.name for field in fields], "field")
        self.fields = list(fields)

    def search(self, name: str) -> Codec:
        for field in self.fields:
            if field.name == name:
                return field.type
        raise SchemaDefinitionError(f"struct has no field {name!r}")

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        data: Dict[str, Value] = {}
        for field in self.fields:
            with annotate(field.name):
                data[field.name] = (
                    field.type.decode(rom, ctx) if field.present(data) else None
                )
        return data

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        data = _require_mapping(value, "struct")
        for field in self.fields:
            with annotate(field.name):
                if field.present(data):
                    field.type.encode(data[field.name], rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        source = _require_mapping(external, "struct")
        data: Dict[str, Value] = {}
        for field in self.fields:
            with annotate(field.name):
                data[field.name] = (
                    field.type.parse(source[field.name], ctx) if field.present(data) else None
                )
        return data

    def format(self, value: Value, ctx: Pass) -> Any:
        data = _require_mapping(value, "struct")
        formatted: Dict[str, Any] = {}
        for field in self.fields:
            with annotate(field.name):
                formatted[field.name] = (
                    field.type.format(data[field.name], ctx) if field.present(data) else None
                )
        return formatted

    def optimize(self, value: Value, ctx: Pass) -> Value:
        data = dict(_require_mapping(value, "struct"))
        for field in self.fields:
            with annotate(field.name):
                if field.present(data):
                    data[field.name] = field.type.optimize(data[field.name], ctx)
        return data


class ParallelList(Struct):
    """Struct of equal-length lists, exposed externally as a list of records."""

    def parse(self, external: Any, ctx: Pass) -> Value:
        if not isinstance(external, list):
            raise ParseFormatError("parallel list expects a list of records")
        columns = {
            field.name: [_require_mapping(record, "record")[field.name] for record in external]
            for field in self.fields
        }
        return super().parse(columns, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        columns = super().format(value, ctx)
        records: List[Dict[str, Any]] = []
        for field in self.fields:
            for index, item in enumerate(columns[field.name] or []):
                while len(records) <= index:
                    records.append({})
                records[index][field.name] = item
        return records


class PointerStruct(Struct):
    """Struct whose fields each sit behind a pointer.

    Field ``i`` is reached through the ``width``-byte pointer at
    ``offset + i * width``; payloads are written one after another at the
    cursor.
    """

    def __init__(self, offset: int, fields: Sequence[Field], shift: int = 0, width: int = WORD):
        super().__init__(
            [
                Field(field.name, Pointed(offset + index * width, field.type, shift, width), field.when)
                for index, field in enumerate(fields)
            ]
        )


def _flat_size(node: Codec) -> int:
    size = getattr(node, "size", None)
    if isinstance(size, int):
        return size
    inner = getattr(node, "type", None)
    if inner is None:
        raise SchemaDefinitionError(f"{type(node).__name__} has no fixed size to flatten")
    return _flat_size(inner)


class FlatStruct(Struct):
    """Struct of fixed-size lists, exposed externally as one flat list."""

    def __init__(self, fields: Sequence[Field]):
        super().__init__(fields)
        for field in self.fields:
            if field.when is not None:
                raise SchemaDefinitionError(f"flat struct field {field.name!r} cannot be conditional")
        self.sizes = [_flat_size(field.type) for field in self.fields]

    def parse(self, external: Any, ctx: Pass) -> Value:
        if not isinstance(external, list):
            raise ParseFormatError(f"flat struct expects a list, found {type(external).__name__}")
        if len(external) != sum(self.sizes):
            raise ParseFormatError(f"flat struct expects {sum(self.sizes)} items, found {len(external)}")
        columns: Dict[str, Any] = {}
        start = 0
        for field, size in zip(self.fields, self.sizes):
            columns[field.name] = external[start:start + size]
            start += size
        return super().parse(columns, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        formatted = super().format(value, ctx)
        flat: List[Any] = []
        for field in self.fields:
            flat.extend(formatted[field.name])
        return flat


def _trailing_zeros(mask: int) -> int:
    return (mask & -mask).bit_length() - 1


@dataclass(frozen=True)
class BitField:
    """A masked slice of a packed scalar; ``type`` labels the slice value."""

    name: str
    mask: int
    type: Optional[UInt] = None

    @property
    def shift(self) -> int:
        return _trailing_zeros(self.mask)


class Bits(Codec):
    """Fields sharing one scalar, each owning a (possibly scattered) bitmask.

    Bits that no field claims must read as zero.
    """

    def __init__(self, fields: Sequence[BitField]):
        _unique_names([field.name for field in fields], "bit field")
        claimed = 0
        for field in fields:
            if field.mask <= 0:
                raise SchemaDefinitionError(f"bit field {field.name!r} needs a positive mask")
            if claimed & field.mask:
                raise SchemaDefinitionError(f"bit field {field.name!r} overlaps another mask")
            claimed |= field.mask
        self.fields = list(fields)
        width = max(1, (max((field.mask for field in fields), default=0).bit_length() + 7) // 8)
        if width > 4:
            raise SchemaDefinitionError("bit fields must fit in four bytes")
        self.scalar = UInt(width)

    @property
    def width(self) -> int:
        return self.scalar.width

    def search(self, name: str) -> Codec:
        for field in self.fields:
            if field.name == name and field.type is not None:
                return field.type
        raise SchemaDefinitionError(f"bits have no typed field {name!r}")

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        value = self.scalar.decode(rom, ctx)
        data: Dict[str, Value] = {}
        for field in self.fields:
            with annotate(field.name):
                bits = value & field.mask
                value &= ~field.mask
                natural = bits >> field.shift
                if field.type is not None:
                    field.type.check(natural)
                data[field.name] = natural
        if value:
            raise UnhandledBitsError(f"unhandled bits: 0x{value:x}")
        return data

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        data = _require_mapping(value, "bits")
        packed = 0
        for field in self.fields:
            with annotate(field.name):
                natural = data[field.name]
                if field.type is not None:
                    field.type.check(natural)
                shifted = coerce_int(natural) << field.shift
                if shifted & ~field.mask:
                    raise ValidationError(
                        f"value {natural!r} does not fit mask 0x{field.mask:x}"
                    )
                packed |= shifted
        self.scalar.encode(packed, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        source = _require_mapping(external, "bits")
        data: Dict[str, Value] = {}
        for field in self.fields:
            with annotate(field.name):
                raw = source[field.name]
                data[field.name] = (
                    field.type.parse(raw, ctx) if field.type is not None else coerce_int(raw)
                )
        return data

    def format(self, value: Value, ctx: Pass) -> Any:
        data = _require_mapping(value, "bits")
        formatted: Dict[str, Any] = {}
        for field in self.fields:
            with annotate(field.name):
                natural = data[field.name]
                formatted[field.name] = (
                    field.type.format(natural, ctx) if field.type is not None else natural
                )
        return formatted


class Bitmask(Bits):
    """Single-bit flags, written externally as the list of set flag names."""

    def __init__(self, flags: Mapping[int, str], off_state: str | None = None):
        fields = []
        for mask, name in flags.items():
            if mask <= 0 or mask & (mask - 1):
                raise SchemaDefinitionError(f"flag {name!r} mask 0x{mask:x} is not a single bit")
            if name == off_state:
                raise SchemaDefinitionError(f"off state {name!r} matches a flag name")
            fields.append(BitField(name, mask))
        super().__init__(fields)
        self.off_state = off_state

    def parse(self, external: Any, ctx: Pass) -> Value:
        if isinstance(external, str):
            external = [external]
        if not isinstance(external, list):
            raise ParseFormatError("bitmask expects a list of flag names")
        names = {field.name for field in self.fields}
        if self.off_state is not None and external == [self.off_state]:
            external = []
        for name in external:
            if name not in names:
                raise LookupMissingError(f"unknown flag {name!r}")
        return {field.name: int(field.name in external) for field in self.fields}

    def format(self, value: Value, ctx: Pass) -> Any:
        data = _require_mapping(value, "bitmask")
        active = [field.name for field in self.fields if data.get(field.name)]
        if not active and self.off_state is not None:
            return [self.off_state]
        return active


__all__ = ["BitField", "Bitmask", "Bits", "Field", "FlatStruct", "ParallelList", "PointerStruct", "Struct"]
