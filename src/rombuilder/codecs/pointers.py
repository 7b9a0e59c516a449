"""Pointer indirection, shared pointer tables and index tables.

Encoding allocates payload space as it goes and stores one copy of each
distinct payload; equality is judged on the canonical JSON identity of the
decoded value. Allocation cursors and dedup maps live in the :class:`Pass`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List as ListType

from ..errors import LookupMissingError, RangeExceededError, SchemaDefinitionError, annotate
from ..rom import BYTE, WORD, Rom
from ..values import Value, identity
from .base import Codec, Pass, Wrapped
from .lists import List, Size, _item
from .scalar import UInt

LOGGER = logging.getLogger(__name__)


def _warn_check(rom: Rom, warn: int | None) -> None:
    if warn is not None and rom.offset() > warn:
        raise RangeExceededError(f"cursor ${rom.offset():06x} passed boundary ${warn:06x}")


def _read_at(rom: Rom, address: int, type: Codec, ctx: Pass, warn: int | None) -> Value:
    with rom.jump(address):
        value = type.decode(rom, ctx)
        _warn_check(rom, warn)
        return value


def _write_at(rom: Rom, address: int, type: Codec, value: Value, ctx: Pass, warn: int | None) -> int:
    """Encode ``value`` at ``address`` and return the address just past it."""

    with rom.jump(address):
        type.encode(value, rom, ctx)
        _warn_check(rom, warn)
        return rom.offset()


def _pointer_value(point: UInt, target: int, base: int) -> int:
    relative = target - base
    if not 0 <= relative < 1 << (8 * point.width):
        raise RangeExceededError(
            f"${target:06x} is not reachable from base ${base:06x} with a "
            f"{point.width}-byte pointer"
        )
    return relative


class Reader(Wrapped):
    """Codes ``type`` at a fixed logical ``offset``, leaving the cursor alone."""

    def __init__(self, offset: int, type: Codec, warn: int | None = None):
        super().__init__(type)
        self.offset = offset
        self.warn = warn

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return _read_at(rom, self.offset, self.type, ctx, self.warn)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        _write_at(rom, self.offset, self.type, value, ctx, self.warn)


class Pointed(Wrapped):
    """A payload reached through a pointer kept at a fixed slot.

    Decoding follows the pointer stored at ``slot``. Encoding writes the
    payload at the cursor and stores its address, less ``shift``, at ``slot``.
    """

    def __init__(self, slot: int, type: Codec, shift: int = 0, width: int = WORD):
        super().__init__(type)
        self.slot = slot
        self.shift = shift
        self.point = UInt(width)

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        target = rom.read_at(self.slot, self.point.width) + self.shift
        return _read_at(rom, target, self.type, ctx, None)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        relative = _pointer_value(self.point, rom.offset(), self.shift)
        with rom.jump(self.slot):
            self.point.encode(relative, rom, ctx)
        self.type.encode(value, rom, ctx)


class Pointer(Codec):
    """A ``width``-byte pointer to a payload of ``type``.

    The target is ``pointer + shift``. On encode, payloads not yet written in
    the current pass are placed at an allocation cursor starting at ``start``.
    """

    def __init__(
        self,
        type: Codec,
        start: int,
        shift: int = 0,
        width: int = WORD,
        warn: int | None = None,
    ):
        self.type = type
        self.start = start
        self.shift = shift
        self.point = UInt(width)
        self.warn = warn

    @property
    def extension(self) -> str:  # type: ignore[override]
        return self.type.extension

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        target = self.point.decode(rom, ctx) + self.shift
        return _read_at(rom, target, self.type, ctx, self.warn)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        state = ctx.scratch(self, lambda: {"cursor": self.start, "seen": {}})
        key = identity(value)
        if key not in state["seen"]:
            state["seen"][key] = state["cursor"]
            state["cursor"] = _write_at(rom, state["cursor"], self.type, value, ctx, self.warn)
        self.point.encode(_pointer_value(self.point, state["seen"][key], self.shift), rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.type.parse(external, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.type.format(value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return self.type.optimize(value, ctx)


class PointerTable(List):
    """A run of pointers sharing one base ``offset``.

    With ``wrap`` set the table is prefixed by a word holding the index of the
    last payload placed before the ``wrap`` address; later pointers are
    relative to ``wrap``. Payloads are allocated from ``start`` and the space
    left before ``warn`` is filled with ``fill``.
    """

    def __init__(
        self,
        size: Size,
        offset: int,
        type: Codec,
        start: int | None = None,
        wrap: int | None = None,
        warn: int | None = None,
        width: int = WORD,
        fill: int = 0xFF,
    ):
        super().__init__(size, type)
        self.offset = offset
        self.start = start if start is not None else offset
        self.wrap = wrap
        self.warn = warn
        self.point = UInt(width)
        self.counter = UInt(WORD)
        self.fill = UInt(BYTE).check(fill)

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        count = self.counter.decode(rom, ctx) if self.wrap is not None else None
        items: ListType[Value] = []
        seen: Dict[int, Value] = {}
        while not self.ended(items):
            with annotate(_item(len(items))):
                wrapped = count is not None and len(items) > count
                base = self.wrap if wrapped else self.offset
                address = self.point.decode(rom, ctx) + base
                if address not in seen:
                    seen[address] = _read_at(rom, address, self.type, ctx, self.warn)
                items.append(seen[address])
        return items

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        items = self._require_list(value)
        if not callable(self.size) and len(items) != self.size:
            raise RangeExceededError(f"pointer table holds {self.size} entries, found {len(items)}")

        counter_at = None
        if self.wrap is not None:
            counter_at = rom.offset()
            self.counter.encode(0, rom, ctx)

        seen: Dict[str, int] = {}
        base = self.offset
        cursor = self.start
        unwrapped = self.wrap is not None
        for index, item in enumerate(items):
            with annotate(_item(index)):
                key = identity(item)
                if key not in seen:
                    seen[key] = cursor
                    cursor = _write_at(rom, cursor, self.type, item, ctx, self.warn)
                self.point.encode(_pointer_value(self.point, seen[key], base), rom, ctx)

                if unwrapped and cursor >= self.wrap:
                    base = self.wrap
                    unwrapped = False
                    seen = {}
                    rom.write_at(counter_at, index, WORD)

        if unwrapped:
            rom.write_at(counter_at, len(items), WORD)

        if self.warn is not None:
            self._pad(rom, cursor)

    def _pad(self, rom: Rom, cursor: int) -> None:
        unused = self.warn - cursor
        if unused < 0:
            raise RangeExceededError(
                f"pointer table payloads overflow ${self.warn:06x} by {-unused} byte(s)"
            )
        LOGGER.debug("Unused pointer table space before $%06x: %d", self.warn, unused)
        with rom.jump(cursor):
            for _ in range(unused):
                rom.write(self.fill)


class IndexTable(Codec):
    """A pointer table of shared payloads referenced by small indices.

    Decoding yields the table's payload list. Use-sites made by :meth:`index`
    expose the payload value itself and store its index. On encode the table
    section's own list fixes the slots, in order and with any repeats; values
    seen only at use-sites take the slots after it. The table and every
    use-site index are written once, after all sections, so section order
    does not matter.
    """

    def __init__(self, offset: int, table: PointerTable):
        if callable(table.size):
            raise SchemaDefinitionError("index tables need a fixed table size")
        self.table = table
        self.reader = Reader(offset, table)

    @property
    def type(self) -> Codec:
        return self.table.type

    def index(self, width: int = BYTE) -> "Indexed":
        return Indexed(self, width)

    def values(self, rom: Rom, ctx: Pass) -> ListType[Value]:
        state = ctx.scratch(self, dict)
        if "decoded" not in state:
            state["decoded"] = self.reader.decode(rom, ctx)
        return state["decoded"]

    def _pending(self, rom: Rom, ctx: Pass) -> Dict[str, Any]:
        state = ctx.scratch(self, dict)
        if "sites" not in state:
            state["slots"] = None
            state["sites"] = []
            ctx.defer(self, lambda: self._flush(state, rom, ctx))
        return state

    def use(self, address: int, width: int, value: Value, rom: Rom, ctx: Pass) -> None:
        """Record a use-site whose index is written at ``address`` on flush."""

        self._pending(rom, ctx)["sites"].append((address, UInt(width), value))

    def _layout(self, state: Dict[str, Any]) -> tuple[ListType[Value], Dict[str, int]]:
        slots = list(state["slots"] or [])
        positions: Dict[str, int] = {}
        for position, item in enumerate(slots):
            positions.setdefault(identity(item), position)
        for _, _, value in state["sites"]:
            key = identity(value)
            if key not in positions:
                positions[key] = len(slots)
                slots.append(value)
        return slots, positions

    def _flush(self, state: Dict[str, Any], rom: Rom, ctx: Pass) -> None:
        slots, positions = self._layout(state)
        if not slots:
            return
        size = self.table.size
        if len(slots) > size:
            raise RangeExceededError(f"{len(slots)} entries exceed index table size {size}")
        padded = slots + [slots[-1]] * (size - len(slots))
        LOGGER.debug("Writing index table of %d entries for %d use-site(s)", size, len(state["sites"]))
        self.reader.encode(padded, rom, ctx)
        for address, scalar, value in state["sites"]:
            index = positions[identity(value)]
            if index >= 1 << (8 * scalar.width):
                raise RangeExceededError(f"index {index} does not fit {scalar.width} byte(s)")
            with rom.jump(address):
                scalar.encode(index, rom, ctx)

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return list(self.values(rom, ctx))

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        items = self.table._require_list(value)
        if len(items) > self.table.size:
            raise RangeExceededError(f"{len(items)} entries exceed index table size {self.table.size}")
        self._pending(rom, ctx)["slots"] = list(items)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return List.parse(self.table, external, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return List.format(self.table, value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        unique: Dict[str, Value] = {}
        for item in self.table.optimize(value, ctx):
            unique.setdefault(identity(item), item)
        return list(unique.values())


class Indexed(Codec):
    """Use-site of an :class:`IndexTable`: stores an index, shows the payload."""

    def __init__(self, table: IndexTable, width: int = BYTE):
        self.table = table
        self.scalar = UInt(width)

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        index = self.scalar.decode(rom, ctx)
        values = self.table.values(rom, ctx)
        if index >= len(values):
            raise LookupMissingError(f"index {index} beyond table of {len(values)} entries")
        return values[index]

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        self.table.use(rom.offset(), self.scalar.width, value, rom, ctx)
        # Reserve the slot; the index is filled in on flush.
        self.scalar.encode(0, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.table.type.parse(external, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.table.type.format(value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return self.table.type.optimize(value, ctx)


__all__ = ["IndexTable", "Indexed", "Pointed", "Pointer", "PointerTable", "Reader"]
