"""Codec protocol and the per-pass context threaded through every call."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, TypeVar

from ..errors import SchemaDefinitionError
from ..rom import Rom
from ..values import Value

DECODED = "decoded"
FORMATTED = "formatted"
STATES = (DECODED, FORMATTED)

Fetch = Callable[[str, str], Value]
S = TypeVar("S")


class Pass:
    """State owned by one decode, encode, parse, format or optimize traversal.

    Codec nodes are immutable configuration; anything that must live for the
    duration of a traversal (allocation cursors, dedup maps, index tables,
    deferred writes) is kept here under the identity of the owning node.
    ``bindings`` carries the codecs built by :class:`~.reference.Reference`
    nodes so format and encode reuse what decode or parse resolved.
    """

    def __init__(
        self,
        fetch: Optional[Fetch] = None,
        bindings: Optional[Dict[int, "Codec"]] = None,
    ):
        self._fetch = fetch
        self.bindings: Dict[int, Codec] = {} if bindings is None else bindings
        self._scratch: Dict[int, Any] = {}
        self._deferred: Dict[int, Callable[[], None]] = {}

    def scratch(self, node: "Codec", factory: Callable[[], S]) -> S:
        key = id(node)
        if key not in self._scratch:
            self._scratch[key] = factory()
        return self._scratch[key]

    def fetch(self, name: str, state: str = DECODED) -> Value:
        if state not in STATES:
            raise SchemaDefinitionError(f"unknown reference state {state!r}")
        if self._fetch is None:
            raise SchemaDefinitionError(f"no schema available to resolve {name!r}")
        return self._fetch(name, state)

    def defer(self, node: "Codec", action: Callable[[], None]) -> None:
        """Queue ``action`` to run once, after every section has been encoded."""

        self._deferred.setdefault(id(node), action)

    def flush(self) -> None:
        pending = list(self._deferred.values())
        self._deferred.clear()
        for action in pending:
            action()


class Codec:
    """A schema node: decode/encode against a :class:`Rom`, parse/format text."""

    extension = "txt"

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        raise NotImplementedError

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        raise NotImplementedError

    def parse(self, external: Any, ctx: Pass) -> Value:
        return external

    def format(self, value: Value, ctx: Pass) -> Any:
        return value

    def format_tree(self, value: Value, ctx: Pass) -> Any:
        """Format ``value`` without serializing it to text."""

        return self.format(value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return value


class Wrapped(Codec):
    """Forward every operation to an owned inner codec."""

    def __init__(self, type: Codec):
        self.type = type

    @property
    def extension(self) -> str:  # type: ignore[override]
        return self.type.extension

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return self.type.decode(rom, ctx)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        self.type.encode(value, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.type.parse(external, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.type.format(value, ctx)

    def format_tree(self, value: Value, ctx: Pass) -> Any:
        return self.type.format_tree(value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return self.type.optimize(value, ctx)


class Empty(Codec):
    """Occupies no bytes and always yields ``None``."""

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return None

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        return None

    def parse(self, external: Any, ctx: Pass) -> Value:
        return None

    def format(self, value: Value, ctx: Pass) -> Any:
        return None


class Placeholder(Empty):
    """An :class:`Empty` slot that formats as a fixed label."""

    def __init__(self, placeholder: str):
        self.placeholder = placeholder

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.placeholder


class Rewind(Wrapped):
    """Step the cursor back ``steps`` bytes before coding the inner type."""

    def __init__(self, steps: int, type: Codec):
        super().__init__(type)
        self.steps = steps

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        rom.offset(rom.offset() - self.steps)
        return self.type.decode(rom, ctx)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        rom.offset(rom.offset() - self.steps)
        self.type.encode(value, rom, ctx)


class Optimize(Wrapped):
    """Apply ``fn(value, fetch)`` to the value during the optimize pass."""

    def __init__(self, type: Codec, fn: Callable[[Value, Fetch], Value]):
        super().__init__(type)
        self.fn = fn

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return self.fn(self.type.optimize(value, ctx), ctx.fetch)


def peek(codec: Codec, rom: Rom, ctx: Pass) -> Value:
    """Decode ``codec`` at the cursor without consuming any bytes."""

    with rom.jump(rom.offset()):
        return codec.decode(rom, ctx)


__all__ = [
    "Codec",
    "DECODED",
    "Empty",
    "FORMATTED",
    "Fetch",
    "Optimize",
    "Pass",
    "Placeholder",
    "Rewind",
    "Wrapped",
    "peek",
]
