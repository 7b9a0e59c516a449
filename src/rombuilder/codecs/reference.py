"""Codecs derived from another section's decoded or formatted data."""

from __future__ import annotations

from typing import Any, Callable

from ..errors import SchemaDefinitionError
from ..rom import Rom
from ..values import Value
from .base import DECODED, STATES, Codec, Pass

Builder = Callable[[Value], Codec]


class Reference(Codec):
    """Builds its codec from section ``name`` when decoding or parsing.

    ``state`` selects the raw decoded value or its formatted tree. The built
    codec is bound in the pass so that format, encode and optimize reuse it
    without resolving the reference again.
    """

    def __init__(self, name: str, build: Builder, state: str = DECODED, extension: str = "txt"):
        if state not in STATES:
            raise SchemaDefinitionError(f"unknown reference state {state!r}")
        self.name = name
        self.build = build
        self.state = state
        self.extension = extension

    def resolve(self, ctx: Pass) -> Codec:
        key = id(self)
        if key not in ctx.bindings:
            ctx.bindings[key] = self.build(ctx.fetch(self.name, self.state))
        return ctx.bindings[key]

    def bound(self, ctx: Pass) -> Codec:
        try:
            return ctx.bindings[id(self)]
        except KeyError:
            raise SchemaDefinitionError(
                f"reference to {self.name!r} is unresolved; decode or parse first"
            ) from None

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        return self.resolve(ctx).decode(rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.resolve(ctx).parse(external, ctx)

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        self.bound(ctx).encode(value, rom, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return self.bound(ctx).format(value, ctx)

    def format_tree(self, value: Value, ctx: Pass) -> Any:
        return self.bound(ctx).format_tree(value, ctx)

    def optimize(self, value: Value, ctx: Pass) -> Value:
        return self.bound(ctx).optimize(value, ctx)


__all__ = ["Reference"]
