"""Orchestrates decode, parse, format, encode and optimize over named sections."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .codecs.base import DECODED, FORMATTED, Codec, Pass
from .errors import ParseFormatError, SchemaDefinitionError, annotate
from .rom import Rom
from .values import Value

LOGGER = logging.getLogger(__name__)

Loader = Callable[[str, Codec, Pass], Value]
Migration = Callable[[Codec], Optional[Codec]]


class _Memo:
    """Per-pass memo of section values with circular reference detection."""

    def __init__(self, sections: Mapping[str, Codec], load: Loader, bindings: Dict[int, Codec]):
        self.sections = sections
        self.load = load
        self.bindings = bindings
        self.values: Dict[str, Value] = {}
        self._active: List[str] = []
        self.ctx = Pass(fetch=self.fetch, bindings=bindings)

    def get(self, name: str) -> Value:
        if name in self.values:
            return self.values[name]
        if name not in self.sections:
            raise SchemaDefinitionError(f"unknown section {name!r}")
        if name in self._active:
            cycle = " -> ".join([*self._active, name])
            raise SchemaDefinitionError(f"circular reference: {cycle}")
        self._active.append(name)
        try:
            with annotate(name):
                self.values[name] = self.load(name, self.sections[name], self.ctx)
        finally:
            self._active.pop()
        return self.values[name]

    def fetch(self, name: str, state: str) -> Value:
        value = self.get(name)
        if state == FORMATTED:
            with annotate(name):
                return self.sections[name].format_tree(value, Pass(bindings=self.bindings))
        return value

    def run(self) -> Dict[str, Value]:
        for name in self.sections:
            self.get(name)
        return {name: self.values[name] for name in self.sections}


class Schema:
    """A named set of top-level codecs forming one ROM's data layout.

    ``decode`` and ``parse`` memoize every section for the duration of the
    pass and resolve references between sections on demand. The codecs that
    references build are kept so ``format``, ``encode`` and ``optimize`` can
    run on the same data afterwards.

    ``migration`` maps section names to hooks applied once as the schema is
    built. A hook may adjust the codec in place or return a replacement.
    """

    def __init__(
        self,
        sections: Mapping[str, Codec],
        migration: Optional[Mapping[str, Migration]] = None,
    ):
        self.sections: Dict[str, Codec] = dict(sections)
        self._bindings: Dict[int, Codec] = {}
        for name, migrate in (migration or {}).items():
            if name not in self.sections:
                raise SchemaDefinitionError(f"migration for unknown section {name!r}")
            LOGGER.debug("Migrating section %s", name)
            with annotate(name):
                replaced = migrate(self.sections[name])
            if replaced is not None:
                self.sections[name] = replaced

    def decode(self, rom: Rom) -> Dict[str, Value]:
        def load(name: str, node: Codec, ctx: Pass) -> Value:
            LOGGER.debug("Decoding section %s", name)
            with rom.jump(rom.offset()):
                return node.decode(rom, ctx)

        return self._load(load)

    def parse(self, texts: Mapping[str, Any]) -> Dict[str, Value]:
        def load(name: str, node: Codec, ctx: Pass) -> Value:
            if name not in texts:
                raise ParseFormatError("no external text supplied")
            LOGGER.debug("Parsing section %s", name)
            return node.parse(texts[name], ctx)

        return self._load(load)

    def _load(self, load: Loader) -> Dict[str, Value]:
        bindings: Dict[int, Codec] = {}
        data = _Memo(self.sections, load, bindings).run()
        self._bindings = bindings
        return data

    def format(self, data: Mapping[str, Value]) -> Dict[str, str]:
        ctx = Pass(bindings=self._bindings)
        formatted: Dict[str, str] = {}
        for name, node in self.sections.items():
            with annotate(name):
                text = node.format(data[name], ctx)
                if not isinstance(text, str):
                    raise ParseFormatError(
                        "section must format to text; wrap it in Sheet, Json or Yaml"
                    )
                formatted[name] = text
        return formatted

    def encode(self, data: Mapping[str, Value], rom: Rom) -> Rom:
        """Encode ``data`` onto a clone of ``rom`` and return the clone."""

        target = rom.clone()
        ctx = Pass(bindings=self._bindings)
        for name, node in self.sections.items():
            with annotate(name):
                LOGGER.debug("Encoding section %s", name)
                node.encode(data[name], target, ctx)
        ctx.flush()
        return target

    def optimize(self, data: Mapping[str, Value]) -> Dict[str, Value]:
        def load(name: str, node: Codec, ctx: Pass) -> Value:
            LOGGER.info("Optimizing section %s", name)
            return node.optimize(data[name], ctx)

        return _Memo(self.sections, load, self._bindings).run()

    def extensions(self) -> Dict[str, str]:
        return {name: node.extension for name, node in self.sections.items()}


def search(node: Codec, path: Sequence[str]) -> Codec:
    """Walk ``path`` through named children (struct fields, fork options)."""

    remaining = list(path)
    while remaining:
        finder = getattr(node, "search", None)
        if finder is not None:
            node = finder(remaining.pop(0))
            continue
        inner = getattr(node, "type", None)
        if inner is None:
            raise SchemaDefinitionError(
                f"cannot find {remaining[0]!r} below {type(node).__name__}"
            )
        node = inner
    return node


__all__ = ["DECODED", "FORMATTED", "Schema", "search"]
