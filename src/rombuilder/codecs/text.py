"""Character strings and tokenized script text."""

from __future__ import annotations

import re
from typing import Any, Dict, List as ListType, Mapping

from ..errors import ParseFormatError, SchemaDefinitionError
from ..lookup import Seed
from ..rom import Rom
from ..values import Value
from .base import Pass
from .fork import DEFAULT, Fork, Option
from .lists import List, Size
from .scalar import Char, UInt

_TEXT_TOKEN = re.compile(r"\[[^\]]*\]|.", re.DOTALL)
_SCRIPT_TOKEN = re.compile(r"\{.*?\}|<.*?>|\[.*?\]|.", re.DOTALL)
_COMMAND = re.compile(r"\[(.*?)(?::(.*))?\]", re.DOTALL)
_ESCAPED_BYTE = re.compile(r"0x[0-9a-fA-F]+")

END = "end"


def _require_text(external: Any) -> str:
    if not isinstance(external, str):
        raise ParseFormatError(f"text expects a string, found {type(external).__name__}")
    return external


class Text(List):
    """Characters through a table; fixed ``size`` text is padded with ``pad``."""

    def __init__(self, size: Size, table: Seed, pad: str | None = None):
        super().__init__(size, Char(table))
        self.pad = pad
        if pad is not None and not self.type.lookup.has_label(pad):
            raise SchemaDefinitionError(f"pad character {pad!r} is not in the table")

    def parse(self, external: Any, ctx: Pass) -> Value:
        tokens = _TEXT_TOKEN.findall(_require_text(external))
        if not callable(self.size):
            if len(tokens) > self.size:
                raise ParseFormatError(f"text longer than {self.size} characters")
            if self.pad is not None:
                tokens.extend([self.pad] * (self.size - len(tokens)))
        return super().parse(tokens, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        labels = super().format(value, ctx)
        if self.pad is not None:
            while labels and labels[-1] == self.pad:
                labels.pop()
        return "".join(labels)


class TextLong(Text):
    """Text running up to and including a ``terminator`` byte."""

    def __init__(self, table: Seed, terminator: int = 0x00):
        super().__init__(lambda items: bool(items) and items[-1] == terminator, table)
        self.terminator = terminator

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        if not value or value[-1] != self.terminator:
            raise ParseFormatError("text is missing its terminator")
        super().encode(value, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        return super().parse(external, ctx) + [self.terminator]

    def format(self, value: Value, ctx: Pass) -> Any:
        if value and value[-1] == self.terminator:
            value = value[:-1]
        return super().format(value, ctx)


class TextScript(List):
    """Characters interleaved with ``[name]`` / ``[name:data]`` commands.

    Commands are :class:`Option` arms of a one-byte control :class:`Fork`;
    bytes without a command decode as table characters. The script runs
    until the ``end`` command.
    """

    def __init__(self, table: Seed, options: Mapping[int, Option]):
        if not any(option.name == END for option in options.values()):
            raise SchemaDefinitionError(f"script options must include {END!r}")
        arms: Dict[Any, Option] = {DEFAULT: Option(DEFAULT, Char(table), use_control=True)}
        arms.update(options)
        super().__init__(
            lambda items: bool(items) and items[-1]["name"] == END,
            Fork(UInt(), arms),
        )

    def _token(self, token: str) -> Dict[str, Any]:
        if token.startswith("["):
            match = _COMMAND.fullmatch(token)
            if match is not None:
                name, data = match.group(1), match.group(2)
                if name in self.type.names() or data is not None or not _ESCAPED_BYTE.fullmatch(name):
                    return {"name": name, "data": data}
        return {"name": DEFAULT, "data": token}

    def parse(self, external: Any, ctx: Pass) -> Value:
        tokens = [self._token(token) for token in _SCRIPT_TOKEN.findall(_require_text(external))]
        if not tokens or tokens[-1]["name"] != END:
            raise ParseFormatError(f"script must finish with [{END}]")
        return super().parse(tokens, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        pieces: ListType[str] = []
        for item in super().format(value, ctx):
            name, data = item["name"], item["data"]
            if name == DEFAULT:
                pieces.append(data)
            elif data is None:
                pieces.append(f"[{name}]")
            elif isinstance(data, (dict, list)):
                raise ParseFormatError(f"command {name!r} payload must format to a scalar")
            else:
                pieces.append(f"[{name}:{data}]")
        return "".join(pieces)


__all__ = ["END", "Text", "TextLong", "TextScript"]
