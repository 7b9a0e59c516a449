"""Tagged unions selected by a control value peeked from the image."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import ParseFormatError, SchemaDefinitionError, SchemaMissingOptionError, annotate
from ..rom import Rom
from ..values import Value
from .base import Codec, Pass, peek

DEFAULT = "default"


@dataclass(frozen=True)
class Option:
    """One arm of a :class:`Fork`.

    ``use_control`` marks payloads that decode the control value themselves,
    so the fork neither consumes nor writes it.
    """

    name: str
    type: Codec
    use_control: bool = False


class Fork(Codec):
    """Tagged union keyed by a control scalar; external shape ``{name, data}``."""

    def __init__(self, control: Codec, options: Mapping[Union[int, str], Option]):
        self.control = control
        self.options: Dict[int, Option] = {}
        self.default: Optional[Option] = None
        self._keys: Dict[str, Optional[int]] = {}
        for key, option in options.items():
            if option.name in self._keys:
                raise SchemaDefinitionError(f"option name {option.name!r} used more than once")
            if key == DEFAULT:
                if not option.use_control:
                    raise SchemaDefinitionError(
                        f"default option {option.name!r} must carry the control value"
                    )
                self.default = option
                self._keys[option.name] = None
            else:
                self.options[int(key)] = option
                self._keys[option.name] = int(key)

    def names(self) -> list[str]:
        return list(self._keys)

    def search(self, name: str) -> Codec:
        return self._by_name(name)[1].type

    def _missing(self, what: str) -> SchemaMissingOptionError:
        known = ", ".join(self.names())
        return SchemaMissingOptionError(f"{what} is missing (known options: {known})")

    def _by_key(self, key: int) -> Option:
        option = self.options.get(key)
        if option is not None:
            return option
        if self.default is not None:
            return self.default
        raise self._missing(f"option id 0x{key:x}")

    def _by_name(self, name: Any) -> tuple[Optional[int], Option]:
        if name not in self._keys:
            raise self._missing(f"option {name!r}")
        key = self._keys[name]
        return key, self.options[key] if key is not None else self.default  # type: ignore[return-value]

    def _unpack(self, value: Any) -> tuple[Any, Any]:
        if not isinstance(value, Mapping) or "name" not in value:
            raise ParseFormatError("fork value needs a 'name' entry")
        return value["name"], value.get("data")

    def decode(self, rom: Rom, ctx: Pass) -> Value:
        key = peek(self.control, rom, ctx)
        option = self._by_key(key)
        if not option.use_control:
            self.control.decode(rom, ctx)
        with annotate(option.name):
            return {"name": option.name, "data": option.type.decode(rom, ctx)}

    def encode(self, value: Value, rom: Rom, ctx: Pass) -> None:
        name, data = self._unpack(value)
        key, option = self._by_name(name)
        if not option.use_control:
            self.control.encode(key, rom, ctx)
        with annotate(option.name):
            option.type.encode(data, rom, ctx)

    def parse(self, external: Any, ctx: Pass) -> Value:
        name, data = self._unpack(external)
        _, option = self._by_name(name)
        with annotate(option.name):
            return {"name": option.name, "data": option.type.parse(data, ctx)}

    def format(self, value: Value, ctx: Pass) -> Any:
        name, data = self._unpack(value)
        _, option = self._by_name(name)
        with annotate(option.name):
            return {"name": option.name, "data": option.type.format(data, ctx)}

    def optimize(self, value: Value, ctx: Pass) -> Value:
        name, data = self._unpack(value)
        _, option = self._by_name(name)
        with annotate(option.name):
            return {"name": option.name, "data": option.type.optimize(data, ctx)}


__all__ = ["DEFAULT", "Fork", "Option"]
