"""Schema node combinators exposed by the rombuilder package."""
from __future__ import annotations

from typing import Any

from . import base as _base
from . import fork as _fork
from . import lists as _lists
from . import pointers as _pointers
from . import reference as _reference
from . import scalar as _scalar
from . import struct as _struct
from . import text as _text
from . import tile as _tile

_modules = [
    _base,
    _scalar,
    _struct,
    _fork,
    _lists,
    _text,
    _tile,
    _pointers,
    _reference,
]

__all__: list[str] = []
_seen: set[str] = set()
for _module in _modules:
    for _name in _module.__all__:
        if _name not in _seen:
            _seen.add(_name)
            __all__.append(_name)
        globals()[_name] = getattr(_module, _name)


def __getattr__(name: str) -> Any:
    for _module in _modules:
        if hasattr(_module, name):
            return getattr(_module, name)
    raise AttributeError(name)


def __dir__() -> list[str]:
    return sorted(__all__)
