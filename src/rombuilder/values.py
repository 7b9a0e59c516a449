"""Shape of decoded values and helpers shared by codecs and adapters."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Union

Value = Union[None, int, str, List[Any], Dict[str, Any]]
"""Decoded value tree: ``None``, ``int``, ``str``, lists and field maps."""


def identity(value: Value) -> str:
    """Return a canonical serialization used to detect equal payloads."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def coerce_int(raw: Any, radix: int = 0) -> int:
    """Interpret ``raw`` as an integer, accepting ints and numeric text."""

    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"expected integer text, found {raw!r}")
    text = raw.strip()
    try:
        return int(text, radix)
    except ValueError:
        if radix != 0:
            raise
        return int(text, 10)


__all__ = ["Value", "coerce_int", "identity"]
