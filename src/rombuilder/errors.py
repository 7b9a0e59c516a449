"""Error taxonomy shared by the ROM codecs and the schema orchestrator."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List

_PATH_SEPARATOR = "::"


class CodecError(Exception):
    """Base class for every failure raised while coding ROM data.

    ``path`` collects the names of the structural nodes the error travelled
    through, outermost first, so ``str(error)`` reads ``section::field::detail``.
    """

    def __init__(self, detail: str, path: List[str] | None = None):
        self.detail = detail
        self.path: List[str] = list(path or [])
        super().__init__(self._render())

    def _render(self) -> str:
        return _PATH_SEPARATOR.join([*self.path, self.detail])

    def prefix(self, name: str) -> "CodecError":
        self.path.insert(0, name)
        self.args = (self._render(),)
        return self

    def __str__(self) -> str:
        return self._render()


class AddressingError(CodecError):
    """Raised when a seek, read or write falls outside the image."""


class ValidationError(CodecError):
    """Raised when a value does not match a constant or does not fit its slot."""


class UnhandledBitsError(CodecError):
    """Raised when a packed scalar carries bits no field claims."""


class LookupMissingError(CodecError):
    """Raised when a strict lookup table has no entry for a value or label."""


class RangeExceededError(CodecError):
    """Raised when a read or write crosses a configured warning boundary."""


class SchemaMissingOptionError(CodecError):
    """Raised when a tagged union has no option for a discriminant or name."""


class ParseFormatError(CodecError):
    """Raised when external text or trees are malformed."""


class SchemaDefinitionError(CodecError):
    """Raised when a schema node is configured inconsistently."""


@contextmanager
def annotate(name: str) -> Iterator[None]:
    """Prefix ``name`` onto any error escaping the managed block."""

    try:
        yield
    except CodecError as exc:
        raise exc.prefix(name)
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
        raise ParseFormatError(f"{type(exc).__name__}: {exc}", [name]) from exc


__all__ = [
    "AddressingError",
    "CodecError",
    "LookupMissingError",
    "ParseFormatError",
    "RangeExceededError",
    "SchemaDefinitionError",
    "SchemaMissingOptionError",
    "UnhandledBitsError",
    "ValidationError",
    "annotate",
]
