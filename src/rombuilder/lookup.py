"""Bidirectional tables between raw values and symbolic labels."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Mapping, Sequence, Tuple, Union

from .errors import LookupMissingError, SchemaDefinitionError

Seed = Union[Mapping[int, str], Sequence[str]]


def _iter_seed(seed: Seed) -> Iterator[Tuple[int, str]]:
    if isinstance(seed, Mapping):
        for raw, label in seed.items():
            yield int(raw), label
    elif isinstance(seed, str):
        for raw, label in enumerate(seed):
            yield raw, label
    else:
        yield from enumerate(seed)


class Lookup:
    """Strict (or fallback-tolerant) bijection between raw values and labels.

    Seeds are applied in order; a sequence seed assigns labels to consecutive
    raw values starting at zero. Reusing a raw value or a label is rejected.
    """

    def __init__(self, *seeds: Seed, fallback: Tuple[int, str] | None = None):
        self._labels: Dict[int, str] = {}
        self._raws: Dict[str, int] = {}
        for seed in seeds:
            for raw, label in _iter_seed(seed):
                self._add(raw, label)
        self.fallback = fallback

    def _add(self, raw: int, label: str) -> None:
        if raw in self._labels:
            raise SchemaDefinitionError(
                f"lookup already maps 0x{raw:x} to {self._labels[raw]!r}"
            )
        if label in self._raws:
            raise SchemaDefinitionError(
                f"lookup already maps {label!r} to 0x{self._raws[label]:x}"
            )
        self._labels[raw] = label
        self._raws[label] = raw

    @property
    def strict(self) -> bool:
        return self.fallback is None

    def __len__(self) -> int:
        return len(self._labels)

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return iter(self._labels.items())

    def has_raw(self, raw: int) -> bool:
        return raw in self._labels

    def has_label(self, label: str) -> bool:
        return label in self._raws

    def label(self, raw: int) -> str:
        try:
            return self._labels[raw]
        except KeyError:
            if self.fallback is not None:
                return self.fallback[1]
            raise LookupMissingError(f"lookup missing value 0x{raw:x}") from None

    def raw(self, label: str) -> int:
        try:
            return self._raws[label]
        except KeyError:
            if self.fallback is not None:
                return self.fallback[0]
            raise LookupMissingError(f"lookup missing label {label!r}") from None

    def labels(self) -> Iterable[str]:
        return self._raws.keys()


__all__ = ["Lookup", "Seed"]
