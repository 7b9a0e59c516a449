"""Bank-addressed views over cartridge ROM images."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Type, TypeVar

from .errors import AddressingError, ValidationError

T = TypeVar("T")

BYTE = 1
WORD = 2
LONG = 3
DWORD = 4

_WIDTHS = (BYTE, WORD, LONG, DWORD)

_COPIER_HEADER = 0x200
_HIGH_BASE = 0xC00000


def check_width(width: int) -> int:
    if width not in _WIDTHS:
        raise ValidationError(f"unsupported scalar width {width!r}")
    return width


class Rom(ABC):
    """Byte image with a logical cursor and a call/return cursor stack.

    Subclasses translate logical (CPU) addresses to physical file offsets by
    implementing :meth:`map_to` and :meth:`map_from`.
    """

    header_threshold = 0

    def __init__(self, data: bytes | bytearray):
        self.buffer = bytearray(data)
        threshold = self.header_threshold
        self.header_size = _COPIER_HEADER if threshold and len(self.buffer) >= threshold else 0
        self._index = 0
        self._stack: List[int] = []

    @classmethod
    def load(cls: Type["Rom"], path: Path | str) -> "Rom":
        with open(Path(path), "rb") as source:
            return cls(source.read())

    def __len__(self) -> int:
        return len(self.buffer)

    @property
    def index(self) -> int:
        """Physical position of the cursor within :attr:`buffer`."""

        return self._index

    @property
    def depth(self) -> int:
        return len(self._stack)

    @abstractmethod
    def map_to(self, address: int) -> int:
        """Return the file offset of logical ``address``."""

    @abstractmethod
    def map_from(self, index: int) -> int:
        """Return the logical address of file offset ``index``."""

    def offset(self, address: int | None = None) -> int:
        """Return the logical cursor address, or seek to ``address``."""

        if address is None:
            return self.map_from(self._index)
        index = self.map_to(address)
        if not 0 <= index <= len(self.buffer):
            raise AddressingError(
                f"address ${address:06x} maps to offset 0x{index:x} outside image "
                f"of 0x{len(self.buffer):x} bytes"
            )
        self._index = index
        return address

    def _span(self, width: int) -> int:
        check_width(width)
        end = self._index + width
        if end > len(self.buffer):
            raise AddressingError(
                f"{width}-byte access at offset 0x{self._index:x} runs past end of image"
            )
        return end

    def read(self, width: int = BYTE) -> int:
        end = self._span(width)
        value = int.from_bytes(self.buffer[self._index : end], "little")
        self._index = end
        return value

    def write(self, value: int, width: int = BYTE) -> int:
        end = self._span(width)
        if not 0 <= value < 1 << (8 * width):
            raise ValidationError(f"value {value!r} does not fit in {width} byte(s)")
        self.buffer[self._index : end] = value.to_bytes(width, "little")
        self._index = end
        return end

    def read_at(self, address: int, width: int = BYTE) -> int:
        return self.enter(address, lambda: self.read(width))

    def write_at(self, address: int, value: int, width: int = BYTE) -> int:
        return self.enter(address, lambda: self.write(value, width))

    def jsr(self, address: int) -> None:
        """Save the cursor on the stack and seek to ``address``."""

        self._stack.append(self._index)
        try:
            self.offset(address)
        except AddressingError:
            self._stack.pop()
            raise

    def rts(self) -> None:
        """Restore the cursor saved by the matching :meth:`jsr`."""

        if not self._stack:
            raise AddressingError("cursor stack underflow")
        self._index = self._stack.pop()

    @contextmanager
    def jump(self, address: int) -> Iterator["Rom"]:
        self.jsr(address)
        try:
            yield self
        finally:
            self.rts()

    def enter(self, address: int, handler: Callable[[], T]) -> T:
        with self.jump(address):
            return handler()

    def clone(self) -> "Rom":
        """Return an independent copy of the image with a fresh cursor."""

        return type(self)(bytes(self.buffer))

    def to_bytes(self) -> bytes:
        return bytes(self.buffer)


class LoRom(Rom):
    """32KB banks mirrored into the upper half of each 64KB logical bank."""

    header_threshold = 0x100200

    def map_to(self, address: int) -> int:
        fixed = address - _HIGH_BASE if address >= _HIGH_BASE else address
        bank = fixed >> 16
        return (bank << 15) + (fixed & 0x7FFF) + self.header_size

    def map_from(self, index: int) -> int:
        fixed = index - self.header_size
        bank = fixed >> 15 << 16
        return bank + ((fixed & 0x7FFF) | 0x8000) + _HIGH_BASE


class HiRom(Rom):
    """Linear mapping of the image onto logical space from ``$C00000``."""

    header_threshold = 0x300200

    def map_to(self, address: int) -> int:
        return address - _HIGH_BASE + self.header_size

    def map_from(self, index: int) -> int:
        return index + _HIGH_BASE - self.header_size


MAPPINGS: Dict[str, Type[Rom]] = {
    "lorom": LoRom,
    "hirom": HiRom,
}


def open_rom(path: Path | str, mapping: str = "hirom") -> Rom:
    """Load the image at ``path`` using the named address ``mapping``."""

    try:
        rom_type = MAPPINGS[mapping.lower()]
    except KeyError:
        known = ", ".join(sorted(MAPPINGS))
        raise AddressingError(f"unknown mapping {mapping!r} (known: {known})") from None
    return rom_type.load(path)


__all__ = [
    "BYTE",
    "DWORD",
    "HiRom",
    "LONG",
    "LoRom",
    "MAPPINGS",
    "Rom",
    "WORD",
    "check_width",
    "open_rom",
]
