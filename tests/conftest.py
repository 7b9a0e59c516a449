"""Pytest configuration to ensure the rombuilder package is importable."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parents[1] / "src"
_src_str = str(_SRC)
if _SRC.exists() and _src_str not in sys.path:
    sys.path.insert(0, _src_str)

from rombuilder.codecs import Pass  # noqa: E402
from rombuilder.rom import HiRom  # noqa: E402

BANK_SIZE = 0x10000


@pytest.fixture
def rom() -> HiRom:
    """A blank 64KB HiROM image addressed from ``$C00000``."""

    return HiRom(bytes(BANK_SIZE))


@pytest.fixture
def ctx() -> Pass:
    return Pass()
