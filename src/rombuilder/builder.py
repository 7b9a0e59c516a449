"""Project level actions: dump, import, round trip test and optimize."""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from .checksum import apply_checksum
from .codecs.base import Codec
from .errors import SchemaDefinitionError, ValidationError
from .rom import Rom, open_rom
from .schema import Migration, Schema

LOGGER = logging.getLogger(__name__)

SCHEMA_ATTRIBUTE = "SCHEMA"


def _section_name(path: Path) -> str:
    return path.name.split(".")[0]


def read_dir(dir_path: Path) -> Dict[str, str]:
    """Return ``{section: text}`` for every file in ``dir_path``."""

    if not dir_path.is_dir():
        raise FileNotFoundError(f"data directory not found: {dir_path}")
    return {
        _section_name(path): path.read_text(encoding="utf-8")
        for path in sorted(dir_path.iterdir())
        if path.is_file()
    }


def _load_module_schema(path: Path) -> Codec:
    spec = importlib.util.spec_from_file_location(f"rombuilder_schema_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise SchemaDefinitionError(f"cannot import schema module {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    node = getattr(module, SCHEMA_ATTRIBUTE, None)
    if not isinstance(node, Codec):
        raise SchemaDefinitionError(f"{path.name} must define {SCHEMA_ATTRIBUTE} as a codec")
    return node


def load_schema_dir(dir_path: Path, migration: Optional[Mapping[str, Migration]] = None) -> Schema:
    """Import every schema module in ``dir_path``; file stems name the sections."""

    if not dir_path.is_dir():
        raise FileNotFoundError(f"schema directory not found: {dir_path}")
    sections = {
        _section_name(path): _load_module_schema(path)
        for path in sorted(dir_path.glob("*.py"))
        if not path.name.startswith("_")
    }
    if not sections:
        raise SchemaDefinitionError(f"no schema modules found in {dir_path}")
    LOGGER.debug("Loaded %d schema section(s) from %s", len(sections), dir_path)
    return Schema(sections, migration)


def compare_formatted(before: Mapping[str, str], after: Mapping[str, str]) -> None:
    """Raise ``ValidationError`` naming the first section whose text changed."""

    for name, text in before.items():
        if after.get(name) != text:
            raise ValidationError(f"round trip changed section {name!r}")


def _save(rom: Rom, save_as: Path, checksum: bool) -> Path:
    if checksum:
        apply_checksum(rom)
    save_as.write_bytes(rom.to_bytes())
    LOGGER.info("Wrote %s", save_as)
    return save_as


def dump(rom_path: Path, dump_dir: Path, schema_dir: Path, mapping: str = "hirom") -> Dict[str, Path]:
    """Decode ``rom_path`` and write one formatted file per section."""

    schema = load_schema_dir(schema_dir)
    formatted = schema.format(schema.decode(open_rom(rom_path, mapping)))
    extensions = schema.extensions()

    dump_dir.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}
    for name, text in formatted.items():
        output_path = dump_dir / f"{name}.{extensions[name]}"
        output_path.write_text(text, encoding="utf-8")
        written[name] = output_path
    LOGGER.info("Dumped %d section(s) to %s", len(written), dump_dir)
    return written


def import_data(
    rom_path: Path,
    data_dir: Path,
    schema_dir: Path,
    save_as: Path | None = None,
    mapping: str = "hirom",
    checksum: bool = False,
) -> Path:
    """Parse the edited files in ``data_dir`` and encode them onto the image."""

    schema = load_schema_dir(schema_dir)
    game_data = schema.parse(read_dir(data_dir))
    new_rom = schema.encode(game_data, open_rom(rom_path, mapping))
    return _save(new_rom, save_as or rom_path, checksum)


def test(rom_path: Path, schema_dir: Path, mapping: str = "hirom") -> None:
    """Check that decode, format, parse, encode and decode again is lossless."""

    schema = load_schema_dir(schema_dir)
    rom = open_rom(rom_path, mapping)
    formatted = schema.format(schema.decode(rom))
    new_rom = schema.encode(schema.parse(formatted), rom)

    fresh = load_schema_dir(schema_dir)
    compare_formatted(formatted, fresh.format(fresh.decode(new_rom)))
    LOGGER.info("Schema passed")


test.__test__ = False  # type: ignore[attr-defined]


def optimize(
    rom_path: Path,
    schema_dir: Path,
    save_as: Path | None = None,
    mapping: str = "hirom",
    checksum: bool = False,
) -> Path:
    """Rewrite the image from optimized data after checking it round trips."""

    schema = load_schema_dir(schema_dir)
    rom = open_rom(rom_path, mapping)
    optimized = schema.optimize(schema.decode(rom))

    formatted = schema.format(optimized)
    new_rom = schema.encode(schema.parse(formatted), rom)

    LOGGER.info("Testing optimized data after encoding")
    compare_formatted(formatted, schema.format(schema.decode(new_rom)))
    return _save(new_rom, save_as or rom_path, checksum)


__all__ = [
    "compare_formatted",
    "dump",
    "import_data",
    "load_schema_dir",
    "optimize",
    "read_dir",
    "test",
]
