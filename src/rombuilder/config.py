"""Project configuration for the builder front end."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import tomllib

from .rom import MAPPINGS

DEFAULT_CONFIG_NAME = "rombuilder.toml"


class BuilderConfigError(ValueError):
    """Raised when a builder configuration file fails validation."""


@dataclass(frozen=True)
class BuilderConfig:
    """Resolved paths and options for one ROM project."""

    rom: Path
    mapping: str = "hirom"
    schema: Path = Path("schema")
    data: Path = Path("data")
    dump: Path = Path("dump")
    checksum: bool = False


def load_builder_config(config_path: Path) -> BuilderConfig:
    """Parse and validate the builder configuration at ``config_path``."""

    try:
        with config_path.open("rb") as stream:
            raw_data = tomllib.load(stream)
    except tomllib.TOMLDecodeError as exc:
        raise BuilderConfigError(f"{config_path}: {exc}") from exc

    section = _parse_builder_section(raw_data)
    base = config_path.parent

    mapping = section.get("mapping", "hirom")
    if not isinstance(mapping, str) or mapping.lower() not in MAPPINGS:
        known = ", ".join(sorted(MAPPINGS))
        raise BuilderConfigError(f"mapping must be one of: {known}")

    checksum = section.get("checksum", False)
    if not isinstance(checksum, bool):
        raise BuilderConfigError("checksum must be true or false")
    if checksum and mapping.lower() != "hirom":
        raise BuilderConfigError("checksum is only supported for hirom images")

    return BuilderConfig(
        rom=_normalise_path(section.get("rom"), "rom", base=base),
        mapping=mapping.lower(),
        schema=_normalise_path(section.get("schema", "schema"), "schema", base=base),
        data=_normalise_path(section.get("data", "data"), "data", base=base),
        dump=_normalise_path(section.get("dump", "dump"), "dump", base=base),
        checksum=checksum,
    )


def _parse_builder_section(data: Mapping[str, Any]) -> Mapping[str, Any]:
    section = data.get("rombuilder")
    if section is None:
        raise BuilderConfigError("builder configuration requires a [rombuilder] table")
    if not isinstance(section, Mapping):
        raise BuilderConfigError("[rombuilder] section must be a mapping")
    return section


def _normalise_path(raw_path: Any, key: str, *, base: Path) -> Path:
    if raw_path is None:
        raise BuilderConfigError(f"[rombuilder] requires a {key} path")
    if not isinstance(raw_path, (str, Path)):
        raise BuilderConfigError(f"{key} path must be a string")

    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


__all__ = [
    "BuilderConfig",
    "BuilderConfigError",
    "DEFAULT_CONFIG_NAME",
    "load_builder_config",
]
