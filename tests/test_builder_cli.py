from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from rombuilder import builder, cli
from rombuilder.checksum import verify_checksum
from rombuilder.errors import SchemaDefinitionError, ValidationError
from rombuilder.rom import HiRom

STATS_SCHEMA = """
from rombuilder.codecs import Field, List, Reader, Struct, UInt
from rombuilder.formats import Sheet

SCHEMA = Sheet(
    Reader(0xC00000, List(2, Struct([Field("hp", UInt()), Field("mp", UInt())])))
)
"""

TITLE_SCHEMA = """
from rombuilder.codecs import Reader, Text
from rombuilder.formats import Json

SCHEMA = Json(Reader(0xC00010, Text(4, {0x00: " ", 0x01: "A", 0x02: "B"}, pad=" ")))
"""

LOSSY_SCHEMA = """
from rombuilder.codecs import Enum, Reader

SCHEMA = Reader(0xC00000, Enum(["zero"], fallback=(0, "?")))
"""


def make_project(tmp_path: Path, size: int = 0x100, **schemas: str) -> Path:
    schema_dir = tmp_path / "schema"
    schema_dir.mkdir()
    for name, source in (schemas or {"stats": STATS_SCHEMA, "title": TITLE_SCHEMA}).items():
        (schema_dir / f"{name}.py").write_text(textwrap.dedent(source), encoding="utf-8")

    image = bytearray(size)
    image[0:4] = bytes([10, 20, 30, 40])
    image[0x10:0x12] = bytes([1, 2])
    rom_path = tmp_path / "game.sfc"
    rom_path.write_bytes(bytes(image))

    config_path = tmp_path / "rombuilder.toml"
    config_path.write_text('[rombuilder]\nrom = "game.sfc"\n', encoding="utf-8")
    return config_path


def test_read_dir_maps_file_stems_to_text(tmp_path: Path) -> None:
    (tmp_path / "items.tsv").write_text("a\n1\n", encoding="utf-8")
    (tmp_path / "names.v2.json").write_text("[]", encoding="utf-8")
    (tmp_path / "nested").mkdir()

    assert builder.read_dir(tmp_path) == {"items": "a\n1\n", "names": "[]"}
    with pytest.raises(FileNotFoundError):
        builder.read_dir(tmp_path / "missing")


def test_load_schema_dir_requires_schema_attribute(tmp_path: Path) -> None:
    make_project(tmp_path, broken="VALUE = 1\n")
    with pytest.raises(SchemaDefinitionError, match="must define SCHEMA"):
        builder.load_schema_dir(tmp_path / "schema")


def test_load_schema_dir_skips_private_modules(tmp_path: Path) -> None:
    make_project(tmp_path, _helpers="VALUE = 1\n", stats=STATS_SCHEMA)
    schema = builder.load_schema_dir(tmp_path / "schema")
    assert list(schema.sections) == ["stats"]


def test_load_schema_dir_applies_migration(tmp_path: Path) -> None:
    make_project(tmp_path, stats=STATS_SCHEMA)
    schema = builder.load_schema_dir(tmp_path / "schema", migration={"stats": lambda node: node.type})
    assert type(schema.sections["stats"]).__name__ == "Reader"


def test_dump_writes_one_file_per_section(tmp_path: Path) -> None:
    make_project(tmp_path)
    written = builder.dump(tmp_path / "game.sfc", tmp_path / "dump", tmp_path / "schema")

    assert sorted(path.name for path in written.values()) == ["stats.tsv", "title.json"]
    assert (tmp_path / "dump" / "stats.tsv").read_text(encoding="utf-8") == (
        "hp\tmp\n0xa\t0x14\n0x1e\t0x28\n"
    )
    assert json.loads((tmp_path / "dump" / "title.json").read_text(encoding="utf-8")) == "AB"


def test_import_encodes_edited_files(tmp_path: Path) -> None:
    make_project(tmp_path)
    builder.dump(tmp_path / "game.sfc", tmp_path / "data", tmp_path / "schema")
    stats = tmp_path / "data" / "stats.tsv"
    stats.write_text(stats.read_text(encoding="utf-8").replace("0xa\t", "0x63\t"), encoding="utf-8")
    (tmp_path / "data" / "title.json").write_text('"BA"', encoding="utf-8")

    output = builder.import_data(
        tmp_path / "game.sfc",
        tmp_path / "data",
        tmp_path / "schema",
        save_as=tmp_path / "patched.sfc",
    )

    patched = output.read_bytes()
    assert patched[0:4] == bytes([0x63, 20, 30, 40])
    assert patched[0x10:0x14] == bytes([2, 1, 0, 0])
    assert (tmp_path / "game.sfc").read_bytes()[0] == 10


def test_round_trip_check_passes_for_lossless_schema(tmp_path: Path) -> None:
    make_project(tmp_path)
    builder.test(tmp_path / "game.sfc", tmp_path / "schema")


def test_round_trip_check_names_lossy_section(tmp_path: Path) -> None:
    make_project(tmp_path, lossy=LOSSY_SCHEMA)
    with pytest.raises(ValidationError, match="round trip changed section 'lossy'"):
        builder.test(tmp_path / "game.sfc", tmp_path / "schema")


def test_optimize_rewrites_image_with_checksum(tmp_path: Path) -> None:
    make_project(tmp_path, size=0x300000)
    output = builder.optimize(
        tmp_path / "game.sfc",
        tmp_path / "schema",
        save_as=tmp_path / "optimized.sfc",
        checksum=True,
    )

    rebuilt = HiRom(output.read_bytes())
    assert rebuilt.buffer[0:4] == bytes([10, 20, 30, 40])
    assert verify_checksum(rebuilt)


def test_cli_dump_uses_configured_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    make_project(tmp_path)
    monkeypatch.chdir(tmp_path)

    assert cli.main(["--log-level", "DEBUG", "dump"]) == 0
    assert (tmp_path / "dump" / "stats.tsv").exists()


def test_cli_import_reports_errors_without_writing(tmp_path: Path) -> None:
    config_path = make_project(tmp_path)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "stats.tsv").write_text("hp\tmp\n0x100\t0x1\n0x1\t0x1\n", encoding="utf-8")
    (data_dir / "title.json").write_text('"AB"', encoding="utf-8")
    target = tmp_path / "out.sfc"

    with pytest.raises(SystemExit, match=r"error: stats::\[0\]::hp::value 256"):
        cli.main(["--config", str(config_path), "import", "--save-as", str(target)])
    assert not target.exists()


def test_cli_requires_existing_config(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="configuration file not found"):
        cli.main(["--config", str(tmp_path / "absent.toml"), "test"])


def test_cli_run_dispatches_each_action(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = make_project(tmp_path)
    calls: list[str] = []
    for name in ("dump", "import_data", "test", "optimize"):
        monkeypatch.setattr(builder, name, lambda *args, _name=name, **kwargs: calls.append(_name))

    for action in ("dump", "import", "test", "optimize"):
        assert cli.main(["--config", str(config_path), action]) == 0

    assert calls == ["dump", "import_data", "test", "optimize"]
