"""Command line front end for dumping and rebuilding ROM images."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from . import builder
from .config import DEFAULT_CONFIG_NAME, BuilderConfig, BuilderConfigError, load_builder_config
from .errors import CodecError

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Return parsed command-line arguments for the builder CLI."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_NAME),
        help="Path to the project configuration TOML file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity for the builder.",
    )
    actions = parser.add_subparsers(dest="action", required=True)
    actions.add_parser("dump", help="Decode the image into editable files")
    for name, description in (
        ("import", "Encode the edited files onto the image"),
        ("optimize", "Deduplicate shared data and rewrite the image"),
    ):
        action = actions.add_parser(name, help=description)
        action.add_argument(
            "--save-as",
            type=Path,
            default=None,
            help="Write the new image here instead of over the configured ROM",
        )
    actions.add_parser("test", help="Check that a full round trip is lossless")
    return parser.parse_args(argv)


def run(action: str, config: BuilderConfig, save_as: Path | None = None) -> None:
    if action == "dump":
        builder.dump(config.rom, config.dump, config.schema, mapping=config.mapping)
    elif action == "import":
        builder.import_data(
            config.rom,
            config.data,
            config.schema,
            save_as=save_as,
            mapping=config.mapping,
            checksum=config.checksum,
        )
    elif action == "test":
        builder.test(config.rom, config.schema, mapping=config.mapping)
    elif action == "optimize":
        builder.optimize(
            config.rom,
            config.schema,
            save_as=save_as,
            mapping=config.mapping,
            checksum=config.checksum,
        )
    else:
        raise ValueError(f"unknown action {action!r}")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``rombuilder`` command."""

    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    config_path: Path = args.config
    if not config_path.exists():
        raise SystemExit(f"configuration file not found: {config_path}")

    try:
        config = load_builder_config(config_path)
        LOGGER.info("Running %s for %s", args.action, config.rom)
        run(args.action, config, save_as=getattr(args, "save_as", None))
    except (BuilderConfigError, CodecError, FileNotFoundError) as exc:
        raise SystemExit(f"error: {exc}") from exc
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via python -m
    raise SystemExit(main())
