"""Text adapters turning formatted value trees into editable files.

Sheets are tab separated. The header row holds field paths joined by ``:``;
a ``[]`` suffix marks columns of comma separated lists and a ``{}`` suffix
marks columns carrying JSON. Cells use backslash escapes (``\\\\``, ``\\t``,
``\\n``, ``\\r``, ``\\,``, ``\\-`` and ``\\e`` for the empty string); ``-``
is ``None`` and an empty cell means the record has no such key.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import yaml

from .codecs.base import Codec, Pass, Wrapped
from .errors import ParseFormatError
from .values import Value

PATH_SEPARATOR = ":"
COLUMN_SEPARATOR = "\t"
LIST_SEPARATOR = ","
NULL = "-"
EMPTY = "\\e"
LIST_SUFFIX = "[]"
JSON_SUFFIX = "{}"

_SCALAR = "scalar"
_LIST = "list"
_JSON = "json"

_ESCAPES = {"\\": "\\", "t": "\t", "n": "\n", "r": "\r", ",": ",", "-": "-", "e": ""}
_MISSING = object()


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (int, float, str))


def _kind(value: Any) -> str:
    if _is_scalar(value):
        return _SCALAR
    if isinstance(value, list) and all(item is not None and _is_scalar(item) for item in value):
        if value == [""]:
            return _JSON
        return _LIST
    return _JSON


def _flatten(record: Any) -> Dict[str, Any]:
    if not isinstance(record, Mapping):
        raise ParseFormatError(f"sheet rows must be mappings, found {type(record).__name__}")
    flat: Dict[str, Any] = {}

    def visit(node: Mapping[str, Any], prefix: str) -> None:
        for key, value in node.items():
            key = str(key)
            if PATH_SEPARATOR in key:
                raise ParseFormatError(f"field name {key!r} contains {PATH_SEPARATOR!r}")
            path = prefix + key
            if isinstance(value, Mapping) and value:
                visit(value, path + PATH_SEPARATOR)
            else:
                flat[path] = value

    visit(record, "")
    return flat


def _unflatten(flat: Mapping[str, Any]) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for path, value in flat.items():
        *parents, leaf = path.split(PATH_SEPARATOR)
        node = record
        for parent in parents:
            node = node.setdefault(parent, {})
        node[leaf] = value
    return record


def _escape(text: str, in_list: bool = False) -> str:
    if text == "":
        return EMPTY
    escaped = (
        text.replace("\\", "\\\\")
        .replace("\t", "\\t")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    if in_list:
        escaped = escaped.replace(LIST_SEPARATOR, "\\" + LIST_SEPARATOR)
    if escaped == NULL:
        return "\\" + NULL
    return escaped


def _unescape(cell: str) -> str:
    pieces: List[str] = []
    chars = iter(cell)
    for char in chars:
        if char != "\\":
            pieces.append(char)
            continue
        code = next(chars, None)
        if code not in _ESCAPES:
            raise ParseFormatError(f"bad escape sequence in cell {cell!r}")
        pieces.append(_ESCAPES[code])
    return "".join(pieces)


def _split_items(cell: str) -> Iterator[str]:
    current: List[str] = []
    chars = iter(cell)
    for char in chars:
        if char == "\\":
            current.append(char)
            current.append(next(chars, ""))
        elif char == LIST_SEPARATOR:
            yield "".join(current)
            current = []
        else:
            current.append(char)
    yield "".join(current)


def _write_scalar(value: Any, in_list: bool = False) -> str:
    if value is None:
        return NULL
    if isinstance(value, str):
        return _escape(value, in_list)
    return str(value)


def _read_scalar(cell: str) -> Any:
    return None if cell == NULL else _unescape(cell)


def _write_cell(value: Any, kind: str) -> str:
    if value is _MISSING:
        return ""
    if kind == _JSON:
        return json.dumps(value, ensure_ascii=False)
    if kind == _LIST and value is not None:
        if not value:
            return EMPTY
        return LIST_SEPARATOR.join(_write_scalar(item, in_list=True) for item in value)
    return _write_scalar(value)


def _read_cell(cell: str, kind: str) -> Any:
    if kind == _JSON:
        try:
            return json.loads(cell)
        except json.JSONDecodeError as exc:
            raise ParseFormatError(f"bad JSON cell {cell!r}: {exc}") from exc
    if kind == _LIST and cell != NULL:
        if cell == EMPTY:
            return []
        return [_read_scalar(item) for item in _split_items(cell)]
    return _read_scalar(cell)


def _column_kinds(rows: List[Dict[str, Any]]) -> Dict[str, str]:
    seen: Dict[str, set] = {}
    for row in rows:
        for path, value in row.items():
            kinds = seen.setdefault(path, set())
            if value is not None:
                kinds.add(_kind(value))
    return {
        path: (kinds.pop() if len(kinds) == 1 else _SCALAR if not kinds else _JSON)
        for path, kinds in seen.items()
    }


def _split_header(label: str) -> Tuple[str, str]:
    if label.endswith(LIST_SUFFIX):
        return label[: -len(LIST_SUFFIX)], _LIST
    if label.endswith(JSON_SUFFIX):
        return label[: -len(JSON_SUFFIX)], _JSON
    return label, _SCALAR


def write_sheet(records: Any) -> str:
    """Render a list of records as a tab separated sheet."""

    if not isinstance(records, list):
        raise ParseFormatError("sheets hold a list of records")
    if not records:
        return ""
    rows = [_flatten(record) for record in records]
    kinds = _column_kinds(rows)
    columns = list(kinds)
    suffixes = {_SCALAR: "", _LIST: LIST_SUFFIX, _JSON: JSON_SUFFIX}
    lines = [COLUMN_SEPARATOR.join(column + suffixes[kinds[column]] for column in columns)]
    for row in rows:
        lines.append(
            COLUMN_SEPARATOR.join(
                _write_cell(row.get(column, _MISSING), kinds[column]) for column in columns
            )
        )
    return "\n".join(lines) + "\n"


def read_sheet(text: str) -> List[Dict[str, Any]]:
    """Read records written by :func:`write_sheet`."""

    if not isinstance(text, str):
        raise ParseFormatError("sheet text must be a string")
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    if not lines:
        return []
    header = [_split_header(label) for label in lines[0].split(COLUMN_SEPARATOR)]
    records = []
    for number, line in enumerate(lines[1:], start=2):
        cells = line.split(COLUMN_SEPARATOR)
        if len(cells) != len(header):
            raise ParseFormatError(
                f"line {number} has {len(cells)} cells but the header has {len(header)}"
            )
        flat = {
            path: _read_cell(cell, kind)
            for (path, kind), cell in zip(header, cells)
            if cell != ""
        }
        records.append(_unflatten(flat))
    return records


class Sheet(Wrapped):
    """Tab separated sheet of the records formatted by ``type``."""

    extension = "tsv"

    def parse(self, external: Any, ctx: Pass) -> Value:
        return self.type.parse(read_sheet(external), ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return write_sheet(self.type.format(value, ctx))


class Json(Wrapped):
    """JSON document of the tree formatted by ``type``."""

    extension = "json"

    def __init__(self, type: Codec, indent: int | None = 4):
        super().__init__(type)
        self.indent = indent

    def parse(self, external: Any, ctx: Pass) -> Value:
        try:
            tree = json.loads(external)
        except json.JSONDecodeError as exc:
            raise ParseFormatError(f"invalid JSON: {exc}") from exc
        return self.type.parse(tree, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return json.dumps(self.type.format(value, ctx), indent=self.indent, ensure_ascii=False) + "\n"


class Yaml(Wrapped):
    """YAML document of the tree formatted by ``type``."""

    extension = "yaml"

    def parse(self, external: Any, ctx: Pass) -> Value:
        try:
            tree = yaml.safe_load(external)
        except yaml.YAMLError as exc:
            raise ParseFormatError(f"invalid YAML: {exc}") from exc
        return self.type.parse(tree, ctx)

    def format(self, value: Value, ctx: Pass) -> Any:
        return yaml.safe_dump(
            self.type.format(value, ctx),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )


__all__ = ["Json", "Sheet", "Yaml", "read_sheet", "write_sheet"]
