"""Schema driven dump and rebuild of bank-switched cartridge ROM images."""
from __future__ import annotations

from . import checksum as _checksum
from . import codecs as _codecs
from . import errors as _errors
from . import formats as _formats
from . import lookup as _lookup
from . import rom as _rom
from . import schema as _schema
from .builder import dump, import_data, load_schema_dir, optimize, read_dir

__all__: list[str] = []
for _module in (_errors, _rom, _lookup, _codecs, _formats, _schema, _checksum):
    for _name in _module.__all__:
        globals()[_name] = getattr(_module, _name)
        if _name not in __all__:
            __all__.append(_name)

# ``builder.test`` stays under its module so test collectors never pick it up.
__all__ += ["dump", "import_data", "load_schema_dir", "optimize", "read_dir"]
