"""Binary codec for plain-data trees of records, sequences and scalars."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import TYPE_CHECKING

from .codec import (
    MAX_DEPTH,
    BsonGmlError,
    CodecError,
    ErrorKind,
    FramingError,
    Int64,
    Options,
    ReadResult,
    ScalarTag,
    SequenceCategory,
    WriteResult,
    deep_equal,
    error_string,
)
from .storage import begin_read, begin_write, dumps, finish_read, finish_write, loads, read, write

__version__ = "0.1.0"

_LAZY_SUBMODULES = ("cli",)

__all__ = [
    "BsonGmlError",
    "CodecError",
    "ErrorKind",
    "FramingError",
    "Int64",
    "MAX_DEPTH",
    "Options",
    "ReadResult",
    "ScalarTag",
    "SequenceCategory",
    "WriteResult",
    "begin_read",
    "begin_write",
    "deep_equal",
    "dumps",
    "error_string",
    "finish_read",
    "finish_write",
    "loads",
    "read",
    "write",
]


def __getattr__(name: str) -> ModuleType:
    """Lazily import the command line package."""

    if name in _LAZY_SUBMODULES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:  # pragma: no cover - imported for static analyzers
    from . import cli  # noqa: F401
