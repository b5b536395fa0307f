"""Structured error values shared by the codec and the storage layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterator, Optional

from .common import ScalarTag


class ErrorKind(IntEnum):
    OK = 0
    # write side
    INVALID_FILENAME = 1
    SINK_ALLOCATION = 2
    REMOVE_STALE = 3
    ENCODE_NODE = 4
    COMPRESSION = 5
    PERSIST = 6
    BACKUP = 7
    # read side
    FILE_MISSING = 20
    LOAD = 21
    DECOMPRESSION = 22
    HEADER_MISMATCH = 23
    FOOTER_MISMATCH = 24
    DECODE_NODE = 25
    DECODE_INT32 = 26
    DECODE_INT64 = 27
    DECODE_FLOAT = 28
    DECODE_STRING = 29
    DECODE_BOOL = 30
    DECODE_RECORD = 31
    DECODE_SEQUENCE = 32
    # node level
    DEPTH_EXCEEDED = 40
    UNKNOWN_TAG = 41
    CORRUPT_STRUCT = 42
    UNSUPPORTED_TAG = 43
    INVALID_FIELD_NAME = 44
    SINK_WRITE = 45
    LENGTH_OVERFLOW = 46

    def describe(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: Dict[ErrorKind, str] = {
    ErrorKind.OK: "success",
    ErrorKind.INVALID_FILENAME: "invalid file name",
    ErrorKind.SINK_ALLOCATION: "unable to allocate output buffer",
    ErrorKind.REMOVE_STALE: "unable to remove existing file",
    ErrorKind.ENCODE_NODE: "failed to encode value",
    ErrorKind.COMPRESSION: "failed to compress buffer",
    ErrorKind.PERSIST: "failed to save file",
    ErrorKind.BACKUP: "failed to back up existing file",
    ErrorKind.FILE_MISSING: "file does not exist",
    ErrorKind.LOAD: "failed to load file",
    ErrorKind.DECOMPRESSION: "failed to decompress buffer",
    ErrorKind.HEADER_MISMATCH: "magic header mismatch",
    ErrorKind.FOOTER_MISMATCH: "magic footer mismatch",
    ErrorKind.DECODE_NODE: "failed to decode value",
    ErrorKind.DECODE_INT32: "failed to read 32-bit integer",
    ErrorKind.DECODE_INT64: "failed to read 64-bit integer",
    ErrorKind.DECODE_FLOAT: "failed to read float",
    ErrorKind.DECODE_STRING: "failed to read string",
    ErrorKind.DECODE_BOOL: "failed to read bool",
    ErrorKind.DECODE_RECORD: "failed to read record",
    ErrorKind.DECODE_SEQUENCE: "failed to read sequence",
    ErrorKind.DEPTH_EXCEEDED: "maximum nesting depth exceeded",
    ErrorKind.UNKNOWN_TAG: "unknown type tag",
    ErrorKind.CORRUPT_STRUCT: "corrupt record",
    ErrorKind.UNSUPPORTED_TAG: "unsupported value type",
    ErrorKind.INVALID_FIELD_NAME: "invalid record field name",
    ErrorKind.SINK_WRITE: "output buffer rejected write",
    ErrorKind.LENGTH_OVERFLOW: "length does not fit its count field",
}


def error_string(kind: int) -> str:
    """Return the human readable description of an error code."""

    try:
        return ErrorKind(kind).describe()
    except ValueError:
        return f"unknown error {int(kind)}"


@dataclass(frozen=True)
class CodecError:
    """One link in a chain of error contexts, outermost first."""

    kind: ErrorKind
    message: str = ""
    field: Optional[str] = None
    index: Optional[int] = None
    tag: Optional[ScalarTag] = None
    depth: int = 0
    cause: Optional["CodecError"] = None

    def wrap(
        self,
        kind: Optional[ErrorKind] = None,
        *,
        field: Optional[str] = None,
        index: Optional[int] = None,
        tag: Optional[ScalarTag] = None,
        depth: int = 0,
        message: str = "",
    ) -> "CodecError":
        """Return a parent error carrying this one as its cause."""

        return CodecError(
            kind=self.kind if kind is None else kind,
            message=message,
            field=field,
            index=index,
            tag=tag,
            depth=depth,
            cause=self,
        )

    def chain(self) -> Iterator["CodecError"]:
        error: Optional[CodecError] = self
        while error is not None:
            yield error
            error = error.cause

    def root_cause(self) -> "CodecError":
        *_, last = self.chain()
        return last

    def path(self) -> str:
        parts = []
        for error in self.chain():
            if error.field is not None:
                parts.append(f".{error.field}" if parts else error.field)
            elif error.index is not None:
                parts.append(f"[{error.index}]")
        return "".join(parts)

    def __str__(self) -> str:
        root = self.root_cause()
        text = root.message or root.kind.describe()
        location = self.path()
        if root is not self:
            text = f"{self.kind.describe()}: {text}"
        if location:
            text = f"{text} (at {location})"
        return text


@dataclass(frozen=True)
class DecodeResult:
    value: Any = None
    error: Optional[CodecError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class WriteResult:
    error: ErrorKind = ErrorKind.OK
    context: Optional[CodecError] = None

    @property
    def ok(self) -> bool:
        return self.error is ErrorKind.OK

    def describe(self) -> str:
        if self.context is None:
            return self.error.describe()
        return str(self.context)


@dataclass(frozen=True)
class ReadResult:
    data: Any = None
    error: ErrorKind = ErrorKind.OK
    context: Optional[CodecError] = None

    @property
    def ok(self) -> bool:
        return self.error is ErrorKind.OK

    def describe(self) -> str:
        if self.context is None:
            return self.error.describe()
        return str(self.context)

    def unwrap(self) -> Any:
        """Return the decoded tree or raise the matching exception."""

        if self.ok:
            return self.data
        raise error_to_exception(self.error, self.context)


class BsonGmlError(RuntimeError):
    """Raised by the convenience entry points when a codec step fails."""

    def __init__(self, kind: ErrorKind, context: Optional[CodecError] = None) -> None:
        self.kind = kind
        self.context = context
        detail = str(context) if context is not None else kind.describe()
        super().__init__(detail)


class FramingError(BsonGmlError):
    """Raised when the magic header or footer does not match."""


def error_to_exception(kind: ErrorKind, context: Optional[CodecError]) -> BsonGmlError:
    if kind in (ErrorKind.HEADER_MISMATCH, ErrorKind.FOOTER_MISMATCH):
        return FramingError(kind, context)
    return BsonGmlError(kind, context)


__all__ = [
    "BsonGmlError",
    "CodecError",
    "DecodeResult",
    "ErrorKind",
    "FramingError",
    "ReadResult",
    "WriteResult",
    "error_string",
    "error_to_exception",
]
