"""Recursive decoder mirroring :mod:`bsongml.codec.encoder`."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import numpy as np

from .common import MAX_DEPTH, NUMERIC_DTYPES, NUMERIC_TAGS, Int64, Options, ScalarTag, SequenceCategory
from .errors import CodecError, DecodeResult, ErrorKind
from .stream import ByteSource, SourceExhaustedError

_SCALAR_ERRORS = {
    ScalarTag.INT32: ErrorKind.DECODE_INT32,
    ScalarTag.INT64: ErrorKind.DECODE_INT64,
    ScalarTag.FLOAT64: ErrorKind.DECODE_FLOAT,
    ScalarTag.STRING: ErrorKind.DECODE_STRING,
    ScalarTag.BOOL: ErrorKind.DECODE_BOOL,
    ScalarTag.RECORD: ErrorKind.DECODE_RECORD,
    ScalarTag.SEQUENCE: ErrorKind.DECODE_SEQUENCE,
}


def decode(source: ByteSource, flags: Options = Options.NONE, depth: int = 0) -> DecodeResult:
    """Read one node from ``source``."""

    if depth > MAX_DEPTH:
        return DecodeResult(
            error=CodecError(
                ErrorKind.DEPTH_EXCEEDED,
                f"nesting deeper than {MAX_DEPTH} levels",
                depth=depth,
            )
        )
    try:
        raw_tag = source.read_u8()
    except SourceExhaustedError as exc:
        return DecodeResult(error=CodecError(ErrorKind.DECODE_NODE, str(exc), depth=depth))
    try:
        tag = ScalarTag(raw_tag)
    except ValueError:
        tag = ScalarTag.UNSUPPORTED
    if tag is ScalarTag.UNSUPPORTED:
        return DecodeResult(
            error=CodecError(
                ErrorKind.UNKNOWN_TAG,
                f"unknown tag 0x{raw_tag:02x} at offset {source.offset - 1}",
                depth=depth,
            )
        )

    try:
        if tag is ScalarTag.RECORD:
            return _decode_record(source, flags, depth)
        if tag is ScalarTag.SEQUENCE:
            return _decode_sequence(source, flags, depth)
        return DecodeResult(value=read_raw(source, tag))
    except (SourceExhaustedError, UnicodeDecodeError) as exc:
        return DecodeResult(error=CodecError(_SCALAR_ERRORS[tag], str(exc), tag=tag, depth=depth))


def read_raw(source: ByteSource, tag: ScalarTag) -> Any:
    """Read a scalar body whose tag has already been consumed."""

    if tag is ScalarTag.INT32:
        return source.read_i32()
    if tag is ScalarTag.INT64:
        return Int64(source.read_u64())
    if tag is ScalarTag.FLOAT64:
        return source.read_f64()
    if tag is ScalarTag.STRING:
        return source.read_string()
    if tag is ScalarTag.BOOL:
        return source.read_bool()
    raise ValueError(f"{tag.name} is not a scalar tag")


def _corrupt_record(message: str, depth: int) -> DecodeResult:
    return DecodeResult(
        error=CodecError(ErrorKind.CORRUPT_STRUCT, message, tag=ScalarTag.RECORD, depth=depth)
    )


def _sequence_error(kind: ErrorKind, message: str, depth: int) -> DecodeResult:
    return DecodeResult(error=CodecError(kind, message, tag=ScalarTag.SEQUENCE, depth=depth))


def _read_field_names(source: ByteSource, depth: int) -> DecodeResult:
    """Read the shared field name list of a mono-record sequence."""

    count = source.read_u16()
    if count == 0:
        return _corrupt_record("mono-record sequence declares no fields", depth)
    names: List[str] = []
    for position in range(count):
        name = source.read_string()
        if not name or name in names:
            problem = "empty" if not name else f"duplicate {name!r}"
            return _corrupt_record(f"{problem} field name at position {position}", depth)
        names.append(name)
    return DecodeResult(value=names)


def _decode_fields(
    source: ByteSource, names: List[str], flags: Options, depth: int
) -> DecodeResult:
    record: Dict[str, Any] = {}
    for name in names:
        result = decode(source, flags, depth + 1)
        if result.error is not None:
            return DecodeResult(error=result.error.wrap(field=name, tag=ScalarTag.RECORD, depth=depth))
        record[name] = result.value
    return DecodeResult(value=record)


def _decode_record(source: ByteSource, flags: Options, depth: int) -> DecodeResult:
    count = source.read_u16()
    record: Dict[str, Any] = {}
    for position in range(count):
        name = source.read_string()
        if not name or name in record:
            problem = "empty" if not name else f"duplicate {name!r}"
            return _corrupt_record(f"{problem} field name at position {position}", depth)
        result = decode(source, flags, depth + 1)
        if result.error is not None:
            return DecodeResult(error=result.error.wrap(field=name, tag=ScalarTag.RECORD, depth=depth))
        record[name] = result.value
    return DecodeResult(value=record)


def _unpack_numeric(source: ByteSource, count: int, depth: int) -> DecodeResult:
    raw_tag = source.read_u8()
    if raw_tag not in {int(tag) for tag in NUMERIC_TAGS}:
        return _sequence_error(ErrorKind.UNKNOWN_TAG, f"tag 0x{raw_tag:02x} is not numeric", depth)
    tag = ScalarTag(raw_tag)
    dtype = np.dtype(NUMERIC_DTYPES[tag])
    payload = source.read(dtype.itemsize * count)
    values = np.frombuffer(payload, dtype=dtype, count=count).tolist()
    if tag is ScalarTag.INT64:
        values = [Int64(value) for value in values]
    return DecodeResult(value=values)


def _collect(results: Iterable[DecodeResult], depth: int) -> DecodeResult:
    items: List[Any] = []
    for index, result in enumerate(results):
        if result.error is not None:
            return DecodeResult(error=result.error.wrap(index=index, tag=ScalarTag.SEQUENCE, depth=depth))
        items.append(result.value)
    return DecodeResult(value=items)


def _decode_sequence(source: ByteSource, flags: Options, depth: int) -> DecodeResult:
    raw_category = source.read_u8()
    try:
        category = SequenceCategory(raw_category)
    except ValueError:
        return _sequence_error(
            ErrorKind.UNKNOWN_TAG, f"unknown sequence category 0x{raw_category:02x}", depth
        )
    if category is SequenceCategory.EMPTY:
        return DecodeResult(value=[])
    count = source.read_u32()
    # Every element of a non-empty category occupies at least one byte.
    if count > source.remaining:
        return _sequence_error(
            ErrorKind.DECODE_SEQUENCE,
            f"count {count} exceeds the {source.remaining} bytes left at offset {source.offset}",
            depth,
        )

    if category is SequenceCategory.NUMERIC_POD:
        return _unpack_numeric(source, count, depth)
    if category is SequenceCategory.STRING_ARR:
        return DecodeResult(value=[source.read_string() for _ in range(count)])
    if category is SequenceCategory.BOOL_ARR:
        return DecodeResult(value=[source.read_bool() for _ in range(count)])

    if category is SequenceCategory.MONO_RECORD:
        names = _read_field_names(source, depth)
        if names.error is not None:
            return names
        return _collect(
            (_decode_fields(source, names.value, flags, depth) for _ in range(count)), depth
        )
    return _collect((decode(source, flags, depth + 1) for _ in range(count)), depth)


__all__ = ["decode", "read_raw"]
