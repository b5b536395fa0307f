"""Recursive, depth bounded encoder for bsongml value trees."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from .classify import (
    categorize_items,
    classify_scalar,
    numeric_pod_tag,
    serializable_fields,
    serializable_items,
    signature_of,
)
from .common import (
    MAX_DEPTH,
    NUMERIC_DTYPES,
    UINT16_MAX,
    UINT32_MAX,
    Options,
    ScalarTag,
    SequenceCategory,
    wrap_int32,
    wrap_uint64,
)
from .errors import CodecError, ErrorKind
from .stream import ByteSink, SinkFullError

logger = logging.getLogger(__name__)


def encode(
    sink: ByteSink, value: Any, flags: Options = Options.NONE, depth: int = 0
) -> Optional[CodecError]:
    """Write ``value`` as one node; return ``None`` on success."""

    if depth > MAX_DEPTH:
        return CodecError(
            ErrorKind.DEPTH_EXCEEDED,
            f"nesting deeper than {MAX_DEPTH} levels",
            depth=depth,
        )
    tag = classify_scalar(value, flags)
    if tag is ScalarTag.UNSUPPORTED:
        return CodecError(
            ErrorKind.UNSUPPORTED_TAG,
            f"cannot encode value of type {type(value).__name__}",
            depth=depth,
        )
    try:
        if tag is ScalarTag.RECORD:
            return _encode_record(sink, value, flags, depth)
        if tag is ScalarTag.SEQUENCE:
            return _encode_sequence(sink, value, flags, depth)
        sink.write_u8(tag)
        write_raw(sink, value, tag)
    except SinkFullError as exc:
        return CodecError(ErrorKind.SINK_WRITE, str(exc), tag=tag, depth=depth)
    return None


def write_raw(sink: ByteSink, value: Any, tag: ScalarTag) -> None:
    """Write a scalar body without its tag."""

    if tag is ScalarTag.INT32:
        sink.write_i32(wrap_int32(value))
    elif tag is ScalarTag.INT64:
        sink.write_u64(wrap_uint64(value))
    elif tag is ScalarTag.FLOAT64:
        sink.write_f64(float(value))
    elif tag is ScalarTag.STRING:
        sink.write_string(value)
    elif tag is ScalarTag.BOOL:
        sink.write_bool(bool(value))
    else:
        raise ValueError(f"{tag.name} is not a scalar tag")


def _check_field_names(names: Sequence[Any], depth: int) -> Optional[CodecError]:
    if len(names) > UINT16_MAX:
        return CodecError(
            ErrorKind.LENGTH_OVERFLOW,
            f"{len(names)} fields exceed the record limit of {UINT16_MAX}",
            tag=ScalarTag.RECORD,
            depth=depth,
        )
    for name in names:
        if not isinstance(name, str) or not name:
            return CodecError(
                ErrorKind.INVALID_FIELD_NAME,
                f"field names must be non-empty strings, got {name!r}",
                tag=ScalarTag.RECORD,
                depth=depth,
            )
    return None


def _encode_record(sink: ByteSink, record: Mapping, flags: Options, depth: int) -> Optional[CodecError]:
    fields = serializable_fields(record, flags)
    if len(fields) != len(record):
        logger.debug("Dropping %d unsupported record fields", len(record) - len(fields))
    error = _check_field_names([name for name, _, _ in fields], depth)
    if error is not None:
        return error

    sink.write_u8(ScalarTag.RECORD)
    sink.write_u16(len(fields))
    for name, value, _ in fields:
        sink.write_string(name)
        error = encode(sink, value, flags, depth + 1)
        if error is not None:
            return error.wrap(field=name, tag=ScalarTag.RECORD, depth=depth)
    return None


def _pack_numeric(items: List[Tuple[Any, ScalarTag]], tag: ScalarTag) -> bytes:
    if tag is ScalarTag.INT32:
        values = (wrap_int32(value) for value, _ in items)
    elif tag is ScalarTag.INT64:
        values = (wrap_uint64(value) for value, _ in items)
    else:
        values = (float(value) for value, _ in items)
    return np.fromiter(values, dtype=NUMERIC_DTYPES[tag], count=len(items)).tobytes()


def _encode_sequence(sink: ByteSink, seq: Sequence, flags: Options, depth: int) -> Optional[CodecError]:
    items = serializable_items(seq, flags)
    if len(items) != len(seq):
        logger.debug("Dropping %d unsupported sequence elements", len(seq) - len(items))
    if len(items) > UINT32_MAX:
        return CodecError(
            ErrorKind.LENGTH_OVERFLOW,
            f"{len(items)} elements exceed the sequence limit",
            tag=ScalarTag.SEQUENCE,
            depth=depth,
        )
    category = categorize_items(items, flags)

    names: List[str] = []
    if category is SequenceCategory.MONO_RECORD:
        names = [name for name, _ in signature_of(items[0][0], flags)]
        error = _check_field_names(names, depth)
        if error is not None:
            return error.wrap(index=0, tag=ScalarTag.SEQUENCE, depth=depth)

    sink.write_u8(ScalarTag.SEQUENCE)
    sink.write_u8(category)
    if category is SequenceCategory.EMPTY:
        return None
    sink.write_u32(len(items))

    if category is SequenceCategory.NUMERIC_POD:
        declared = numeric_pod_tag(items)
        sink.write_u8(declared)
        sink.write(_pack_numeric(items, declared))
    elif category is SequenceCategory.STRING_ARR:
        for value, _ in items:
            sink.write_string(value)
    elif category is SequenceCategory.BOOL_ARR:
        for value, _ in items:
            sink.write_bool(bool(value))
    elif category is SequenceCategory.MONO_RECORD:
        sink.write_u16(len(names))
        for name in names:
            sink.write_string(name)
        for index, (record, _) in enumerate(items):
            for name, value, _ in serializable_fields(record, flags):
                error = encode(sink, value, flags, depth + 1)
                if error is not None:
                    return error.wrap(field=name, tag=ScalarTag.RECORD, depth=depth + 1).wrap(
                        index=index, tag=ScalarTag.SEQUENCE, depth=depth
                    )
    else:
        for index, (value, _) in enumerate(items):
            error = encode(sink, value, flags, depth + 1)
            if error is not None:
                return error.wrap(index=index, tag=ScalarTag.SEQUENCE, depth=depth)
    return None


__all__ = ["encode", "write_raw"]
