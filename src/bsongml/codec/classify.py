"""Type classification for values, records and sequences."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List, Sequence, Tuple

import numpy as np

from .common import (
    INT32_MAX,
    INT32_MIN,
    NUMERIC_TAGS,
    FieldSignature,
    Int64,
    Options,
    ScalarTag,
    SequenceCategory,
)

_SEQUENCE_TYPES = (list, tuple)


def classify_scalar(value: Any, flags: Options = Options.NONE) -> ScalarTag:
    """Map ``value`` onto the closed set of node tags."""

    if isinstance(value, (bool, np.bool_)):
        return ScalarTag.BOOL
    if isinstance(value, (int, np.integer)):
        if flags & Options.SUPPORT_U64 and (
            isinstance(value, Int64) or not INT32_MIN <= int(value) <= INT32_MAX
        ):
            return ScalarTag.INT64
        return ScalarTag.INT32
    if isinstance(value, (float, np.floating)):
        # No range check: large integral floats wrap when written as int32.
        if flags & Options.SUPPORT_REALINT and float(value).is_integer():
            return ScalarTag.INT32
        return ScalarTag.FLOAT64
    if isinstance(value, str):
        return ScalarTag.STRING
    if isinstance(value, Mapping):
        return ScalarTag.RECORD
    if isinstance(value, _SEQUENCE_TYPES):
        return ScalarTag.SEQUENCE
    if isinstance(value, np.ndarray) and value.ndim == 1:
        return ScalarTag.SEQUENCE
    return ScalarTag.UNSUPPORTED


def serializable_fields(
    record: Mapping, flags: Options = Options.NONE
) -> List[Tuple[Any, Any, ScalarTag]]:
    """Return ``(name, value, tag)`` for every field that can be written."""

    fields = []
    for name, value in record.items():
        tag = classify_scalar(value, flags)
        if tag is ScalarTag.UNSUPPORTED:
            continue
        fields.append((name, value, tag))
    return fields


def serializable_items(seq: Sequence, flags: Options = Options.NONE) -> List[Tuple[Any, ScalarTag]]:
    """Return ``(value, tag)`` for every element that can be written."""

    if isinstance(seq, np.ndarray):
        seq = seq.tolist()
    items = []
    for value in seq:
        tag = classify_scalar(value, flags)
        if tag is not ScalarTag.UNSUPPORTED:
            items.append((value, tag))
    return items


def signature_of(record: Mapping, flags: Options = Options.NONE) -> FieldSignature:
    return tuple((name, tag) for name, _, tag in serializable_fields(record, flags))


def signatures_equal(a: FieldSignature, b: FieldSignature) -> bool:
    """Order sensitive comparison of field names; tags are ignored."""

    if len(a) != len(b):
        return False
    return all(name_a == name_b for (name_a, _), (name_b, _) in zip(a, b))


def _tag_group(tag: ScalarTag) -> ScalarTag:
    return ScalarTag.FLOAT64 if tag in NUMERIC_TAGS else tag


def categorize_items(
    items: Sequence[Tuple[Any, ScalarTag]],
    flags: Options = Options.NONE,
    force_hetero: bool = False,
) -> SequenceCategory:
    """Categorize an already filtered list of ``(value, tag)`` pairs."""

    if force_hetero or flags & Options.ASSUME_HETERO:
        return SequenceCategory.MIXED
    if not items:
        return SequenceCategory.EMPTY

    first_value, first_tag = items[0]
    baseline = _tag_group(first_tag)
    first_signature = signature_of(first_value, flags) if first_tag is ScalarTag.RECORD else None
    uniform_records = True
    for value, tag in items[1:]:
        if _tag_group(tag) is not baseline:
            return SequenceCategory.MIXED
        if uniform_records and first_signature is not None:
            if not signatures_equal(first_signature, signature_of(value, flags)):
                uniform_records = False

    if baseline is ScalarTag.FLOAT64:
        return SequenceCategory.NUMERIC_POD
    if baseline is ScalarTag.STRING:
        return SequenceCategory.STRING_ARR
    if baseline is ScalarTag.BOOL:
        return SequenceCategory.BOOL_ARR
    if baseline is ScalarTag.RECORD:
        # Field-less records are written as full nodes so every element costs bytes.
        if uniform_records and first_signature:
            return SequenceCategory.MONO_RECORD
        return SequenceCategory.HETERO_RECORD
    return SequenceCategory.MIXED


def categorize_sequence(
    seq: Sequence, flags: Options = Options.NONE, force_hetero: bool = False
) -> SequenceCategory:
    return categorize_items(serializable_items(seq, flags), flags, force_hetero)


def numeric_pod_tag(items: Sequence[Tuple[Any, ScalarTag]]) -> ScalarTag:
    """Declared element tag of a numeric pod: the first element's tag."""

    return items[0][1]


__all__ = [
    "categorize_items",
    "categorize_sequence",
    "classify_scalar",
    "numeric_pod_tag",
    "serializable_fields",
    "serializable_items",
    "signature_of",
    "signatures_equal",
]
