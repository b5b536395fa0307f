"""Structural equality used to verify encode/decode round-trips."""

from __future__ import annotations

from typing import Any

from .classify import (
    categorize_items,
    classify_scalar,
    serializable_fields,
    serializable_items,
    signature_of,
    signatures_equal,
)
from .common import MAX_DEPTH, Options, ScalarTag


def deep_equal(a: Any, b: Any, flags: Options = Options.NONE, depth: int = 0) -> bool:
    """Return ``True`` when ``a`` and ``b`` encode to the same tree.

    Both sides are classified independently. Records must list their fields in
    the same order to compare equal, and exceeding the depth bound yields
    ``False`` rather than an error.
    """

    if depth > MAX_DEPTH:
        return False
    tag = classify_scalar(a, flags)
    if tag is not classify_scalar(b, flags):
        return False

    if tag is ScalarTag.RECORD:
        if not signatures_equal(signature_of(a, flags), signature_of(b, flags)):
            return False
        fields_a = serializable_fields(a, flags)
        fields_b = serializable_fields(b, flags)
        return all(
            deep_equal(value_a, value_b, flags, depth + 1)
            for (_, value_a, _), (_, value_b, _) in zip(fields_a, fields_b)
        )

    if tag is ScalarTag.SEQUENCE:
        items_a = serializable_items(a, flags)
        items_b = serializable_items(b, flags)
        if categorize_items(items_a, flags) is not categorize_items(items_b, flags):
            return False
        if len(items_a) != len(items_b):
            return False
        return all(
            deep_equal(value_a, value_b, flags, depth + 1)
            for (value_a, _), (value_b, _) in zip(items_a, items_b)
        )

    if tag is ScalarTag.UNSUPPORTED:
        return False
    if tag is ScalarTag.BOOL:
        return bool(a) == bool(b)
    return a == b


__all__ = ["deep_equal"]
