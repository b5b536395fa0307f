from __future__ import annotations

import numpy as np

from bsongml.codec.common import Options
from bsongml.codec.compare import deep_equal


def _nested(levels: int, leaf=1) -> object:
    value = leaf
    for _ in range(levels):
        value = {"child": value}
    return value


def test_equal_trees() -> None:
    tree = {"a": [1, 2, {"b": "c"}], "d": True, "e": 0.5}
    copy = {"a": [1, 2, {"b": "c"}], "d": True, "e": 0.5}

    assert deep_equal(tree, copy)


def test_record_field_order_matters() -> None:
    assert not deep_equal({"x": 1, "y": 2}, {"y": 2, "x": 1})


def test_tag_mismatch_short_circuits() -> None:
    assert not deep_equal(1, "1")
    assert not deep_equal(1, 1.0)
    assert not deep_equal(True, 1)
    assert not deep_equal({"a": 1}, [1])


def test_realint_treats_integral_floats_as_ints() -> None:
    assert deep_equal(1, 1.0, Options.SUPPORT_REALINT)
    assert not deep_equal(1, 1.5, Options.SUPPORT_REALINT)


def test_sequences_compare_category_length_and_items() -> None:
    assert not deep_equal([1, 2], ["1", "2"])
    assert not deep_equal([1, 2], [1, 2, 3])
    assert not deep_equal([1, 2], [1, 3])
    assert deep_equal([1, 2], (1, 2))
    assert deep_equal([1, 2, 3], np.array([1, 2, 3]))


def test_hetero_and_mono_records_differ() -> None:
    mono = [{"a": 1}, {"a": 2}]
    hetero = [{"a": 1}, {"b": 2}]

    assert not deep_equal(mono, hetero)


def test_unsupported_members_are_ignored() -> None:
    assert deep_equal({"a": 1, "fn": print}, {"a": 1})
    assert deep_equal([1, None, 2], [1, 2])
    assert not deep_equal(None, None)


def test_depth_overflow_is_inequality() -> None:
    assert deep_equal(_nested(10), _nested(10))
    assert not deep_equal(_nested(17), _nested(17))


def test_u64_negative_values_do_not_survive_comparison() -> None:
    assert not deep_equal(-(2**40), 2**64 - 2**40, Options.SUPPORT_U64)
