from __future__ import annotations

import struct

import pytest

from bsongml.codec.common import Options, ScalarTag, SequenceCategory
from bsongml.codec.encoder import encode
from bsongml.codec.errors import ErrorKind
from bsongml.codec.stream import ByteSink


def _encode(value, flags: Options = Options.NONE) -> bytes:
    sink = ByteSink()
    error = encode(sink, value, flags)
    assert error is None, str(error)
    return sink.getvalue()


def _string(text: str) -> bytes:
    payload = text.encode("utf-8")
    return struct.pack("<I", len(payload)) + payload


def _nested(levels: int, leaf=1) -> object:
    value = leaf
    for _ in range(levels):
        value = {"child": value}
    return value


@pytest.mark.parametrize(
    "value, expected",
    [
        (2147483640, b"\x01" + struct.pack("<i", 2147483640)),
        (-2147483640, b"\x01" + struct.pack("<i", -2147483640)),
        (0.25, b"\x03" + struct.pack("<d", 0.25)),
        ("hé", b"\x04" + _string("hé")),
        (True, b"\x05\x01"),
        (False, b"\x05\x00"),
    ],
)
def test_scalar_layout(value, expected: bytes) -> None:
    assert _encode(value) == expected


def test_int64_is_written_unsigned() -> None:
    assert _encode(-1, Options.NONE) == b"\x01" + struct.pack("<i", -1)
    assert _encode(-(2**40), Options.SUPPORT_U64) == b"\x02" + struct.pack(
        "<Q", 2**64 - 2**40
    )


def test_large_int_wraps_to_int32_without_u64() -> None:
    assert _encode(2**40) == b"\x01" + struct.pack("<i", 0)
    assert _encode(2**31) == b"\x01" + struct.pack("<i", -(2**31))


def test_realint_writes_integral_float_as_int32() -> None:
    assert _encode(3.0, Options.SUPPORT_REALINT) == b"\x01" + struct.pack("<i", 3)


def test_record_layout_keeps_insertion_order() -> None:
    data = _encode({"b": 1, "a": "x"})

    assert data == (
        b"\x06"
        + struct.pack("<H", 2)
        + _string("b")
        + b"\x01"
        + struct.pack("<i", 1)
        + _string("a")
        + b"\x04"
        + _string("x")
    )


def test_unsupported_fields_are_dropped() -> None:
    assert _encode({"a": 1, "callback": print, "missing": None}) == _encode({"a": 1})


def test_empty_sequence_writes_category_only() -> None:
    assert _encode([]) == bytes([ScalarTag.SEQUENCE, SequenceCategory.EMPTY])


def test_numeric_pod_writes_declared_tag_once() -> None:
    data = _encode([1, 2, 3])

    assert data == (
        bytes([ScalarTag.SEQUENCE, SequenceCategory.NUMERIC_POD])
        + struct.pack("<I", 3)
        + bytes([ScalarTag.INT32])
        + struct.pack("<3i", 1, 2, 3)
    )


def test_numeric_pod_uses_first_element_kind() -> None:
    data = _encode([1.5, 2, 3])

    assert data[6] == ScalarTag.FLOAT64
    assert data[7:] == struct.pack("<3d", 1.5, 2.0, 3.0)

    truncated = _encode([1, 2.75])
    assert truncated[6] == ScalarTag.INT32
    assert truncated[7:] == struct.pack("<2i", 1, 2)


def test_string_and_bool_arrays_have_no_element_tags() -> None:
    assert _encode(["a", "bc"]) == (
        bytes([ScalarTag.SEQUENCE, SequenceCategory.STRING_ARR])
        + struct.pack("<I", 2)
        + _string("a")
        + _string("bc")
    )
    assert _encode([True, False, True]) == (
        bytes([ScalarTag.SEQUENCE, SequenceCategory.BOOL_ARR])
        + struct.pack("<I", 3)
        + b"\x01\x00\x01"
    )


def test_mono_record_writes_names_once() -> None:
    data = _encode([{"x": 1, "y": "a"}, {"x": 2, "y": "b"}])

    assert data == (
        bytes([ScalarTag.SEQUENCE, SequenceCategory.MONO_RECORD])
        + struct.pack("<I", 2)
        + struct.pack("<H", 2)
        + _string("x")
        + _string("y")
        + b"\x01"
        + struct.pack("<i", 1)
        + b"\x04"
        + _string("a")
        + b"\x01"
        + struct.pack("<i", 2)
        + b"\x04"
        + _string("b")
    )


def test_mixed_sequence_writes_full_nodes() -> None:
    data = _encode([1, "a"])

    assert data == (
        bytes([ScalarTag.SEQUENCE, SequenceCategory.MIXED])
        + struct.pack("<I", 2)
        + b"\x01"
        + struct.pack("<i", 1)
        + b"\x04"
        + _string("a")
    )


def test_assume_hetero_disables_packing() -> None:
    packed = _encode([1, 2, 3])
    hetero = _encode([1, 2, 3], Options.ASSUME_HETERO)

    assert len(packed) == 1 + 1 + 4 + 1 + 3 * 4
    assert len(hetero) == 1 + 1 + 4 + 3 * 5
    assert hetero[1] == SequenceCategory.MIXED


def test_large_numeric_sequence_has_no_per_element_tags() -> None:
    count = 65536
    data = _encode(list(range(count)))

    assert len(data) == 1 + 1 + 4 + 1 + 4 * count
    assert len(_encode(list(range(count)), Options.ASSUME_HETERO)) == 1 + 1 + 4 + 5 * count


def test_depth_bound() -> None:
    assert encode(ByteSink(), _nested(15)) is None

    error = encode(ByteSink(), _nested(17))

    assert error is not None
    assert error.kind is ErrorKind.DEPTH_EXCEEDED
    assert error.root_cause().depth == 17
    assert error.path() == ".".join(["child"] * 17)


def test_unsupported_root_fails() -> None:
    error = encode(ByteSink(), None)

    assert error is not None
    assert error.kind is ErrorKind.UNSUPPORTED_TAG


@pytest.mark.parametrize("record", [{"": 1}, {1: "x"}])
def test_invalid_field_names_fail_before_writing(record) -> None:
    sink = ByteSink()

    error = encode(sink, record)

    assert error is not None
    assert error.kind is ErrorKind.INVALID_FIELD_NAME
    assert len(sink) == 0


def test_nested_failure_reports_path() -> None:
    value = {"players": [{"name": "a", "stats": {"": 1}}, {"name": "b"}]}

    error = encode(ByteSink(), value)

    assert error is not None
    assert error.kind is ErrorKind.INVALID_FIELD_NAME
    assert error.path() == "players[0].stats"


def test_mono_record_failure_reports_index_and_field() -> None:
    value = [{"inner": _nested(16)}, {"inner": 1}]

    error = encode(ByteSink(), value)

    assert error is not None
    assert error.kind is ErrorKind.DEPTH_EXCEEDED
    assert error.path().startswith("[0].inner")


def test_sink_rejection_is_reported() -> None:
    sink = ByteSink(capacity=3)

    error = encode(sink, "hello")

    assert error is not None
    assert error.kind is ErrorKind.SINK_WRITE
    assert error.tag is ScalarTag.STRING


def test_encoder_does_not_mutate_input() -> None:
    value = {"items": [1, None, 2], "skip": None}

    _encode(value)

    assert value == {"items": [1, None, 2], "skip": None}
