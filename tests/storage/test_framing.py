from __future__ import annotations

import struct
import zlib

import pytest

from bsongml.codec.common import Options
from bsongml.codec.errors import BsonGmlError, ErrorKind, FramingError
from bsongml.storage.framing import MAX_DECOMPRESSED_SIZE, dumps, frame, loads, unframe

HEADER_BYTES = struct.pack("<I", 7) + b"BSONGML"
FOOTER_BYTES = struct.pack("<I", 10) + b"EOFBSONGML"


def test_layout_wraps_node_in_magic_markers() -> None:
    data = dumps([])

    assert data == HEADER_BYTES + b"\x07\x00" + FOOTER_BYTES


def test_dumps_loads_roundtrip() -> None:
    value = {"level": 3, "name": "forest", "spawn": [0.5, 1.5], "flags": [True]}

    assert loads(dumps(value)) == value


def test_compressed_roundtrip() -> None:
    value = {"tiles": list(range(1000))}

    data = dumps(value, Options.COMPRESS)

    assert zlib.decompress(data).startswith(HEADER_BYTES)
    assert len(data) < len(dumps(value))
    assert loads(data, Options.COMPRESS) == value


def test_compressed_data_without_flag_fails_header() -> None:
    data = dumps({"a": 1}, Options.COMPRESS)

    with pytest.raises(FramingError) as excinfo:
        loads(data)

    assert excinfo.value.kind is ErrorKind.HEADER_MISMATCH


def test_garbage_with_compress_flag_fails_decompression() -> None:
    result = unframe(b"not zlib", Options.COMPRESS)

    assert result.error is ErrorKind.DECOMPRESSION


def test_decompressed_size_is_bounded() -> None:
    data = dumps([0.0] * 4096, Options.COMPRESS)

    result = unframe(data, Options.COMPRESS, max_size=1024)

    assert result.error is ErrorKind.DECOMPRESSION
    assert "1024" in result.describe()
    assert unframe(data, Options.COMPRESS, max_size=MAX_DECOMPRESSED_SIZE).ok


def test_truncated_compressed_stream_fails_decompression() -> None:
    data = dumps({"tiles": list(range(1000))}, Options.COMPRESS)

    result = unframe(data[: len(data) // 2], Options.COMPRESS)

    assert result.error is ErrorKind.DECOMPRESSION


def test_header_mismatch() -> None:
    data = struct.pack("<I", 7) + b"JSONGML" + b"\x07\x00" + FOOTER_BYTES

    result = unframe(data)

    assert result.error is ErrorKind.HEADER_MISMATCH
    with pytest.raises(FramingError):
        loads(data)


def test_footer_mismatch() -> None:
    data = HEADER_BYTES + b"\x07\x00" + struct.pack("<I", 10) + b"EOFJSONGML"

    assert unframe(data).error is ErrorKind.FOOTER_MISMATCH
    assert unframe(HEADER_BYTES + b"\x07\x00").error is ErrorKind.FOOTER_MISMATCH


def test_trailing_bytes_after_footer_are_rejected() -> None:
    assert unframe(dumps(1) + b"\x00").error is ErrorKind.FOOTER_MISMATCH


def test_corrupt_node_reports_decode_failure() -> None:
    data = HEADER_BYTES + b"\x06" + struct.pack("<H", 1) + struct.pack("<I", 0) + b"\x05\x01" + FOOTER_BYTES

    result = unframe(data)

    assert result.error is ErrorKind.DECODE_NODE
    assert result.context is not None
    assert result.context.root_cause().kind is ErrorKind.CORRUPT_STRUCT


def test_encode_failure_is_reported() -> None:
    payload, result = frame({"": 1})

    assert payload is None
    assert result.error is ErrorKind.ENCODE_NODE
    assert result.context.root_cause().kind is ErrorKind.INVALID_FIELD_NAME

    with pytest.raises(BsonGmlError) as excinfo:
        dumps(None)
    assert excinfo.value.kind is ErrorKind.ENCODE_NODE


def test_bounded_sink_failure() -> None:
    payload, result = frame("x" * 100, capacity=32)

    assert payload is None
    assert result.error is ErrorKind.ENCODE_NODE
    assert result.context.root_cause().kind is ErrorKind.SINK_WRITE


def test_negative_capacity_is_an_allocation_failure() -> None:
    payload, result = frame(1, capacity=-1)

    assert payload is None
    assert result.error is ErrorKind.SINK_ALLOCATION
