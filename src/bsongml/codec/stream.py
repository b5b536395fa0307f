"""Byte sink and byte source used by the encoder and decoder.

These two classes are the only places where buffer problems surface as
exceptions. The encoder and decoder catch :class:`SinkFullError` and
:class:`SourceExhaustedError` at the point of the read/write and turn them
into :class:`~bsongml.codec.errors.CodecError` values.
"""

from __future__ import annotations

import struct
from typing import Optional, Union

from .common import F64_STRUCT, I32_STRUCT, U16_STRUCT, U32_STRUCT, U64_STRUCT, U8_STRUCT


class SinkFullError(OverflowError):
    """Raised when a bounded sink cannot accept more bytes."""


class SourceExhaustedError(EOFError):
    """Raised when the source ends before a value is complete."""


class ByteSink:
    """Growable output buffer with an optional hard capacity."""

    def __init__(self, capacity: Optional[int] = None) -> None:
        if capacity is not None and capacity < 0:
            raise ValueError("capacity must be non-negative")
        self._buffer = bytearray()
        self._capacity = capacity

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def write(self, data: Union[bytes, bytearray, memoryview]) -> None:
        if self._capacity is not None and len(self._buffer) + len(data) > self._capacity:
            raise SinkFullError(
                f"sink capacity {self._capacity} exceeded by {len(self._buffer) + len(data) - self._capacity} bytes"
            )
        self._buffer += data

    def write_struct(self, fmt: struct.Struct, *values) -> None:
        self.write(fmt.pack(*values))

    def write_u8(self, value: int) -> None:
        self.write_struct(U8_STRUCT, value)

    def write_u16(self, value: int) -> None:
        self.write_struct(U16_STRUCT, value)

    def write_u32(self, value: int) -> None:
        self.write_struct(U32_STRUCT, value)

    def write_i32(self, value: int) -> None:
        self.write_struct(I32_STRUCT, value)

    def write_u64(self, value: int) -> None:
        self.write_struct(U64_STRUCT, value)

    def write_f64(self, value: float) -> None:
        self.write_struct(F64_STRUCT, value)

    def write_bool(self, value: bool) -> None:
        self.write_u8(1 if value else 0)

    def write_string(self, value: str) -> None:
        payload = value.encode("utf-8")
        self.write(U32_STRUCT.pack(len(payload)) + payload)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class ByteSource:
    """Sequential reader over an immutable byte buffer."""

    def __init__(self, data: Union[bytes, bytearray, memoryview], offset: int = 0) -> None:
        self._view = memoryview(bytes(data))
        self._offset = offset

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def read(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise SourceExhaustedError(
                f"needed {size} bytes at offset {self._offset}, {self.remaining} available"
            )
        start = self._offset
        self._offset += size
        return self._view[start : self._offset].tobytes()

    def read_struct(self, fmt: struct.Struct):
        return fmt.unpack(self.read(fmt.size))[0]

    def read_u8(self) -> int:
        return self.read_struct(U8_STRUCT)

    def read_u16(self) -> int:
        return self.read_struct(U16_STRUCT)

    def read_u32(self) -> int:
        return self.read_struct(U32_STRUCT)

    def read_i32(self) -> int:
        return self.read_struct(I32_STRUCT)

    def read_u64(self) -> int:
        return self.read_struct(U64_STRUCT)

    def read_f64(self) -> float:
        return self.read_struct(F64_STRUCT)

    def read_bool(self) -> bool:
        return self.read_u8() != 0

    def read_string(self) -> str:
        length = self.read_u32()
        return self.read(length).decode("utf-8")


__all__ = ["ByteSink", "ByteSource", "SinkFullError", "SourceExhaustedError"]
