"""Shared value model and wire constants for the bsongml codec."""

from __future__ import annotations

import struct
from enum import IntEnum, IntFlag
from typing import Dict, Tuple

MAX_DEPTH = 16
HEADER = "BSONGML"
FOOTER = "EOFBSONGML"

U8_STRUCT = struct.Struct("<B")
U16_STRUCT = struct.Struct("<H")
U32_STRUCT = struct.Struct("<I")
I32_STRUCT = struct.Struct("<i")
U64_STRUCT = struct.Struct("<Q")
F64_STRUCT = struct.Struct("<d")

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1
UINT16_MAX = 0xFFFF
UINT32_MAX = 0xFFFFFFFF
UINT64_MASK = 0xFFFFFFFFFFFFFFFF


class ScalarTag(IntEnum):
    """One-byte tag written in front of every node."""

    UNSUPPORTED = 0
    INT32 = 1
    INT64 = 2
    FLOAT64 = 3
    STRING = 4
    BOOL = 5
    RECORD = 6
    SEQUENCE = 7


NUMERIC_TAGS = frozenset({ScalarTag.INT32, ScalarTag.INT64, ScalarTag.FLOAT64})


class SequenceCategory(IntEnum):
    EMPTY = 0
    NUMERIC_POD = 1
    STRING_ARR = 2
    BOOL_ARR = 3
    MONO_RECORD = 4
    HETERO_RECORD = 5
    MIXED = 6


class Options(IntFlag):
    """Recognised codec and storage flags."""

    NONE = 0
    COMPRESS = 0x01
    BACKUP = 0x02
    MULTI_BACKUP = 0x04
    CLEAR_EXISTING = 0x08
    SUPPORT_U64 = 0x10
    SUPPORT_REALINT = 0x20
    ASSUME_HETERO = 0x40

    @classmethod
    def parse(cls, text: str) -> "Options":
        """Parse a comma separated flag list such as ``"compress,backup"``."""

        result = cls.NONE
        for token in text.split(","):
            name = token.strip().replace("-", "_").upper()
            if not name:
                continue
            try:
                result |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown bsongml option: {token.strip()!r}") from None
        return result


class Int64(int):
    """Integer explicitly stored with the 64-bit tag when ``SUPPORT_U64`` is set."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Int64({int(self)})"


# Ordered (name, tag) pairs describing the serializable fields of a record.
FieldSignature = Tuple[Tuple[str, ScalarTag], ...]

NUMERIC_DTYPES: Dict[ScalarTag, str] = {
    ScalarTag.INT32: "<i4",
    ScalarTag.INT64: "<u8",
    ScalarTag.FLOAT64: "<f8",
}


def wrap_int32(value: int) -> int:
    """Reduce ``value`` to the signed 32-bit range using two's complement."""

    return ((int(value) - INT32_MIN) & UINT32_MAX) + INT32_MIN


def wrap_uint64(value: int) -> int:
    return int(value) & UINT64_MASK


__all__ = [
    "F64_STRUCT",
    "FOOTER",
    "FieldSignature",
    "HEADER",
    "I32_STRUCT",
    "INT32_MAX",
    "INT32_MIN",
    "Int64",
    "MAX_DEPTH",
    "NUMERIC_DTYPES",
    "NUMERIC_TAGS",
    "Options",
    "ScalarTag",
    "SequenceCategory",
    "U16_STRUCT",
    "U32_STRUCT",
    "U64_STRUCT",
    "U8_STRUCT",
    "UINT16_MAX",
    "UINT32_MAX",
    "UINT64_MASK",
    "wrap_int32",
    "wrap_uint64",
]
