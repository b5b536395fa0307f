"""Core codec: classification, encoding, decoding and structural comparison."""

from .classify import categorize_sequence, classify_scalar, signature_of, signatures_equal
from .common import MAX_DEPTH, Int64, Options, ScalarTag, SequenceCategory
from .compare import deep_equal
from .decoder import decode
from .encoder import encode
from .errors import (
    BsonGmlError,
    CodecError,
    DecodeResult,
    ErrorKind,
    FramingError,
    ReadResult,
    WriteResult,
    error_string,
)
from .stream import ByteSink, ByteSource

__all__ = [
    "BsonGmlError",
    "ByteSink",
    "ByteSource",
    "CodecError",
    "DecodeResult",
    "ErrorKind",
    "FramingError",
    "Int64",
    "MAX_DEPTH",
    "Options",
    "ReadResult",
    "ScalarTag",
    "SequenceCategory",
    "WriteResult",
    "categorize_sequence",
    "classify_scalar",
    "decode",
    "deep_equal",
    "encode",
    "error_string",
    "signature_of",
    "signatures_equal",
]
