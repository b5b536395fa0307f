"""Magic header/footer framing and whole-buffer compression."""

from __future__ import annotations

import logging
import zlib
from typing import Any, Optional, Tuple, Union

from ..codec.common import FOOTER, HEADER, Options
from ..codec.decoder import decode
from ..codec.encoder import encode
from ..codec.errors import BsonGmlError, CodecError, ErrorKind, ReadResult, WriteResult
from ..codec.stream import ByteSink, ByteSource, SinkFullError, SourceExhaustedError

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]

MAX_DECOMPRESSED_SIZE = 256 * 1024 * 1024


def _write_marker(sink: ByteSink, marker: str) -> Optional[CodecError]:
    try:
        sink.write_string(marker)
    except SinkFullError as exc:
        return CodecError(ErrorKind.SINK_WRITE, f"unable to write {marker!r}: {exc}")
    return None


def frame(
    value: Any, options: Options = Options.NONE, *, capacity: Optional[int] = None
) -> Tuple[Optional[bytes], WriteResult]:
    """Encode ``value`` between the magic markers and optionally compress it."""

    try:
        sink = ByteSink(capacity)
    except (ValueError, MemoryError) as exc:
        return None, WriteResult(
            ErrorKind.SINK_ALLOCATION, CodecError(ErrorKind.SINK_ALLOCATION, str(exc))
        )

    error = _write_marker(sink, HEADER)
    if error is None:
        error = encode(sink, value, options, 0)
    if error is None:
        error = _write_marker(sink, FOOTER)
    if error is not None:
        return None, WriteResult(ErrorKind.ENCODE_NODE, error.wrap(ErrorKind.ENCODE_NODE))

    data = sink.getvalue()
    if options & Options.COMPRESS:
        try:
            compressed = zlib.compress(data)
        except (zlib.error, MemoryError) as exc:
            return None, WriteResult(
                ErrorKind.COMPRESSION, CodecError(ErrorKind.COMPRESSION, str(exc))
            )
        logger.debug("Compressed %d bytes to %d", len(data), len(compressed))
        data = compressed
    return data, WriteResult()


def _read_marker(source: ByteSource, marker: str, kind: ErrorKind) -> Optional[CodecError]:
    try:
        found = source.read_string()
    except (SourceExhaustedError, UnicodeDecodeError) as exc:
        return CodecError(kind, f"expected {marker!r}: {exc}")
    if found != marker:
        return CodecError(kind, f"expected {marker!r}, found {found[:32]!r}")
    return None


def _decompress(data: BytesLike, max_size: int) -> Tuple[Optional[bytes], Optional[CodecError]]:
    inflater = zlib.decompressobj()
    try:
        payload = inflater.decompress(bytes(data), max_size)
    except zlib.error as exc:
        return None, CodecError(ErrorKind.DECOMPRESSION, str(exc))
    if inflater.unconsumed_tail:
        return None, CodecError(
            ErrorKind.DECOMPRESSION, f"decompressed size exceeds {max_size} bytes"
        )
    if not inflater.eof:
        return None, CodecError(ErrorKind.DECOMPRESSION, "incomplete compressed stream")
    return payload, None


def unframe(
    data: BytesLike,
    options: Options = Options.NONE,
    *,
    max_size: int = MAX_DECOMPRESSED_SIZE,
) -> ReadResult:
    """Inverse of :func:`frame`: decompress, verify markers and decode.

    ``max_size`` bounds the decompressed buffer when ``COMPRESS`` is set.
    """

    if max_size <= 0:
        raise ValueError("max_size must be positive")
    if options & Options.COMPRESS:
        data, error = _decompress(data, max_size)
        if error is not None:
            return ReadResult(error=error.kind, context=error)

    source = ByteSource(data)
    error = _read_marker(source, HEADER, ErrorKind.HEADER_MISMATCH)
    if error is not None:
        return ReadResult(error=error.kind, context=error)

    result = decode(source, options, 0)
    if result.error is not None:
        return ReadResult(
            error=ErrorKind.DECODE_NODE, context=result.error.wrap(ErrorKind.DECODE_NODE)
        )

    error = _read_marker(source, FOOTER, ErrorKind.FOOTER_MISMATCH)
    if error is None and source.remaining:
        error = CodecError(
            ErrorKind.FOOTER_MISMATCH, f"{source.remaining} trailing bytes after footer"
        )
    if error is not None:
        return ReadResult(error=error.kind, context=error)
    return ReadResult(data=result.value)


def dumps(value: Any, options: Options = Options.NONE) -> bytes:
    """Return the framed encoding of ``value`` or raise :class:`BsonGmlError`."""

    data, result = frame(value, options)
    if data is None:
        raise BsonGmlError(result.error, result.context)
    return data


def loads(data: BytesLike, options: Options = Options.NONE) -> Any:
    """Decode a framed buffer; raises :class:`FramingError` on bad markers."""

    return unframe(data, options).unwrap()


__all__ = ["MAX_DECOMPRESSED_SIZE", "dumps", "frame", "loads", "unframe"]
