"""File framing, compression and persistence helpers."""

from .files import (
    OPTIONS_ENV_VAR,
    ReadHandle,
    WriteHandle,
    backup_path,
    begin_read,
    begin_write,
    finish_read,
    finish_write,
    options_from_env,
    read,
    write,
)
from .framing import MAX_DECOMPRESSED_SIZE, dumps, frame, loads, unframe

__all__ = [
    "MAX_DECOMPRESSED_SIZE",
    "OPTIONS_ENV_VAR",
    "ReadHandle",
    "WriteHandle",
    "backup_path",
    "begin_read",
    "begin_write",
    "dumps",
    "finish_read",
    "finish_write",
    "frame",
    "loads",
    "options_from_env",
    "read",
    "unframe",
    "write",
]
