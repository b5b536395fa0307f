"""File persistence with backup rotation and a two-phase read/write API.

``begin_*`` does everything that does not touch the target file; the
``finish_*`` half performs the I/O or consumes bytes loaded elsewhere, so a
thread pool or event loop can own the blocking part.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from ..codec.common import Options
from ..codec.errors import CodecError, ErrorKind, ReadResult, WriteResult
from .framing import BytesLike, frame, unframe

logger = logging.getLogger(__name__)

OPTIONS_ENV_VAR = "BSONGML_OPTIONS"

PathLike = Union[str, "os.PathLike[str]"]


def options_from_env(
    default: Options = Options.NONE, environ: Optional[Mapping[str, str]] = None
) -> Options:
    """Read flags from ``BSONGML_OPTIONS`` (e.g. ``"compress,backup"``)."""

    env = os.environ if environ is None else environ
    value = env.get(OPTIONS_ENV_VAR)
    if value is None:
        return default
    return Options.parse(value)


def _validate_path(path: object) -> tuple[Optional[Path], Optional[CodecError]]:
    if not isinstance(path, (str, os.PathLike)):
        return None, CodecError(
            ErrorKind.INVALID_FILENAME, f"expected a path, got {type(path).__name__}"
        )
    text = os.fspath(path)
    if not text or "\x00" in text:
        return None, CodecError(ErrorKind.INVALID_FILENAME, f"invalid file name {text!r}")
    resolved = Path(text).expanduser()
    if resolved.is_dir():
        return None, CodecError(ErrorKind.INVALID_FILENAME, f"{resolved} is a directory")
    return resolved, None


def backup_path(path: Path, multi: bool = False) -> Path:
    """Return ``<name>.bak`` or the lowest unused ``<name>.bak.N``."""

    if not multi:
        return path.with_name(path.name + ".bak")
    index = 0
    while True:
        candidate = path.with_name(f"{path.name}.bak.{index}")
        if not candidate.exists():
            return candidate
        index += 1


def rotate_backup(path: Path, options: Options) -> Optional[CodecError]:
    """Copy an existing ``path`` aside when backups are enabled."""

    if not options & (Options.BACKUP | Options.MULTI_BACKUP) or not path.exists():
        return None
    target = backup_path(path, multi=bool(options & Options.MULTI_BACKUP))
    try:
        shutil.copy2(path, target)
    except OSError as exc:
        return CodecError(ErrorKind.BACKUP, f"unable to copy {path} to {target}: {exc}")
    logger.debug("Backed up %s to %s", path, target)
    return None


@dataclass
class WriteHandle:
    """Encoded payload waiting to be persisted."""

    path: Optional[Path]
    options: Options
    payload: Optional[bytes] = None
    result: WriteResult = WriteResult()

    @property
    def ok(self) -> bool:
        return self.result.ok


@dataclass
class ReadHandle:
    """Validated read request waiting for its bytes."""

    path: Optional[Path]
    options: Options
    result: ReadResult = ReadResult()

    @property
    def ok(self) -> bool:
        return self.result.ok

    def load(self) -> Optional[bytes]:
        """Blocking load of the file contents; ``None`` when it cannot be read."""

        if not self.ok or self.path is None:
            return None
        try:
            return self.path.read_bytes()
        except OSError as exc:
            logger.warning("Unable to load %s: %s", self.path, exc)
            self.result = ReadResult(error=ErrorKind.LOAD, context=CodecError(ErrorKind.LOAD, str(exc)))
            return None


def begin_write(value: Any, path: PathLike, options: Options = Options.NONE) -> WriteHandle:
    resolved, error = _validate_path(path)
    if error is not None:
        return WriteHandle(None, options, result=WriteResult(error.kind, error))
    payload, result = frame(value, options)
    return WriteHandle(resolved, options, payload=payload, result=result)


def _persist(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def finish_write(
    handle: WriteHandle, persist: Optional[Callable[[Path, bytes], None]] = None
) -> WriteResult:
    """Back up, clear and persist the payload prepared by :func:`begin_write`."""

    if not handle.ok or handle.path is None or handle.payload is None:
        logger.warning("Not writing %s: %s", handle.path, handle.result.describe())
        return handle.result
    path = handle.path

    error = rotate_backup(path, handle.options)
    if error is not None:
        handle.result = WriteResult(error.kind, error)
        return handle.result

    if handle.options & Options.CLEAR_EXISTING and path.exists():
        try:
            path.unlink()
        except OSError as exc:
            handle.result = WriteResult(
                ErrorKind.REMOVE_STALE, CodecError(ErrorKind.REMOVE_STALE, str(exc))
            )
            return handle.result

    try:
        (persist or _persist)(path, handle.payload)
    except OSError as exc:
        logger.warning("Unable to save %s: %s", path, exc)
        handle.result = WriteResult(ErrorKind.PERSIST, CodecError(ErrorKind.PERSIST, str(exc)))
        return handle.result
    logger.info("Wrote %d bytes to %s", len(handle.payload), path)
    return handle.result


def write(value: Any, path: PathLike, options: Options = Options.NONE) -> WriteResult:
    """Encode ``value`` and save it to ``path``."""

    return finish_write(begin_write(value, path, options))


def begin_read(path: PathLike, options: Options = Options.NONE) -> ReadHandle:
    resolved, error = _validate_path(path)
    if error is not None:
        return ReadHandle(None, options, ReadResult(error=error.kind, context=error))
    if not resolved.exists():
        missing = CodecError(ErrorKind.FILE_MISSING, f"{resolved} does not exist")
        return ReadHandle(resolved, options, ReadResult(error=missing.kind, context=missing))
    return ReadHandle(resolved, options)


def finish_read(handle: ReadHandle, data: Optional[BytesLike]) -> ReadResult:
    """Decode bytes loaded for ``handle``."""

    if not handle.ok:
        return handle.result
    if data is None:
        handle.result = ReadResult(
            error=ErrorKind.LOAD, context=CodecError(ErrorKind.LOAD, "no data was loaded")
        )
        return handle.result
    handle.result = unframe(data, handle.options)
    if not handle.result.ok:
        logger.warning("Unable to read %s: %s", handle.path, handle.result.describe())
    return handle.result


def read(path: PathLike, options: Options = Options.NONE) -> ReadResult:
    """Load and decode the tree stored at ``path``."""

    handle = begin_read(path, options)
    data = handle.load()
    if not handle.ok:
        return handle.result
    return finish_read(handle, data)


__all__ = [
    "OPTIONS_ENV_VAR",
    "ReadHandle",
    "WriteHandle",
    "backup_path",
    "begin_read",
    "begin_write",
    "finish_read",
    "finish_write",
    "options_from_env",
    "read",
    "rotate_backup",
    "write",
]
