"""Command line front-end for converting between JSON and bsongml files.

``encode`` turns a JSON document into a framed binary file, ``decode`` turns
one back into JSON, ``verify`` checks that a JSON document survives a
round-trip and ``inspect`` prints the shape of a stored tree. Codec flags can
be given on the command line or through ``BSONGML_OPTIONS``.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..codec.classify import categorize_sequence, classify_scalar
from ..codec.common import Options, ScalarTag
from ..codec.compare import deep_equal
from ..codec.errors import BsonGmlError
from ..storage.files import options_from_env, read, write
from ..storage.framing import dumps, loads

VERBOSE_ENV_VAR = "BSONGML_VERBOSE"

_FLAG_ARGUMENTS = (
    ("--compress", Options.COMPRESS, "zlib-compress the whole file"),
    ("--backup", Options.BACKUP, "copy an existing target to <name>.bak first"),
    ("--multi-backup", Options.MULTI_BACKUP, "use numbered <name>.bak.N backups"),
    ("--clear-existing", Options.CLEAR_EXISTING, "delete the target before writing"),
    ("--support-u64", Options.SUPPORT_U64, "store large integers with the 64-bit tag"),
    (
        "--support-realint",
        Options.SUPPORT_REALINT,
        "store integral floats as 32-bit integers (lossy)",
    ),
    ("--assume-hetero", Options.ASSUME_HETERO, "disable sequence packing optimizations"),
)


class ToolError(RuntimeError):
    """Raised for user facing failures of the command line tool."""


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    for flag, _, help_text in _FLAG_ARGUMENTS:
        parser.add_argument(flag, action="store_true", help=help_text)
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help=f"Enable INFO logging (also enabled by {VERBOSE_ENV_VAR})",
    )


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bsongml",
        description="Convert plain-data trees between JSON and the bsongml binary format",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    encode_parser = commands.add_parser("encode", help="Encode a JSON document")
    encode_parser.add_argument("source", type=Path, help="JSON input file")
    encode_parser.add_argument("target", type=Path, help="Binary output file")
    _add_common_arguments(encode_parser)

    decode_parser = commands.add_parser("decode", help="Decode a binary file to JSON")
    decode_parser.add_argument("source", type=Path, help="Binary input file")
    decode_parser.add_argument(
        "target",
        type=Path,
        nargs="?",
        default=None,
        help="JSON output file (defaults to stdout)",
    )
    decode_parser.add_argument("--indent", type=int, default=None, help="JSON indentation")
    _add_common_arguments(decode_parser)

    verify_parser = commands.add_parser(
        "verify", help="Check that a JSON document survives a round-trip"
    )
    verify_parser.add_argument("source", type=Path, help="JSON input file")
    _add_common_arguments(verify_parser)

    inspect_parser = commands.add_parser("inspect", help="Describe a binary file")
    inspect_parser.add_argument("source", type=Path, help="Binary input file")
    _add_common_arguments(inspect_parser)

    args = parser.parse_args([] if argv is None else list(argv))

    if args.verbose is None:
        env_value = os.environ.get(VERBOSE_ENV_VAR)
        args.verbose = env_value is not None and env_value.lower() not in {"", "0", "false", "no"}

    try:
        options = options_from_env()
    except ValueError as exc:
        parser.error(str(exc))
    for flag, value, _ in _FLAG_ARGUMENTS:
        if getattr(args, flag[2:].replace("-", "_")):
            options |= value
    args.options = options
    return args


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.expanduser().read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ToolError(f"{path} does not exist") from exc
    except json.JSONDecodeError as exc:
        raise ToolError(f"{path} is not valid JSON: {exc}") from exc


def _describe(value: Any, options: Options) -> str:
    tag = classify_scalar(value, options)
    if tag is ScalarTag.SEQUENCE:
        category = categorize_sequence(value, options)
        return f"{tag.name} ({category.name}, {len(value)} elements)"
    if tag is ScalarTag.RECORD:
        return f"{tag.name} ({len(value)} fields)"
    return tag.name


def _run_encode(args: argparse.Namespace) -> int:
    value = _load_json(args.source)
    result = write(value, args.target, args.options)
    if not result.ok:
        raise ToolError(f"unable to write {args.target}: {result.describe()}")
    print(f"Wrote {args.target} ({args.target.stat().st_size} bytes)")
    return 0


def _run_decode(args: argparse.Namespace) -> int:
    result = read(args.source, args.options)
    if not result.ok:
        raise ToolError(f"unable to read {args.source}: {result.describe()}")
    text = json.dumps(result.data, indent=args.indent, ensure_ascii=False)
    if args.target is None:
        print(text)
    else:
        args.target.expanduser().write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {args.target}")
    return 0


def _run_verify(args: argparse.Namespace) -> int:
    value = _load_json(args.source)
    payload = dumps(value, args.options)
    decoded = loads(payload, args.options)
    if not deep_equal(value, decoded, args.options):
        print(f"{args.source}: round-trip mismatch ({len(payload)} bytes)")
        return 1
    print(f"{args.source}: round-trip ok ({len(payload)} bytes)")
    return 0


def _run_inspect(args: argparse.Namespace) -> int:
    result = read(args.source, args.options)
    if not result.ok:
        raise ToolError(f"unable to read {args.source}: {result.describe()}")
    size = args.source.stat().st_size
    print(f"{args.source}: {size} bytes, root {_describe(result.data, args.options)}")
    return 0


_COMMANDS = {
    "encode": _run_encode,
    "decode": _run_decode,
    "verify": _run_verify,
    "inspect": _run_inspect,
}


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(list(argv) if argv is not None else sys.argv[1:])
    if args.verbose:
        logging.basicConfig(level=logging.INFO)
    try:
        return _COMMANDS[args.command](args)
    except (ToolError, BsonGmlError) as exc:
        print(f"bsongml: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
