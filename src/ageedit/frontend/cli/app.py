"""Command line front end for age-edit.

This is the only place that reads the environment. It turns flags and
AGE_EDIT_* variables into a SessionConfig, runs the session and maps the
outcome to an exit code.

Usage:
    age-edit [options] [[identities] encrypted]
"""

from __future__ import annotations

import argparse
import logging
import os
import shlex
import sys
from typing import Mapping, Optional, Sequence, Tuple

from ageedit import __version__
from ageedit.core.config import SessionConfig, default_temp_dir_prefix
from ageedit.core.exceptions import AgeEditError, MemoryLockError, SaveError, WorkspaceError
from ageedit.core.session import EditSession
from ageedit.security.memory import lock_memory
from .logging_config import configure_logging

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_USAGE = 2

CLI_MAX_ARGS = 2

ARMOR_ENV_VAR = "AGE_EDIT_ARMOR"
COMMAND_ENV_VAR = "AGE_EDIT_COMMAND"
DECODE_ENV_VAR = "AGE_EDIT_DECODE"
ENCODE_ENV_VAR = "AGE_EDIT_ENCODE"
ENCRYPTED_FILE_ENV_VAR = "AGE_EDIT_ENCRYPTED_FILE"
FORCE_ENV_VAR = "AGE_EDIT_FORCE"
IDENTITIES_FILE_ENV_VAR = "AGE_EDIT_IDENTITIES_FILE"
LOCK_ENV_VAR = "AGE_EDIT_LOCK"
MEMLOCK_ENV_VAR = "AGE_EDIT_MEMLOCK"
READ_ONLY_ENV_VAR = "AGE_EDIT_READ_ONLY"
TEMP_DIR_PREFIX_ENV_VAR = "AGE_EDIT_TEMP_DIR"
WARN_ENV_VAR = "AGE_EDIT_WARN"

EDITOR_ENV_VARS = ("AGE_EDIT_EDITOR", "VISUAL", "EDITOR")


class UsageError(Exception):
    # bad flags, arguments or environment values; exits with EXIT_BAD_USAGE
    pass


def parse_bool(value: str, fallback: bool) -> bool:
    """Accept 1/true/yes and 0/false/no; empty means ``fallback``."""
    if value == "":
        return fallback
    lowered = value.lower()
    if lowered in ("1", "true", "yes"):
        return True
    if lowered in ("0", "false", "no"):
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def env_bool(environ: Mapping[str, str], name: str, fallback: bool) -> bool:
    value = environ.get(name, "")
    try:
        return parse_bool(value, fallback)
    except ValueError:
        raise UsageError(f"invalid boolean value for {name}: {value!r}")


def env_int(environ: Mapping[str, str], name: str, fallback: int = 0) -> int:
    value = environ.get(name, "")
    if value == "":
        return fallback
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"invalid integer value for {name}: {value!r}")


def default_editor(environ: Mapping[str, str]) -> str:
    for name in EDITOR_ENV_VARS:
        value = environ.get(name, "")
        if value:
            return value
    return "vi"


def split_command(command: str, what: str) -> Tuple[str, Tuple[str, ...]]:
    try:
        parts = shlex.split(command)
    except ValueError as e:
        raise UsageError(f"failed to split {what}: {e}")
    if not parts:
        raise UsageError(f"empty {what}")
    return parts[0], tuple(parts[1:])


def _build_arg_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="age-edit",
        usage="%(prog)s [options] [[identities] encrypted]",
        description="Edit an age-encrypted file with any editor.",
        epilog=(
            "An identities file and an encrypted file, given in the arguments or the "
            "environment variables, are required. Default values are read from "
            "environment variables with a built-in fallback. Boolean environment "
            "variables accept 0, 1, true, false, yes, no."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="[identities] encrypted",
        help=f"identities file path ({IDENTITIES_FILE_ENV_VAR}) and encrypted file path ({ENCRYPTED_FILE_ENV_VAR})",
    )
    parser.add_argument(
        "-a",
        "--armor",
        action="store_true",
        default=env_bool(environ, ARMOR_ENV_VAR, False),
        help=f"write an armored age file ({ARMOR_ENV_VAR})",
    )
    parser.add_argument(
        "-c",
        "--command",
        default=environ.get(COMMAND_ENV_VAR, ""),
        help=f"editor command (overrides the editor executable, {COMMAND_ENV_VAR})",
    )
    parser.add_argument(
        "--decode",
        default=environ.get(DECODE_ENV_VAR, ""),
        help=f"filter command after decryption, like a decompressor ({DECODE_ENV_VAR})",
    )
    parser.add_argument(
        "-e",
        "--editor",
        default=default_editor(environ),
        help=f"editor executable ({', '.join(EDITOR_ENV_VARS)}, default: %(default)s)",
    )
    parser.add_argument(
        "--encode",
        default=environ.get(ENCODE_ENV_VAR, ""),
        help=f"filter command before encryption, like a compressor ({ENCODE_ENV_VAR})",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        default=env_bool(environ, FORCE_ENV_VAR, False),
        help=f"re-encrypt the file even if it has not changed ({FORCE_ENV_VAR})",
    )
    parser.add_argument(
        "-L",
        "--no-lock",
        action="store_true",
        default=not env_bool(environ, LOCK_ENV_VAR, True),
        help=f"do not lock encrypted file (negated {LOCK_ENV_VAR})",
    )
    parser.add_argument(
        "-M",
        "--no-memlock",
        action="store_true",
        default=not env_bool(environ, MEMLOCK_ENV_VAR, True),
        help=f"disable mlockall(2) that prevents swapping (negated {MEMLOCK_ENV_VAR})",
    )
    parser.add_argument(
        "-r",
        "--read-only",
        action="store_true",
        default=env_bool(environ, READ_ONLY_ENV_VAR, False),
        help=f"make the temporary file read-only and discard all changes ({READ_ONLY_ENV_VAR})",
    )
    parser.add_argument(
        "-t",
        "--temp-dir",
        default=environ.get(TEMP_DIR_PREFIX_ENV_VAR) or default_temp_dir_prefix(),
        help=f"temporary directory prefix ({TEMP_DIR_PREFIX_ENV_VAR}, default: %(default)s)",
    )
    parser.add_argument(
        "-w",
        "--warn",
        type=int,
        default=env_int(environ, WARN_ENV_VAR),
        help=f"warn if the editor exits after less than a number of seconds (0 to disable, {WARN_ENV_VAR})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="log what the session is doing",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=__version__,
        help="report the program version and exit",
    )
    return parser


def build_config(args: argparse.Namespace, environ: Mapping[str, str]) -> SessionConfig:
    """Resolve parsed arguments and environment defaults into a SessionConfig."""
    if len(args.paths) > CLI_MAX_ARGS:
        raise UsageError("too many arguments")

    identities_path = environ.get(IDENTITIES_FILE_ENV_VAR, "")
    encrypted_path = environ.get(ENCRYPTED_FILE_ENV_VAR, "")
    if len(args.paths) == 1:
        encrypted_path = args.paths[0]
    elif len(args.paths) == 2:
        identities_path, encrypted_path = args.paths

    if not encrypted_path or not identities_path:
        raise UsageError("need an identities file and an encrypted file")

    command, command_args = args.editor, ()
    if args.command:
        command, command_args = split_command(args.command, "command")

    decode_command, decode_args = None, ()
    if args.decode:
        decode_command, decode_args = split_command(args.decode, "decode command")

    encode_command, encode_args = None, ()
    if args.encode:
        encode_command, encode_args = split_command(args.encode, "encode command")

    return SessionConfig(
        identities_path=identities_path,
        encrypted_path=encrypted_path,
        temp_dir_prefix=args.temp_dir,
        armor=args.armor,
        lock=not args.no_lock,
        read_only=args.read_only,
        force=args.force,
        command=command,
        args=command_args,
        decode_command=decode_command,
        decode_args=decode_args,
        encode_command=encode_command,
        encode_args=encode_args,
        warn_seconds=args.warn,
    )


def _recover(err: SaveError) -> None:
    # Give the user a chance to copy the plaintext before it is deleted.
    print(f'Press <Enter> to delete temporary file "{err.temp_file}"', file=sys.stderr, flush=True)
    try:
        sys.stdin.readline()
    finally:
        if err.workspace is not None:
            try:
                err.workspace.destroy()
            except WorkspaceError as e:
                print(f"Error: {e}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    environ = os.environ if environ is None else environ

    try:
        parser = _build_arg_parser(environ)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_USAGE

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for --help/--version and 2 for bad usage
        return EXIT_OK if not e.code else EXIT_BAD_USAGE

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = build_config(args, environ)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_USAGE

    if not args.no_memlock:
        try:
            lock_memory()
        except MemoryLockError as e:
            print(
                f"Error: {e}. You may need to increase the limit on locked memory. "
                "Pass --no-memlock to suppress this error.",
                file=sys.stderr,
            )
            return EXIT_ERROR

    try:
        result = EditSession(config).run()
    except SaveError as e:
        print(f"Error: {e}", file=sys.stderr)
        _recover(e)
        return EXIT_ERROR
    except AgeEditError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    return EXIT_OK


def run() -> None:
    sys.exit(main())
