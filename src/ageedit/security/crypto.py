"""Move data between the encrypted file and the plaintext file.

Decrypt path:  input -> age decrypt -> [decode filter] -> output
Encrypt path:  input -> [encode filter] -> age encrypt [armored] -> output

age reads both the binary and the ASCII armored format. The armor header is
still peeked at so a truncated file fails early with a clear message; the
peeked bytes are stitched back in front of the rest of the stream, so the
peek also works on pipes.

Every step runs in memory before the destination is opened. A filter or
crypto failure leaves the destination untouched; an I/O failure while
writing may leave a partial file, which callers must not trust.
"""

from __future__ import annotations

import io
import logging
import os
import subprocess
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Tuple, Union

import pyrage

from ageedit.core.exceptions import DecryptError, EncryptionError, FilterError

logger = logging.getLogger(__name__)

ARMOR_HEADER = b"-----BEGIN AGE ENCRYPTED FILE-----"
FILE_PERM = 0o600

PathLike = Union[str, Path]


class _PrefixedReader(io.RawIOBase):
    # Replays already-consumed bytes before reading on from the wrapped stream.

    def __init__(self, prefix: bytes, stream: BinaryIO):
        self._prefix = prefix
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._prefix:
            n = min(len(buffer), len(self._prefix))
            buffer[:n] = self._prefix[:n]
            self._prefix = self._prefix[n:]
            return n
        data = self._stream.read(len(buffer))
        if not data:
            return 0
        buffer[: len(data)] = data
        return len(data)


def peek_armor(stream: BinaryIO) -> Tuple[bool, BinaryIO]:
    """Return (armored, stream) where the returned stream still starts at byte 0."""
    wanted = len(ARMOR_HEADER)
    head = b""
    while len(head) < wanted:
        chunk = stream.read(wanted - len(head))
        if not chunk:
            break
        head += chunk

    if 0 < len(head) < wanted:
        raise DecryptError(f"failed to read header: expected at least {wanted} bytes, got {len(head)}")

    armored = head == ARMOR_HEADER
    return armored, io.BufferedReader(_PrefixedReader(head, stream))


def run_filter(command: Optional[str], args: Sequence[str], data: bytes) -> bytes:
    """Pipe ``data`` through ``command``; without a command return it unchanged.

    The filter inherits our stderr.
    """
    if command is None or not command.strip():
        return data

    argv = [command, *args]
    try:
        result = subprocess.run(argv, input=data, stdout=subprocess.PIPE)
    except OSError as e:
        raise FilterError(f"failed to run filter {command!r}: {e}") from e

    if result.returncode != 0:
        raise FilterError(f"filter {command!r} exited with status {result.returncode}")
    return result.stdout


def decrypt_stream(stream: BinaryIO, identities: Sequence) -> bytes:
    armored, stream = peek_armor(stream)
    logger.debug("decrypting %s input", "armored" if armored else "binary")

    try:
        return pyrage.decrypt(stream.read(), list(identities))
    except (pyrage.DecryptError, ValueError) as e:
        raise DecryptError(f"failed to decrypt: {e}") from e


def encrypt_bytes(data: bytes, recipients: Sequence, armored: bool = False) -> bytes:
    if not recipients:
        raise EncryptionError("no recipients specified")

    try:
        return pyrage.encrypt(data, list(recipients), armored=armored)
    except (pyrage.EncryptError, ValueError) as e:
        raise EncryptionError(f"failed to encrypt: {e}") from e


def _write_file(path: PathLike, data: bytes) -> None:
    # O_TRUNC keeps the inode, so an flock held on it stays valid.
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERM)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def decrypt_to_file(
    input_path: PathLike,
    output_path: PathLike,
    identities: Sequence,
    decode_command: Optional[str] = None,
    decode_args: Sequence[str] = (),
) -> None:
    with open(input_path, "rb") as inf:
        plaintext = decrypt_stream(inf, identities)

    plaintext = run_filter(decode_command, decode_args, plaintext)
    _write_file(output_path, plaintext)


def encrypt_to_file(
    input_path: PathLike,
    output_path: PathLike,
    recipients: Sequence,
    armored: bool = False,
    encode_command: Optional[str] = None,
    encode_args: Sequence[str] = (),
) -> None:
    with open(input_path, "rb") as inf:
        plaintext = inf.read()

    plaintext = run_filter(encode_command, encode_args, plaintext)
    _write_file(output_path, encrypt_bytes(plaintext, recipients, armored=armored))
