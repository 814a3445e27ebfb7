""" Utility for detecting changes to the plaintext file. """

import hashlib
import hmac
from pathlib import Path
from typing import Union


CHUNK_SIZE = 65536  # 64KB
DIGEST_SIZE = 32

EMPTY_DIGEST = hashlib.sha256(b"").digest()


def checksum_file(file_path: Union[str, Path]) -> bytes:

    # Calculates the SHA-256 digest of a file.
    # A missing file hashes like an empty one so "not created yet" and
    # "created but empty" compare equal.

    sha256 = hashlib.sha256()
    try:
        f = open(file_path, 'rb')
    except FileNotFoundError:
        return EMPTY_DIGEST
    with f:
        while True:
            data = f.read(CHUNK_SIZE)
            if not data:
                break
            sha256.update(data)
    return sha256.digest()


def unchanged(before: bytes, after: bytes) -> bool:
    return hmac.compare_digest(before, after)
