"""Identities file parsing.

One ``AGE-SECRET-KEY-1...`` per line. Blank lines and lines starting with
``#`` (after leading whitespace) are skipped. Every identity also yields its
public recipient so a re-encrypted file stays readable by all of them.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple, Union

import pyrage
from pyrage import x25519

from ageedit.core.exceptions import IdentityError, NoIdentitiesFound


def parse_identities(text: str) -> Tuple[List[x25519.Identity], List[x25519.Recipient]]:
    identities: List[x25519.Identity] = []
    recipients: List[x25519.Recipient] = []

    count = 0
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        count += 1
        try:
            identity = x25519.Identity.from_str(line)
        except (pyrage.IdentityError, ValueError) as e:
            raise IdentityError(f"failed to parse private key number {count}: {e}") from e

        identities.append(identity)
        recipients.append(identity.to_public())

    if not identities:
        raise NoIdentitiesFound("no identities found in file")

    return identities, recipients


def load_identities(path: Union[str, Path]) -> Tuple[List[x25519.Identity], List[x25519.Recipient]]:
    """Read ``path`` and return parallel lists of identities and recipients."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IdentityError(f"failed to read identities file: {e}") from e

    return parse_identities(text)
