"""Immutable description of one edit session."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional, Tuple


DEFAULT_TEMP_DIR_PREFIX_LINUX = "/dev/shm/"
DEFAULT_EDITOR = "vi"


def default_temp_dir_prefix() -> str:
    # RAM-backed on Linux; elsewhere fall back to the system temp directory.
    if os.path.isdir(DEFAULT_TEMP_DIR_PREFIX_LINUX):
        return DEFAULT_TEMP_DIR_PREFIX_LINUX
    return tempfile.gettempdir()


@dataclass(frozen=True)
class SessionConfig:
    """Everything an EditSession needs, resolved up front.

    The session never consults the environment; the CLI builds this once
    and hands it over.
    """

    identities_path: str
    encrypted_path: str
    temp_dir_prefix: str = field(default_factory=default_temp_dir_prefix)

    armor: bool = False
    lock: bool = True
    read_only: bool = False
    force: bool = False

    command: str = DEFAULT_EDITOR
    args: Tuple[str, ...] = ()

    decode_command: Optional[str] = None
    decode_args: Tuple[str, ...] = ()
    encode_command: Optional[str] = None
    encode_args: Tuple[str, ...] = ()

    warn_seconds: int = 0

    def editor_argv(self, temp_file: str) -> list[str]:
        return [self.command, *self.args, temp_file]
