"""
Per-session temporary workspace for the plaintext

Structure Map for reference:
==============================
 - <prefix>/
      - age-edit-{user}@{host}/        (0700, shared by the user's sessions)
          - {random-id}/               (0700, one per session)
              - {rootname}             (0600, or 0400 when read-only)
==============================
> rootname is the encrypted file's base name without its ".age" suffix
> the random id is 8 lowercase Crockford base32 characters (2^40 values)
"""

from __future__ import annotations

import getpass
import logging
import os
import secrets
import shutil
import socket
from pathlib import Path
from typing import Optional, Union

from .exceptions import WorkspaceError

logger = logging.getLogger(__name__)

PROGRAM_NAME = "age-edit"
AGE_SUFFIX = ".age"

RANDOM_ID_LENGTH = 8
# Crockford base32, lowercase: no i, l, o, u
CROCKFORD_ALPHABET = "0123456789abcdefghjkmnpqrstvwxyz"

DIR_PERM = 0o700
FILE_PERM = 0o600
FILE_READ_ONLY_PERM = 0o400


def random_id(length: int = RANDOM_ID_LENGTH) -> str:
    return "".join(secrets.choice(CROCKFORD_ALPHABET) for _ in range(length))


def get_root(path: Union[str, Path]) -> str:
    """Strip one trailing ".age" from ``path``."""
    path = str(path)
    if path.endswith(AGE_SUFFIX):
        return path[: -len(AGE_SUFFIX)]
    return path


def user_namespace(user: Optional[str] = None, host: Optional[str] = None) -> str:
    user = user or getpass.getuser()
    host = host or socket.gethostname()
    return f"{PROGRAM_NAME}-{user}@{host}"


class Workspace:
    """Owned temporary directory holding exactly one plaintext file."""

    def __init__(self, user_dir: Path, temp_dir: Path, temp_file: Path):
        self.user_dir = user_dir
        self.temp_dir = temp_dir
        self.temp_file = temp_file
        self.destroyed = False

    @classmethod
    def create(
        cls,
        prefix: Union[str, Path],
        encrypted_path: Union[str, Path],
        user: Optional[str] = None,
        host: Optional[str] = None,
    ) -> "Workspace":
        """Create ``{prefix}/age-edit-{user}@{host}/{random-id}/``.

        The plaintext file itself is not created here; decryption (or the
        editor, for a brand-new file) creates it.
        """
        try:
            user_dir = Path(prefix) / user_namespace(user, host)
        except Exception as e:
            raise WorkspaceError(f"failed to determine user namespace: {e}") from e

        temp_dir = user_dir / random_id()
        temp_file = temp_dir / os.path.basename(get_root(encrypted_path))
        workspace = cls(user_dir, temp_dir, temp_file)

        created = False
        try:
            user_dir.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
            os.chmod(user_dir, DIR_PERM)
            temp_dir.mkdir(mode=DIR_PERM)
            created = True
            # mkdir's mode is filtered through the umask
            os.chmod(temp_dir, DIR_PERM)
        except OSError as e:
            # an existing temp_dir belongs to another session
            if created:
                workspace.destroy(strict=False)
            raise WorkspaceError(f"failed to create temporary directory {str(temp_dir)!r}: {e}") from e

        logger.debug("created workspace %s", temp_dir)
        return workspace

    def make_read_only(self) -> None:
        try:
            os.chmod(self.temp_file, FILE_READ_ONLY_PERM)
        except OSError as e:
            raise WorkspaceError(f"failed to make {str(self.temp_file)!r} read-only: {e}") from e

    def destroy(self, strict: bool = True) -> None:
        """Remove the random subdirectory and the namespace dir if it is now empty.

        Paths that are already gone are fine. With ``strict`` any other
        failure to remove the subdirectory raises WorkspaceError.
        """
        if self.destroyed:
            return
        try:
            shutil.rmtree(self.temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            if strict:
                raise WorkspaceError(f"failed to remove temporary directory {str(self.temp_dir)!r}: {e}") from e
            logger.warning("failed to remove temporary directory %s: %s", self.temp_dir, e)
            return

        try:
            self.user_dir.rmdir()
        except OSError:
            # other sessions still live here, or it is already gone
            pass

        self.destroyed = True
        logger.debug("removed workspace %s", self.temp_dir)

    def __repr__(self) -> str:
        return f"Workspace({str(self.temp_file)!r})"
