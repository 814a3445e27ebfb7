"""Edit session: decrypt, hand the plaintext to an editor, re-encrypt.

Steps, in order:

1. check access to the encrypted file
2. load identities
3. create the workspace
4. lock the encrypted file (lock enabled, not read-only, file exists)
5. decrypt into the workspace (file exists)
6. checksum the plaintext
7. make the plaintext read-only (read-only mode)
8. arm the SIGUSR1 checkpoint save (not read-only)
9. run the editor
10. disarm the checkpoint save
11. final save (not read-only)
12. release the lock and remove the workspace

Every failure unwinds steps 3-8 through an ExitStack. A failed final save
is the exception: the workspace is handed to the caller inside SaveError so
the user can rescue the plaintext first.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import List, Optional

from .config import SessionConfig
from .exceptions import (
    AccessError,
    AgeEditError,
    DecryptError,
    EditorError,
    LockedError,
    SaveError,
)
from .filelock import FileLock
from .hashing import checksum_file, unchanged
from .workspace import Workspace
from ..security.crypto import decrypt_to_file, encrypt_to_file
from ..security.identities import load_identities
from ..security.signals import SignalBridge

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    warnings: List[str] = field(default_factory=list)
    saved: bool = False


def check_access(path: str, read_only: bool) -> bool:
    """Return whether ``path`` exists; raise AccessError if it can't be used.

    A missing file is fine unless read-only, since saving will create it.
    Nothing is modified: the file is only opened and closed again.
    """
    try:
        os.stat(path)
    except FileNotFoundError:
        if read_only:
            raise AccessError(f"{path!r} does not exist; won't attempt to create it in read-only mode")
        return False
    except OSError as e:
        raise AccessError(f"can't access file {path!r}: {e}") from e

    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise AccessError(f"can't read from file {path!r}") from e

    # We don't want writing to fail later, after the user edits the file.
    if not read_only:
        try:
            with open(path, "r+b"):
                pass
        except OSError as e:
            raise AccessError(f"can't write to file {path!r}") from e

    return True


class EditSession:
    """One decrypt-edit-encrypt cycle over ``config.encrypted_path``."""

    def __init__(self, config: SessionConfig):
        self.config = config
        self.workspace: Optional[Workspace] = None
        self._recipients: list = []
        self._saved_sum: Optional[bytes] = None
        self._save_lock = threading.Lock()
        self._saved = False

    # ------------------------------------------------------------------
    # Save routine, shared by the signal listener and the final save
    # ------------------------------------------------------------------

    def save_changes(self) -> bool:
        """Re-encrypt if the plaintext changed (or force is set).

        Returns True when the encrypted file was rewritten.
        """
        cfg = self.config
        with self._save_lock:
            temp_file = str(self.workspace.temp_file)
            current_sum = checksum_file(temp_file)

            if not cfg.force and unchanged(self._saved_sum, current_sum):
                logger.debug("no changes to save")
                return False

            encrypt_to_file(
                temp_file,
                cfg.encrypted_path,
                self._recipients,
                armored=cfg.armor,
                encode_command=cfg.encode_command,
                encode_args=cfg.encode_args,
            )
            self._saved_sum = current_sum
            self._saved = True
            logger.info("saved %s", cfg.encrypted_path)
            return True

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _acquire_lock(self, stack: ExitStack) -> None:
        lock = FileLock(self.config.encrypted_path)
        try:
            locked = lock.try_lock()
        except OSError as e:
            raise LockedError(f"failed to acquire lock: {e}") from e
        if not locked:
            raise LockedError("encrypted file is locked")
        stack.callback(lock.unlock)

    def _run_editor(self, result: SessionResult) -> None:
        cfg = self.config
        argv = cfg.editor_argv(str(self.workspace.temp_file))
        logger.debug("running editor: %s", argv)

        start = time.monotonic()
        try:
            # stdin/stdout/stderr are inherited from the terminal
            completed = subprocess.run(argv)
        except OSError as e:
            raise EditorError(f"failed to run editor {cfg.command!r}: {e}") from e
        elapsed = time.monotonic() - start

        if cfg.warn_seconds > 0 and elapsed <= cfg.warn_seconds:
            message = f"editor exited after less than {cfg.warn_seconds} second(s)"
            logger.info(message)
            result.warnings.append(message)

        if completed.returncode != 0:
            raise EditorError(f"editor {cfg.command!r} exited with status {completed.returncode}")

    def run(self) -> SessionResult:
        cfg = self.config
        result = SessionResult()

        exists = check_access(cfg.encrypted_path, cfg.read_only)
        identities, self._recipients = load_identities(cfg.identities_path)

        with ExitStack() as workspace_stack:
            self.workspace = Workspace.create(cfg.temp_dir_prefix, cfg.encrypted_path)
            workspace_stack.callback(self.workspace.destroy, strict=False)
            temp_file = str(self.workspace.temp_file)

            # the lock is released on every path, SaveError included
            with ExitStack() as lock_stack:
                if exists:
                    if cfg.lock and not cfg.read_only:
                        self._acquire_lock(lock_stack)
                    try:
                        decrypt_to_file(
                            cfg.encrypted_path,
                            temp_file,
                            identities,
                            decode_command=cfg.decode_command,
                            decode_args=cfg.decode_args,
                        )
                    except OSError as e:
                        raise DecryptError(f"failed to decrypt {cfg.encrypted_path!r}: {e}") from e

                self._saved_sum = checksum_file(temp_file)

                if cfg.read_only:
                    self.workspace.make_read_only()
                    self._run_editor(result)
                    return result

                with SignalBridge(self.save_changes):
                    self._run_editor(result)

                try:
                    self.save_changes()
                except (AgeEditError, OSError) as e:
                    # keep the plaintext around; the caller cleans up after recovery
                    workspace_stack.pop_all()
                    raise SaveError(e, temp_file, self.workspace) from e

            result.saved = self._saved
            return result


def edit(config: SessionConfig) -> SessionResult:
    return EditSession(config).run()
