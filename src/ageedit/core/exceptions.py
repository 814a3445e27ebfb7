"""
Exceptions for the age-edit core
Everything derives from AgeEditError so the CLI has a single error catcher
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .workspace import Workspace


class AgeEditError(Exception):
    # general container for errors
    pass


class AccessError(AgeEditError):
    # raised when the encrypted file is unreadable, unwritable or missing in read-only mode
    pass


class IdentityError(AgeEditError):
    # raised when the identities file can't be read or a key fails to parse
    pass


class NoIdentitiesFound(IdentityError):
    # raised when the identities file holds only comments and blank lines
    pass


class WorkspaceError(AgeEditError):
    # raised when the temporary directory or file can't be created or removed
    pass


class LockedError(AgeEditError):
    # raised when another session holds the lock on the encrypted file
    pass


class DecryptError(AgeEditError):
    # raised when no identity matches or the encrypted stream is malformed
    pass


class EncryptionError(AgeEditError):
    # raised when the age primitive refuses to encrypt (e.g. no recipients)
    pass


class FilterError(AgeEditError):
    # raised when an encode/decode command fails to start or exits non-zero
    pass


class EditorError(AgeEditError):
    # raised when the editor fails to launch or exits abnormally
    pass


class MemoryLockError(AgeEditError):
    # raised when mlockall(2) is available but refuses to lock
    pass


class SaveError(AgeEditError):
    """Encryption failed after the user had a chance to edit.

    The workspace is deliberately left on disk. ``temp_file`` points at the
    plaintext so the user can recover it; whoever catches this error owns
    ``workspace`` and must call ``workspace.destroy()`` when done.
    """

    def __init__(
        self,
        cause: BaseException,
        temp_file: str,
        workspace: Optional["Workspace"] = None,
    ):
        super().__init__(f"encryption failed: {cause}")
        self.cause = cause
        self.temp_file = temp_file
        self.workspace = workspace
