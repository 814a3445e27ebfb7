"""
Advisory, non-blocking exclusive lock on the encrypted file.

Only other age-edit sessions honour it. It is a single attempt: a held
lock is reported immediately, never waited on.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None

logger = logging.getLogger(__name__)


class FileLock:
    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        self._fd: Optional[int] = None
        self.locked = False

    def try_lock(self) -> bool:
        """Try once to take the lock. Returns False if another process holds it."""
        if self.locked:
            return True

        if fcntl is None:
            logger.warning("file locking is not supported on this platform; %s is not locked", self.path)
            self.locked = True
            return True

        fd = os.open(self.path, os.O_RDONLY)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError:
            os.close(fd)
            raise

        self._fd = fd
        self.locked = True
        logger.debug("locked %s", self.path)
        return True

    def unlock(self) -> None:
        """Release the lock. Safe to call when not held."""
        fd, self._fd = self._fd, None
        self.locked = False
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug("unlocking %s failed: %s", self.path, e)
        finally:
            os.close(fd)
        logger.debug("unlocked %s", self.path)

    def __enter__(self) -> "FileLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unlock()
