"""
Process-wide memory locking.

Calls mlockall(2) so pages holding identities and plaintext are never
swapped to disk. Must run before any identity material is loaded.

Limitations:
- Only POSIX systems with a C library expose mlockall
- RLIMIT_MEMLOCK may be too small for the interpreter; the caller decides
  whether that is fatal
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import platform
from typing import Final

from ageedit.core.exceptions import MemoryLockError


IS_WINDOWS: Final[bool] = platform.system() == "Windows"

# <sys/mman.h>; POWER and SPARC use different bits
if platform.machine().lower().startswith(("ppc", "powerpc", "sparc")):
    MCL_CURRENT: Final[int] = 0x2000
    MCL_FUTURE: Final[int] = 0x4000
else:
    MCL_CURRENT: Final[int] = 1
    MCL_FUTURE: Final[int] = 2


def _load_libc():
    if IS_WINDOWS:
        return None
    name = ctypes.util.find_library("c")
    if name is None:
        return None
    try:
        libc = ctypes.CDLL(name, use_errno=True)
    except OSError:
        return None
    if not hasattr(libc, "mlockall"):
        return None
    return libc


def lock_memory() -> None:
    """Lock all current and future pages. No-op where mlockall doesn't exist."""
    libc = _load_libc()
    if libc is None:
        return

    if libc.mlockall(ctypes.c_int(MCL_CURRENT | MCL_FUTURE)) != 0:
        errno = ctypes.get_errno()
        raise MemoryLockError(f"failed to lock memory: {os.strerror(errno)}")
