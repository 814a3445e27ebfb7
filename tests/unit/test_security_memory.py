"""Unit tests for mlockall(2) wrapping; libc is always mocked."""

from unittest.mock import MagicMock, patch

import pytest

from ageedit.core.exceptions import MemoryLockError
from ageedit.security import memory


def test_lock_memory_requests_current_and_future_pages():
    libc = MagicMock()
    libc.mlockall.return_value = 0
    with patch("ageedit.security.memory._load_libc", return_value=libc):
        memory.lock_memory()

    (flags,), _ = libc.mlockall.call_args
    assert flags.value == memory.MCL_CURRENT | memory.MCL_FUTURE


def test_lock_memory_failure_raises():
    libc = MagicMock()
    libc.mlockall.return_value = -1
    with patch("ageedit.security.memory._load_libc", return_value=libc), \
            patch("ageedit.security.memory.ctypes.get_errno", return_value=12):
        with pytest.raises(MemoryLockError, match="failed to lock memory"):
            memory.lock_memory()


def test_lock_memory_is_noop_without_platform_support():
    with patch("ageedit.security.memory._load_libc", return_value=None):
        memory.lock_memory()


def test_load_libc_on_windows_returns_none():
    with patch.object(memory, "IS_WINDOWS", True):
        assert memory._load_libc() is None
