"""Unit tests for the checkpoint signal listener."""

import os
import signal
import threading
import time

import pytest

from ageedit.security.signals import SignalBridge

pytestmark = pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="needs SIGUSR1")


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_each_signal_triggers_one_save():
    calls = []
    bridge = SignalBridge(lambda: calls.append(1))

    with bridge:
        assert bridge.active
        os.kill(os.getpid(), signal.SIGUSR1)
        assert _wait_for(lambda: len(calls) == 1)
        os.kill(os.getpid(), signal.SIGUSR1)
        assert _wait_for(lambda: len(calls) == 2)

    assert not bridge.active


def test_saves_never_overlap():
    running = threading.Lock()
    overlaps = []
    done = []

    def slow_save():
        if not running.acquire(blocking=False):
            overlaps.append(1)
            return
        try:
            time.sleep(0.05)
        finally:
            running.release()
        done.append(1)

    with SignalBridge(slow_save) as bridge:
        # three triggers back to back, faster than one save takes
        for _ in range(3):
            bridge._handle(signal.SIGUSR1, None)
        assert _wait_for(lambda: len(done) + len(overlaps) == 3)

    assert overlaps == []


def test_failing_save_is_reported_and_listener_survives(capfd):
    calls = []

    def flaky_save():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("disk full")

    with SignalBridge(flaky_save):
        os.kill(os.getpid(), signal.SIGUSR1)
        assert _wait_for(lambda: len(calls) == 1)
        os.kill(os.getpid(), signal.SIGUSR1)
        assert _wait_for(lambda: len(calls) == 2)

    assert "saving failed: disk full" in capfd.readouterr().err


def test_stop_restores_previous_handler():
    seen = []
    previous = signal.signal(signal.SIGUSR1, lambda signum, frame: seen.append(signum))
    try:
        calls = []
        with SignalBridge(lambda: calls.append(1)):
            pass

        os.kill(os.getpid(), signal.SIGUSR1)
        assert _wait_for(lambda: seen == [signal.SIGUSR1])
        assert calls == []
    finally:
        signal.signal(signal.SIGUSR1, previous)


def test_inert_outside_main_thread():
    results = []

    def worker():
        bridge = SignalBridge(lambda: None)
        results.append(bridge.start())
        bridge.stop()

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join()

    assert results == [False]


def test_inert_without_signal():
    bridge = SignalBridge(lambda: None, signum=None)
    assert bridge.start() is False
    bridge.stop()
