"""Signal-driven checkpoint saves.

While the editor runs, SIGUSR1 asks for the current plaintext to be
encrypted back to disk. The signal handler only enqueues the trigger; a
listener thread drains the queue and calls ``save`` once per trigger, one
at a time. A failed save is reported to the terminal and the listener
keeps going.

Python only installs signal handlers from the main thread. Elsewhere, and
on platforms without SIGUSR1, the bridge stays inert.
"""

from __future__ import annotations

import logging
import queue
import signal
import sys
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()

DEFAULT_SIGNAL = getattr(signal, "SIGUSR1", None)


class SignalBridge:
    def __init__(self, save: Callable[[], object], signum: Optional[int] = DEFAULT_SIGNAL):
        self.save = save
        self.signum = signum
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._thread: Optional[threading.Thread] = None
        self._previous = None
        self.active = False

    def _handle(self, signum, frame) -> None:
        # SimpleQueue.put is reentrant, so it is safe inside a handler.
        self._queue.put(signum)

    def _listen(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                self.save()
            except Exception as e:
                logger.error("checkpoint save failed: %s", e)
                print(f"\r\007age-edit: saving failed: {e}", file=sys.stderr, flush=True)

    def start(self) -> bool:
        """Install the handler and the listener. Returns False if unavailable."""
        if self.active:
            return True
        if self.signum is None:
            logger.debug("no checkpoint signal on this platform")
            return False
        if threading.current_thread() is not threading.main_thread():
            logger.debug("not in the main thread; checkpoint signal disabled")
            return False

        self._thread = threading.Thread(target=self._listen, name="age-edit-signal", daemon=True)
        self._thread.start()
        self._previous = signal.signal(self.signum, self._handle)
        self.active = True
        logger.debug("listening for signal %d", self.signum)
        return True

    def stop(self) -> None:
        """Restore the previous handler and wait for the listener to finish."""
        if not self.active:
            return
        signal.signal(self.signum, self._previous if self._previous is not None else signal.SIG_DFL)
        self.active = False
        self._queue.put(_STOP)
        self._thread.join()
        self._thread = None
        logger.debug("stopped listening for signal %d", self.signum)

    def __enter__(self) -> "SignalBridge":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
