"""Scheduling work back onto the main thread.

Worker threads (catalog lookups, metadata fetches, player event threads)
never touch session or store state directly. They hand a callable to a
dispatcher, and the main loop runs it.
"""

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class QueueDispatcher:
    """Main-thread work queue drained by the owning loop."""

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._stopped = threading.Event()

    def call_soon(self, fn: Callable[[], None]):
        """Schedule fn on the main thread. Safe to call from any thread."""
        self._queue.put(fn)

    def process_pending(self) -> int:
        """Run everything queued so far, including work queued while running."""
        count = 0
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return count
            self._run(fn)
            count += 1

    def run(self, until: Optional[Callable[[], bool]] = None, poll_interval: float = 0.1):
        """Block and run queued work until stop() is called or until() is true."""
        self._stopped.clear()
        while not self._stopped.is_set():
            if until is not None and until():
                break
            try:
                fn = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            self._run(fn)

    def stop(self):
        self._stopped.set()

    def _run(self, fn: Callable[[], None]):
        try:
            fn()
        except Exception:
            logger.exception("Scheduled callback failed")
