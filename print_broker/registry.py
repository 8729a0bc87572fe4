"""
Printer Registry
================

Snapshot of printers currently known to be available, refreshed on a timer
so request-time availability checks never wait on a live device query.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, FrozenSet, Iterable, Optional

from .config import REFRESH_INTERVAL

logger = logging.getLogger(__name__)

# Printers store key recording the last published snapshot
AVAILABLE_KEY = 'available'


class PrinterRegistry:
    """
    Available-printer snapshot.

    Only ``refresh`` replaces the snapshot, and always wholesale. Readers get
    the current frozenset reference without locking.
    """

    def __init__(self, lister: Callable[[], Iterable[str]],
                 interval: float = REFRESH_INTERVAL, store=None):
        self._lister = lister
        self.interval = interval
        self._store = store

        self._lock = threading.Lock()
        self._snapshot: FrozenSet[str] = frozenset()

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def snapshot(self) -> FrozenSet[str]:
        return self._snapshot

    def is_available(self, name: str) -> bool:
        return name in self._snapshot

    def any(self) -> bool:
        return bool(self._snapshot)

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    def refresh(self) -> None:
        """Replace the snapshot with the live device list. Never raises."""
        try:
            printers = frozenset(self._lister())
        except Exception:
            logger.exception("Printer refresh failed; keeping %d known printer(s)", len(self._snapshot))
            return

        with self._lock:
            self._snapshot = printers

        if printers:
            logger.info("Printer refresh found %d printer(s): %s", len(printers), ', '.join(sorted(printers)))
        else:
            logger.warning("Printer refresh found no printers")

        if self._store is not None:
            try:
                self._store.set(AVAILABLE_KEY, {
                    'printers': sorted(printers),
                    'refreshed_at': datetime.now().isoformat(),
                })
            except Exception:
                logger.exception("Failed to record printer snapshot")

    def start(self) -> None:
        """Refresh once, then keep refreshing every ``interval`` seconds."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self.refresh()
        self._thread = threading.Thread(target=self._run, name='printer-refresh', daemon=True)
        self._thread.start()

    def stop(self, timeout: float = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.refresh()
