"""Shared slot holding the most recently completed classification text."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class DisplayText:
    """Single-value, last-writer-wins cell for the current label string.

    Writers swap in a whole new ``str`` under a lock, so readers always see a
    complete value. Once closed, writes are discarded so results that finish
    after session teardown never reach the display.
    """

    def __init__(self, initial: str = "") -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._closed = False

    def get(self) -> str:
        with self._lock:
            return self._value

    def set(self, text: str) -> bool:
        """Replace the current value. Returns False if the slot is closed."""
        with self._lock:
            if self._closed:
                logger.debug("Discarding late classification text after close")
                return False
            self._value = text
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed
