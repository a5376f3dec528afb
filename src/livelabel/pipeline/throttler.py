"""Display throttler: republish the current label text on a fixed interval.

Classification results can arrive many times per second, which is too fast to
read. The throttler decouples frame rate from display rate by copying the
shared text to the display surface once per tick.
"""

from __future__ import annotations

import logging
import threading
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from livelabel.display import DisplaySurface
    from livelabel.pipeline.display_text import DisplayText

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS: float = 0.25


class ThrottlerState(StrEnum):
    IDLE = "idle"
    TICKING = "ticking"
    STOPPED = "stopped"


class DisplayThrottler:
    """Copies ``DisplayText`` to a ``DisplaySurface`` every ``interval`` seconds."""

    def __init__(
        self,
        display_text: DisplayText,
        surface: DisplaySurface,
        interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._display_text = display_text
        self._surface = surface
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = ThrottlerState.IDLE
        self._tick_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def state(self) -> ThrottlerState:
        return self._state

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def start(self) -> None:
        """Begin ticking. The first tick fires one interval from now."""
        if self._state is not ThrottlerState.IDLE:
            return
        self._state = ThrottlerState.TICKING
        self._thread = threading.Thread(target=self._run, name="display-throttler", daemon=True)
        self._thread.start()
        logger.debug("Display throttler started (interval=%ss)", self._interval)

    def stop(self, timeout: float | None = 2.0) -> None:
        """Cancel future ticks and wait for the timer thread to exit."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        self._state = ThrottlerState.STOPPED

    def tick(self) -> str:
        """Read the shared text once and hand it to the surface once."""
        text = self._display_text.get()
        self._surface.render(text)
        self._tick_count += 1
        return text

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Display surface failed to render")
