"""Capture session: ties frame delivery, classification, and display together.

Threads while running:
    frame-delivery -> InferencePool worker -> DisplayText <- display-throttler
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from livelabel.errors import DeviceUnavailable

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from livelabel.capture import CameraCapture
    from livelabel.ml.inference import InferencePool
    from livelabel.ml.model_manager import ModelManager
    from livelabel.pipeline.frame_classifier import FrameClassifier
    from livelabel.pipeline.throttler import DisplayThrottler

logger = logging.getLogger(__name__)

READ_RETRY_SECONDS: float = 0.01


class Session:
    """Owns the lifetime of a camera capture and everything fed by it."""

    def __init__(
        self,
        capture: CameraCapture,
        frame_classifier: FrameClassifier,
        pool: InferencePool,
        throttler: DisplayThrottler,
        model_manager: ModelManager | None = None,
    ) -> None:
        self._capture = capture
        self._frame_classifier = frame_classifier
        self._pool = pool
        self._throttler = throttler
        self._model_manager = model_manager
        self._running = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._frame_lock = threading.Lock()
        self._latest_frame: NDArray[np.uint8] | None = None
        self._frames_read = 0

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def frames_read(self) -> int:
        return self._frames_read

    def start(self) -> bool:
        """Open the camera and start delivering frames.

        Returns False (after logging the problem) if no capture device is
        available; the session then never produces frames.

        Raises:
            RuntimeError: If the session has already been stopped. A session
                is single-use; build a new one to capture again.
        """
        if self._stop_event.is_set():
            raise RuntimeError("Session has been stopped and cannot be restarted")
        if self.running:
            return True
        try:
            self._capture.open()
        except DeviceUnavailable as exc:
            logger.error("Capture device unavailable: %s", exc)
            return False

        self._running.set()
        self._throttler.start()
        self._thread = threading.Thread(target=self._deliver_frames, name="frame-delivery", daemon=True)
        self._thread.start()
        logger.info("Session started")
        return True

    def stop(self) -> None:
        """Stop delivery and ticking, and discard results still in flight."""
        was_running = self.running
        self._running.clear()
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(2.0)
        self._thread = None

        self._throttler.stop()
        self._frame_classifier.display_text.close()
        self._pool.shutdown(wait=False)
        if self._model_manager is not None:
            self._model_manager.shutdown()
        self._capture.close()
        if was_running:
            logger.info(
                "Session stopped (frames=%d, dropped=%d)",
                self._frames_read,
                self._pool.dropped_count,
            )

    def latest_frame(self) -> NDArray[np.uint8] | None:
        """Most recent frame read from the camera, for preview rendering."""
        with self._frame_lock:
            return self._latest_frame

    def _deliver_frames(self) -> None:
        try:
            while self._running.is_set():
                captured = self._capture.read()
                if captured is None:
                    if not self._capture.is_opened():
                        logger.warning("Capture device closed, ending frame delivery")
                        break
                    self._stop_event.wait(READ_RETRY_SECONDS)
                    continue

                self._frames_read += 1
                with self._frame_lock:
                    self._latest_frame = captured.image
                self._frame_classifier.submit(self._pool, captured.image, captured.intrinsics)
        except Exception:
            logger.exception("Frame delivery failed, ending session")
        finally:
            self._running.clear()

    def __enter__(self) -> Session:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
