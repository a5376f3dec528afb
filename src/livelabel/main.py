"""LiveLabel entry point: camera preview with throttled classification labels."""

from __future__ import annotations

import logging
import threading

import cv2

from livelabel.capture import CameraCapture
from livelabel.config import Settings, get_settings
from livelabel.display import DisplaySurface, LogSurface, OverlaySurface
from livelabel.ml.image_classifier import OnnxImageClassifier
from livelabel.ml.inference import InferencePool
from livelabel.ml.model_manager import OnnxModelManager
from livelabel.pipeline.display_text import DisplayText
from livelabel.pipeline.frame_classifier import FrameClassifier
from livelabel.pipeline.session import Session
from livelabel.pipeline.throttler import DisplayThrottler

logger = logging.getLogger(__name__)

WINDOW_NAME = "LiveLabel"
_QUIT_KEYS = {ord("q"), 27}


def build_session(settings: Settings, surface: DisplaySurface) -> Session:
    """Wire capture, classifier, display slot, and throttler into a session."""
    model_manager = OnnxModelManager(settings)
    classifier = OnnxImageClassifier(
        model_manager,
        settings.classification_model,
        top_k=max(settings.top_k, settings.result_window),
    )
    display_text = DisplayText()
    frame_classifier = FrameClassifier(
        classifier,
        display_text,
        window=settings.result_window,
        threshold=settings.confidence_threshold,
    )
    throttler = DisplayThrottler(display_text, surface, interval=settings.tick_interval)
    capture = CameraCapture(
        index=settings.camera_index,
        portrait=settings.portrait,
        intrinsics=settings.camera_intrinsics,
    )
    return Session(capture, frame_classifier, InferencePool(), throttler, model_manager=model_manager)


def _preview_loop(session: Session, overlay: OverlaySurface) -> None:
    while session.running:
        frame = session.latest_frame()
        if frame is not None:
            cv2.imshow(WINDOW_NAME, overlay.draw(frame))
        if (cv2.waitKey(15) & 0xFF) in _QUIT_KEYS:
            break
    cv2.destroyWindow(WINDOW_NAME)


def _headless_loop(session: Session) -> None:
    idle = threading.Event()
    while session.running:
        idle.wait(0.5)


def run(settings: Settings | None = None) -> int:
    """Run a capture session until the user quits. Returns a process exit code."""
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting LiveLabel (model=%s, device=%s, camera=%s, interval=%ss, threshold=%s, window=%s)",
        settings.classification_model,
        settings.device,
        settings.camera_index,
        settings.tick_interval,
        settings.confidence_threshold,
        settings.result_window,
    )

    surface: DisplaySurface = OverlaySurface() if settings.show_preview else LogSurface()
    session = build_session(settings, surface)
    if not session.start():
        logger.error("No frames will be produced; exiting")
        return 1

    try:
        if isinstance(surface, OverlaySurface):
            _preview_loop(session, surface)
        else:
            _headless_loop(session)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        logger.info("Shutting down LiveLabel")
        session.stop()
        logger.info("LiveLabel shutdown complete")
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
