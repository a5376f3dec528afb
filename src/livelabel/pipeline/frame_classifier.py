"""Frame classifier: one frame in, one ranked and filtered label string out."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from livelabel.errors import ClassificationFailed, NoResults
from livelabel.ml.image_classifier import Classification
from livelabel.ml.preprocessing import is_valid_frame

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from concurrent.futures import Future

    import numpy as np
    from numpy.typing import NDArray

    from livelabel.ml.image_classifier import ImageClassifier
    from livelabel.ml.inference import InferencePool
    from livelabel.pipeline.display_text import DisplayText

logger = logging.getLogger(__name__)

RESULT_WINDOW: int = 5
CONFIDENCE_THRESHOLD: float = 0.25


def round_percent(confidence: float) -> int:
    """Convert a confidence to a whole percentage, rounding halves away from zero.

    ``round()`` would round 12.5 to 12 (banker's rounding); here 12.5 -> 13.
    """
    value = confidence * 100.0
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def format_classifications(
    batch: Sequence[object],
    window: int = RESULT_WINDOW,
    threshold: float = CONFIDENCE_THRESHOLD,
) -> str:
    """Render the top of a classification batch as display text.

    Only the first ``window`` entries are considered, in the order given (the
    classifier already ranks them). Entries that are not a ``Classification``
    are ignored, and an entry is kept only if its confidence is strictly
    greater than ``threshold``. Kept entries become ``"<identifier> <pct>%"``
    lines joined by newlines; nothing kept yields ``""``.
    """
    lines = [
        f"{entry.identifier} {round_percent(entry.confidence)}%"
        for entry in _classifications(batch[:window])
        if entry.confidence > threshold
    ]
    return "\n".join(lines)


def _classifications(entries: Iterable[object]) -> Iterable[Classification]:
    return (entry for entry in entries if isinstance(entry, Classification))


class FrameClassifier:
    """Runs the image classifier on a frame and publishes the label text."""

    def __init__(
        self,
        classifier: ImageClassifier,
        display_text: DisplayText,
        window: int = RESULT_WINDOW,
        threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        self._classifier = classifier
        self._display_text = display_text
        self._window = window
        self._threshold = threshold

    @property
    def display_text(self) -> DisplayText:
        return self._display_text

    def infer(self, frame: NDArray[np.uint8], intrinsics: Any | None = None) -> list[Classification]:
        """Classify one frame.

        Raises:
            ClassificationFailed: If the classifier raised.
            NoResults: If the classifier returned no observations.
        """
        try:
            batch = self._classifier.classify(frame, intrinsics)
        except ClassificationFailed:
            raise
        except Exception as exc:
            raise ClassificationFailed(str(exc)) from exc

        if not batch:
            raise NoResults(f"{self._classifier.model_name} returned no observations")
        return batch

    def publish(self, future: Future[list[Classification]]) -> str | None:
        """Continuation for a finished inference: format and store the result.

        Returns the text written to the display slot, or None if nothing was
        written (classification error, no results, or the slot is closed).
        """
        return self._store(future.result)

    def _store(self, outcome: Callable[[], list[Classification]]) -> str | None:
        try:
            batch = outcome()
        except ClassificationFailed as exc:
            logger.warning("Classification failed: %s", exc)
            return None
        except NoResults as exc:
            logger.info("No results: %s", exc)
            return None

        text = format_classifications(batch, self._window, self._threshold)
        if not self._display_text.set(text):
            return None
        return text

    def classify(self, frame: NDArray[np.uint8] | None, intrinsics: Any | None = None) -> str | None:
        """Synchronously classify a frame and update the display slot.

        A missing or malformed frame is skipped and returns None.
        """
        if not is_valid_frame(frame):
            logger.debug("Skipping missing or malformed frame")
            return None
        return self._store(lambda: self.infer(frame, intrinsics))

    def submit(
        self,
        pool: InferencePool,
        frame: NDArray[np.uint8] | None,
        intrinsics: Any | None = None,
    ) -> Future[list[Classification]] | None:
        """Schedule classification of a frame on the inference pool.

        Returns None when the frame is skipped (malformed, or the pool is still
        busy with the previous frame).
        """
        if not is_valid_frame(frame):
            logger.debug("Skipping missing or malformed frame")
            return None
        future = pool.submit(self.infer, frame, intrinsics)
        if future is not None:
            future.add_done_callback(self.publish)
        return future
