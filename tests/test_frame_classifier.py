"""Tests for label ranking, filtering, formatting, and publication."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any

import numpy as np
import pytest

from livelabel.errors import ClassificationFailed, NoResults
from livelabel.ml.image_classifier import Classification
from livelabel.ml.inference import InferencePool
from livelabel.pipeline.display_text import DisplayText
from livelabel.pipeline.frame_classifier import (
    FrameClassifier,
    format_classifications,
    round_percent,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _batch(*pairs: tuple[str, float]) -> list[Classification]:
    return [Classification(identifier=name, confidence=conf) for name, conf in pairs]


def _frame() -> np.ndarray:
    return np.zeros((32, 24, 3), dtype=np.uint8)


class FakeClassifier:
    """Returns a scripted batch, or raises a scripted error."""

    model_name = "fake"

    def __init__(self, result: list[Any] | Exception) -> None:
        self.result = result
        self.calls: list[tuple[np.ndarray, Any]] = []

    def classify(self, image: np.ndarray, intrinsics: Any | None = None) -> list[Any]:
        self.calls.append((image, intrinsics))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _make(result: list[Any] | Exception, initial: str = "") -> tuple[FrameClassifier, FakeClassifier, DisplayText]:
    classifier = FakeClassifier(result)
    text = DisplayText(initial)
    return FrameClassifier(classifier, text), classifier, text


DOG_BATCH = _batch(("dog", 0.90), ("wolf", 0.40), ("fox", 0.20), ("cat", 0.10), ("wolf-pup", 0.05))


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


class TestRoundPercent:
    def test_rounds_to_nearest(self) -> None:
        assert round_percent(0.8765) == 88
        assert round_percent(0.901) == 90

    def test_half_rounds_away_from_zero(self) -> None:
        # 0.125 * 100 is exactly 12.5; banker's rounding would give 12.
        assert round_percent(0.125) == 13
        assert round_percent(0.255) == 26
        assert round_percent(0.375) == 38

    def test_bounds(self) -> None:
        assert round_percent(0.0) == 0
        assert round_percent(1.0) == 100


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatClassifications:
    def test_dog_scenario(self) -> None:
        assert format_classifications(DOG_BATCH) == "dog 90%\nwolf 40%"

    def test_short_batch_fully_considered(self) -> None:
        batch = _batch(("a", 0.5), ("b", 0.3))
        assert format_classifications(batch) == "a 50%\nb 30%"

    def test_only_first_five_considered(self) -> None:
        batch = _batch(("a", 0.9), ("b", 0.1), ("c", 0.1), ("d", 0.1), ("e", 0.1), ("f", 0.8), ("g", 0.7))
        assert format_classifications(batch) == "a 90%"

    def test_threshold_is_strict(self) -> None:
        batch = _batch(("above", 0.2501), ("exact", 0.25), ("below", 0.2499))
        assert format_classifications(batch) == "above 25%"

    def test_input_order_preserved(self) -> None:
        # The classifier's order is trusted, even if it is not sorted.
        batch = _batch(("low", 0.3), ("high", 0.9))
        assert format_classifications(batch) == "low 30%\nhigh 90%"

    def test_all_filtered_yields_empty(self) -> None:
        batch = _batch(("a", 0.25), ("b", 0.2), ("c", 0.1), ("d", 0.05), ("e", 0.0))
        assert format_classifications(batch) == ""

    def test_empty_batch_yields_empty(self) -> None:
        assert format_classifications([]) == ""

    def test_unrecognized_entries_dropped(self) -> None:
        batch = [("tuple", 0.9), Classification("dog", 0.8), None, {"identifier": "x", "confidence": 0.7}]
        assert format_classifications(batch) == "dog 80%"

    def test_unrecognized_entries_still_occupy_window(self) -> None:
        batch: list[object] = [object()] * 5 + [Classification("late", 0.9)]
        assert format_classifications(batch) == ""

    def test_custom_window_and_threshold(self) -> None:
        batch = _batch(("a", 0.6), ("b", 0.55), ("c", 0.52))
        assert format_classifications(batch, window=2, threshold=0.5) == "a 60%\nb 55%"


# ---------------------------------------------------------------------------
# FrameClassifier
# ---------------------------------------------------------------------------


class TestFrameClassifier:
    def test_classify_writes_display_text(self) -> None:
        fc, _, text = _make(DOG_BATCH)
        assert fc.classify(_frame()) == "dog 90%\nwolf 40%"
        assert text.get() == "dog 90%\nwolf 40%"

    def test_intrinsics_passed_through(self) -> None:
        fc, classifier, _ = _make(DOG_BATCH)
        intrinsics = np.eye(3)
        fc.classify(_frame(), intrinsics)
        assert classifier.calls[0][1] is intrinsics

    def test_missing_intrinsics_is_valid(self) -> None:
        fc, classifier, _ = _make(DOG_BATCH)
        assert fc.classify(_frame()) is not None
        assert classifier.calls[0][1] is None

    def test_all_filtered_overwrites_previous_text(self) -> None:
        fc, _, text = _make(_batch(("a", 0.1), ("b", 0.1), ("c", 0.1), ("d", 0.1), ("e", 0.1)), initial="dog 90%")
        assert fc.classify(_frame()) == ""
        assert text.get() == ""

    def test_no_results_keeps_previous_text(self) -> None:
        fc, classifier, text = _make(DOG_BATCH)
        fc.classify(_frame())
        classifier.result = []
        assert fc.classify(_frame()) is None
        assert text.get() == "dog 90%\nwolf 40%"

    def test_classifier_error_keeps_previous_text(self) -> None:
        fc, _, text = _make(RuntimeError("model exploded"), initial="cat 70%")
        assert fc.classify(_frame()) is None
        assert text.get() == "cat 70%"

    def test_infer_raises_typed_errors(self) -> None:
        fc, classifier, _ = _make([])
        with pytest.raises(NoResults):
            fc.infer(_frame())
        classifier.result = ValueError("bad tensor")
        with pytest.raises(ClassificationFailed, match="bad tensor"):
            fc.infer(_frame())

    def test_infer_keeps_classification_failed(self) -> None:
        original = ClassificationFailed("onnx")
        fc, _, _ = _make(original)
        with pytest.raises(ClassificationFailed) as info:
            fc.infer(_frame())
        assert info.value is original

    @pytest.mark.parametrize("frame", [None, np.zeros((0, 0, 3), dtype=np.uint8), np.zeros((4, 4), dtype=np.uint8)])
    def test_malformed_frame_is_skipped(self, frame: Any) -> None:
        fc, classifier, text = _make(DOG_BATCH, initial="keep")
        assert fc.classify(frame) is None
        assert classifier.calls == []
        assert text.get() == "keep"

    def test_publish_after_close_discards(self) -> None:
        fc, _, text = _make(DOG_BATCH, initial="before")
        text.close()
        future: Future[list[Classification]] = Future()
        future.set_result(DOG_BATCH)
        assert fc.publish(future) is None
        assert text.get() == "before"

    def test_publish_handles_failed_future(self) -> None:
        fc, _, text = _make(DOG_BATCH, initial="before")
        future: Future[list[Classification]] = Future()
        future.set_exception(NoResults("none"))
        assert fc.publish(future) is None
        assert text.get() == "before"

    def test_submit_runs_on_pool(self) -> None:
        fc, _, text = _make(DOG_BATCH)
        pool = InferencePool()
        try:
            future = fc.submit(pool, _frame())
            assert future is not None
            assert future.result(timeout=5) == DOG_BATCH
        finally:
            pool.shutdown()
        # Done callbacks have run once shutdown(wait=True) returns.
        assert text.get() == "dog 90%\nwolf 40%"

    def test_submit_skips_malformed_frame(self) -> None:
        fc, classifier, _ = _make(DOG_BATCH)
        pool = InferencePool()
        try:
            assert fc.submit(pool, None) is None
        finally:
            pool.shutdown()
        assert classifier.calls == []
