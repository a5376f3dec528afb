"""Image classification: ranked ImageNet labels for a single camera frame."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from livelabel.errors import ClassificationFailed
from livelabel.ml.preprocessing import FramePreprocessor

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from livelabel.ml.model_manager import ModelManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """A single classification prediction."""

    identifier: str
    confidence: float


class ImageClassifier(Protocol):
    """Protocol for image classification models."""

    @property
    def model_name(self) -> str:
        """Return the model identifier string."""
        ...

    def classify(self, image: NDArray[np.uint8], intrinsics: Any | None = None) -> list[Classification]:
        """Classify an image and return ranked labels.

        Args:
            image: HxWx3 BGR uint8 array.
            intrinsics: Optional camera calibration, passed through untouched.

        Returns:
            List of classifications sorted by confidence (descending).
        """
        ...


def softmax(logits: NDArray[np.float32]) -> NDArray[np.float32]:
    shifted = logits - np.max(logits)
    exp = np.exp(shifted)
    return exp / exp.sum()


class OnnxImageClassifier:
    """ImageClassifier backed by an ONNX Runtime session from the model manager."""

    def __init__(
        self,
        model_manager: ModelManager,
        model_name: str,
        top_k: int = 10,
        preprocessor: FramePreprocessor | None = None,
    ) -> None:
        self._model_manager = model_manager
        self._model_name = model_name
        self._top_k = top_k
        self._preprocessor = preprocessor or FramePreprocessor()

    @property
    def model_name(self) -> str:
        return self._model_name

    def classify(self, image: NDArray[np.uint8], intrinsics: Any | None = None) -> list[Classification]:
        # Registry models ignore calibration.
        if intrinsics is not None:
            logger.debug("Frame carries camera intrinsics (%s)", type(intrinsics).__name__)

        try:
            tensor = self._preprocessor.to_tensor(image)
            session = self._model_manager.get_session(self._model_name)
            labels = self._model_manager.get_labels(self._model_name)
            input_name = session.get_inputs()[0].name
            outputs = session.run(None, {input_name: tensor})
            scores = softmax(np.asarray(outputs[0], dtype=np.float32).reshape(-1))
        except Exception as exc:
            raise ClassificationFailed(f"{self._model_name}: {exc}") from exc

        ranked = np.argsort(scores)[::-1][: self._top_k]
        return [
            Classification(identifier=labels.get(int(index), str(int(index))), confidence=float(scores[index]))
            for index in ranked
        ]
