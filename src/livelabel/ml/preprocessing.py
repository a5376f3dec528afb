"""Frame preprocessing for ImageNet classifiers.

Converts a BGR camera frame into the normalized NCHW tensor the ONNX models
expect: shorter-edge resize, center crop, RGB conversion, and mean/std
normalization.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


def is_valid_frame(frame: object) -> bool:
    """Return True if ``frame`` is a non-empty HxWx3 uint8 array."""
    return (
        isinstance(frame, np.ndarray)
        and frame.dtype == np.uint8
        and frame.ndim == 3
        and frame.shape[2] == 3
        and frame.size > 0
    )


class FramePreprocessor:
    """Resize, center-crop, and normalize BGR frames for classification."""

    def __init__(self, crop_size: int = 224, resize_shorter: int = 256) -> None:
        if resize_shorter < crop_size:
            raise ValueError("resize_shorter must be at least crop_size")
        self.crop_size = crop_size
        self.resize_shorter = resize_shorter

    def center_crop(self, frame: NDArray[np.uint8]) -> NDArray[np.uint8]:
        """Scale the shorter edge to ``resize_shorter`` and crop the center square.

        Args:
            frame: HxWx3 uint8 array.

        Returns:
            ``crop_size`` x ``crop_size`` x 3 uint8 array.
        """
        height, width = frame.shape[:2]
        scale = self.resize_shorter / min(height, width)
        new_w = max(self.crop_size, round(width * scale))
        new_h = max(self.crop_size, round(height * scale))
        resized = cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

        top = (new_h - self.crop_size) // 2
        left = (new_w - self.crop_size) // 2
        return resized[top : top + self.crop_size, left : left + self.crop_size]

    def to_tensor(self, frame: NDArray[np.uint8]) -> NDArray[np.float32]:
        """Prepare a BGR frame for the classification model.

        Args:
            frame: HxWx3 BGR uint8 array, as delivered by OpenCV.

        Returns:
            Float32 tensor of shape (1, 3, crop_size, crop_size).

        Raises:
            ValueError: If the frame is not a non-empty HxWx3 uint8 array.
        """
        if not is_valid_frame(frame):
            raise ValueError("Expected a non-empty HxWx3 uint8 frame")

        cropped = self.center_crop(frame)
        rgb = cv2.cvtColor(cropped, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0
        normalized = (rgb - IMAGENET_MEAN) / IMAGENET_STD
        return np.ascontiguousarray(normalized.transpose(2, 0, 1)[np.newaxis, ...], dtype=np.float32)
