"""Video capture: reads BGR frames from a webcam by index."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import cv2
import numpy as np

from livelabel.errors import DeviceUnavailable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedFrame:
    """A decoded frame plus the optional calibration it was captured with."""

    image: NDArray[np.uint8]
    intrinsics: NDArray[np.float64] | None = None


class CameraCapture:
    """Webcam source delivering portrait-oriented frames one at a time."""

    def __init__(
        self,
        index: int = 0,
        portrait: bool = True,
        intrinsics: Sequence[float] | None = None,
    ) -> None:
        self._cap: cv2.VideoCapture | None = None
        self._index = index
        self._portrait = portrait
        self._intrinsics = (
            np.asarray(intrinsics, dtype=np.float64).reshape(3, 3) if intrinsics is not None else None
        )

    def open(self) -> None:
        """Open the configured webcam.

        Raises:
            DeviceUnavailable: If no device can be opened at the index.
        """
        self.close()
        # On Windows, use DirectShow so index order matches the system camera list
        if sys.platform == "win32":
            cap = cv2.VideoCapture(self._index, cv2.CAP_DSHOW)
        else:
            cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"No capture device at index {self._index}")
        # Driver buffers at most one frame.
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        self._cap = cap
        logger.info("Opened camera %d (%dx%d)", self._index, *self.get_size())

    def close(self) -> None:
        """Release the current device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def read(self) -> CapturedFrame | None:
        """Read the next frame, or None if no frame could be decoded."""
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        if self._portrait and frame.shape[1] > frame.shape[0]:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        return CapturedFrame(image=frame, intrinsics=self._intrinsics)

    def get_size(self) -> tuple[int, int]:
        """(width, height) of the stream as reported by the driver."""
        if self._cap is None:
            return 0, 0
        w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return w, h

    @property
    def index(self) -> int:
        return self._index

    def __enter__(self) -> CameraCapture:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
