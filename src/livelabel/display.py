"""Display surfaces that receive the throttled label text."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class DisplaySurface(Protocol):
    """Anything that can show the current label text."""

    def render(self, text: str) -> None:
        """Replace the displayed text."""
        ...


class LogSurface:
    """Headless surface: logs the text whenever it is rendered."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self.last_text = ""

    def render(self, text: str) -> None:
        self.last_text = text
        logger.log(self._level, "Labels: %s", text.replace("\n", " | ") if text else "-")


class OverlaySurface:
    """Draws the label text onto preview frames.

    ``render`` is the only way the text changes; ``draw`` is called from the UI
    thread for each preview frame. Lines are top aligned in a blurred, rounded
    panel in the upper-left corner.
    """

    def __init__(
        self,
        margin: int = 16,
        padding: int = 12,
        font_scale: float = 0.7,
        thickness: int = 2,
        corner_radius: int = 12,
    ) -> None:
        self._lock = threading.Lock()
        self._text = ""
        self.margin = margin
        self.padding = padding
        self.font_scale = font_scale
        self.thickness = thickness
        self.corner_radius = corner_radius
        self._font = cv2.FONT_HERSHEY_SIMPLEX

    def render(self, text: str) -> None:
        with self._lock:
            self._text = text

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    def draw(self, frame: NDArray[np.uint8]) -> NDArray[np.uint8]:
        """Return a copy of ``frame`` with the current labels drawn on it."""
        annotated = frame.copy()
        lines = self.text.splitlines()
        if not lines:
            return annotated

        sizes = [cv2.getTextSize(line, self._font, self.font_scale, self.thickness) for line in lines]
        line_height = max(size[1] + baseline for size, baseline in sizes) + 6
        text_width = max(size[0] for size, _ in sizes)

        frame_h, frame_w = annotated.shape[:2]
        x0, y0 = self.margin, self.margin
        x1 = min(frame_w, x0 + text_width + 2 * self.padding)
        y1 = min(frame_h, y0 + line_height * len(lines) + 2 * self.padding)
        if x1 <= x0 or y1 <= y0:
            return annotated

        self._blur_panel(annotated, x0, y0, x1, y1)

        y = y0 + self.padding
        for line, ((_, height), _) in zip(lines, sizes):
            y += height
            cv2.putText(
                annotated,
                line,
                (x0 + self.padding, y),
                self._font,
                self.font_scale,
                (255, 255, 255),
                self.thickness,
                cv2.LINE_AA,
            )
            y += line_height - height
        return annotated

    def _blur_panel(self, frame: NDArray[np.uint8], x0: int, y0: int, x1: int, y1: int) -> None:
        region = frame[y0:y1, x0:x1]
        blurred = cv2.GaussianBlur(region, (31, 31), 0)
        # Darkened backdrop under white text.
        blurred = cv2.addWeighted(blurred, 0.7, np.zeros_like(blurred), 0.3, 0)

        mask = np.zeros(region.shape[:2], dtype=np.uint8)
        h, w = mask.shape
        r = max(0, min(self.corner_radius, h // 2, w // 2))
        cv2.rectangle(mask, (r, 0), (w - 1 - r, h - 1), 255, -1)
        cv2.rectangle(mask, (0, r), (w - 1, h - 1 - r), 255, -1)
        for cx, cy in ((r, r), (w - 1 - r, r), (r, h - 1 - r), (w - 1 - r, h - 1 - r)):
            cv2.circle(mask, (cx, cy), r, 255, -1)

        region[mask > 0] = blurred[mask > 0]
