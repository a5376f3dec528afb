"""Inference concurrency layer.

Architecture:
    frame delivery thread -> single in-flight slot -> ThreadPoolExecutor(1) -> ONNX inference

Frames that arrive while the previous one is still being classified are
dropped rather than queued, so results never lag behind a growing backlog.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InferencePool:
    """Runs one inference at a time on a worker thread, dropping late frames."""

    def __init__(self) -> None:
        self._slot = threading.Semaphore(1)
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="onnx-inference",
        )
        self._active_count: int = 0
        self._dropped_count: int = 0
        self._closed = False
        self._counter_lock = threading.Lock()

    def submit(self, func: Callable[..., T], *args: object) -> Future[T] | None:
        """Submit a synchronous function to the inference worker.

        Returns:
            The future of the call, or None if the worker is still busy with
            the previous call (the call is dropped) or the pool is shut down.
        """
        if not self._slot.acquire(blocking=False):
            with self._counter_lock:
                self._dropped_count += 1
            logger.debug("Inference busy, dropping frame")
            return None

        with self._counter_lock:
            if self._closed:
                self._slot.release()
                return None
            self._active_count += 1

        try:
            future = self._executor.submit(func, *args)
        except RuntimeError:
            # Executor shut down between the closed check and submit.
            self._release()
            return None
        future.add_done_callback(lambda _: self._release())
        return future

    def _release(self) -> None:
        with self._counter_lock:
            self._active_count -= 1
        self._slot.release()

    @property
    def active_count(self) -> int:
        """Number of currently running inference tasks (0 or 1)."""
        with self._counter_lock:
            return self._active_count

    @property
    def dropped_count(self) -> int:
        """Number of frames dropped because the worker was busy."""
        with self._counter_lock:
            return self._dropped_count

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the thread pool executor."""
        with self._counter_lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
