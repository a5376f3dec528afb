"""Exceptions raised by the capture and classification pipeline.

None of these are fatal: each one degrades to "no visible update".
"""

from __future__ import annotations


class LiveLabelError(Exception):
    """Base class for pipeline errors."""


class ClassificationFailed(LiveLabelError):
    """The image classifier raised while processing a frame."""


class NoResults(LiveLabelError):
    """The image classifier produced no observations for a frame."""


class DeviceUnavailable(LiveLabelError):
    """No usable capture device could be opened."""
