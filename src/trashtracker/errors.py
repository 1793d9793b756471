"""Exceptions raised along the capture, preprocess and classify path."""

from __future__ import annotations


class TrashTrackerError(Exception):
    """Base class for all TrashTracker errors."""


class AcquisitionCancelled(TrashTrackerError):
    """The user dismissed the camera or photo picker without choosing an image."""


class PreprocessingError(TrashTrackerError):
    """The image is missing, unreadable, empty, or cannot be converted to RGB."""


class ModelLoadError(TrashTrackerError):
    """The classification model could not be resolved or loaded."""


class InferenceError(TrashTrackerError):
    """The model was loaded but the prediction call failed."""
